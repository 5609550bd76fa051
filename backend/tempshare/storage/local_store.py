# tempshare/storage/local_store.py
from pathlib import Path
from typing import Optional
from starlette.concurrency import run_in_threadpool
from tempshare.core.exceptions import StorageError
from tempshare.storage.base import ObjectStore, StoredObject

META_SUFFIX = ".content-type"


class LocalObjectStore(ObjectStore):
    """Объекты на диске под base_path, тип содержимого в соседнем файле.

    Для разработки и тестов.
    """

    def __init__(self, base_path: str = "./_objects"):
        self.base_path = Path(base_path).resolve()

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/"):
            raise StorageError(f"Invalid object key: {key!r}")
        path = (self.base_path / key).resolve()
        # ключ не должен выводить за пределы корня хранилища
        if self.base_path not in path.parents:
            raise StorageError(f"Invalid object key: {key!r}")
        return path

    def _meta_path(self, path: Path) -> Path:
        return path.with_name(path.name + META_SUFFIX)

    def _put(self, key: str, data: bytes, content_type: Optional[str]) -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".tmp")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
            self._meta_path(path).write_text(content_type or "", encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write object {key}: {e}") from e

    def _get(self, key: str) -> Optional[StoredObject]:
        path = self._path_for(key)
        if not path.is_file():
            return None
        try:
            body = path.read_bytes()
            meta_path = self._meta_path(path)
            content_type = meta_path.read_text(encoding="utf-8") if meta_path.exists() else ""
        except OSError as e:
            raise StorageError(f"Failed to read object {key}: {e}") from e
        return StoredObject(body=body, content_type=content_type or None, size=len(body))

    def _delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
            self._meta_path(path).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete object {key}: {e}") from e

    def _head(self, key: str) -> bool:
        return self._path_for(key).is_file()

    async def ensure_ready(self) -> None:
        await run_in_threadpool(self.base_path.mkdir, parents=True, exist_ok=True)

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        await run_in_threadpool(self._put, key, data, content_type)

    async def get(self, key: str) -> Optional[StoredObject]:
        return await run_in_threadpool(self._get, key)

    async def delete(self, key: str) -> None:
        await run_in_threadpool(self._delete, key)

    async def head(self, key: str) -> bool:
        return await run_in_threadpool(self._head, key)
