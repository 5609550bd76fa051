# tempshare/storage/minio_store.py
import io
import logging
from typing import Optional
from minio import Minio
from minio.error import S3Error
from starlette.concurrency import run_in_threadpool
from tempshare.core.exceptions import StorageError
from tempshare.storage.base import ObjectStore, StoredObject

logger = logging.getLogger(__name__)

MISSING_CODES = {"NoSuchKey", "NoSuchObject", "NotFound", "ResourceNotFound"}


class MinioObjectStore(ObjectStore):
    """MinIO или S3-совместимое хранилище.

    SDK minio блокирующий, каждый вызов уходит в пул потоков.
    """

    def __init__(self, client: Minio, bucket_name: str):
        self.client = client
        self.bucket_name = bucket_name

    @classmethod
    def from_config(cls, storage_config) -> "MinioObjectStore":
        client = Minio(
            endpoint=storage_config.MINIO_ENDPOINT,
            access_key=storage_config.MINIO_ACCESS_KEY,
            secret_key=storage_config.MINIO_SECRET_KEY.get_secret_value(),
            secure=storage_config.MINIO_SECURE,
        )
        return cls(client, storage_config.MINIO_BUCKET_NAME)

    def _ensure_bucket(self) -> None:
        if not self.client.bucket_exists(bucket_name=self.bucket_name):
            self.client.make_bucket(bucket_name=self.bucket_name)
            logger.info(f"Created bucket {self.bucket_name}")

    def _put(self, key: str, data: bytes, content_type: Optional[str]) -> None:
        self.client.put_object(
            bucket_name=self.bucket_name,
            object_name=key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type or "application/octet-stream",
        )

    def _get(self, key: str) -> Optional[StoredObject]:
        try:
            response = self.client.get_object(bucket_name=self.bucket_name, object_name=key)
        except S3Error as e:
            if e.code in MISSING_CODES:
                return None
            raise
        try:
            body = response.read()
            content_type = response.headers.get("Content-Type")
        finally:
            response.close()
            response.release_conn()
        return StoredObject(body=body, content_type=content_type, size=len(body))

    def _delete(self, key: str) -> None:
        self.client.remove_object(bucket_name=self.bucket_name, object_name=key)

    def _head(self, key: str) -> bool:
        try:
            self.client.stat_object(bucket_name=self.bucket_name, object_name=key)
        except S3Error as e:
            if e.code in MISSING_CODES:
                return False
            raise
        return True

    async def _call(self, operation: str, func, *args):
        try:
            return await run_in_threadpool(func, *args)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"MinIO {operation} failed: {e}") from e

    async def ensure_ready(self) -> None:
        await self._call("bucket check", self._ensure_bucket)

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        await self._call("put", self._put, key, data, content_type)

    async def get(self, key: str) -> Optional[StoredObject]:
        return await self._call("get", self._get, key)

    async def delete(self, key: str) -> None:
        await self._call("delete", self._delete, key)

    async def head(self, key: str) -> bool:
        return await self._call("head", self._head, key)
