# tempshare/storage/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class StoredObject:
    body: bytes
    content_type: Optional[str]
    size: int


class ObjectStore(ABC):
    """Хранилище байтов файлов по ключу.

    put перезаписывает существующий ключ, get и head для отсутствующего
    ключа возвращают None и False, delete отсутствующего ключа не ошибка.
    Сбои инфраструктуры поднимаются как StorageError.
    """

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        pass  # pragma: no cover

    @abstractmethod
    async def get(self, key: str) -> Optional[StoredObject]:
        pass  # pragma: no cover

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass  # pragma: no cover

    @abstractmethod
    async def head(self, key: str) -> bool:
        pass  # pragma: no cover

    async def ensure_ready(self) -> None:
        """Подготовка бакета или корневой папки перед первым запросом"""
        return None
