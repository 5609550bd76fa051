# tempshare/services/file_service.py
import logging
import re
import secrets
import uuid
from typing import Callable, List, Optional, Tuple
from datetime import datetime, timedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.core.config import settings
from tempshare.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from tempshare.models.base import utcnow
from tempshare.models.file import FileRecord
from tempshare.repositories.file_repository import FileRepository
from tempshare.storage.base import ObjectStore, StoredObject

logger = logging.getLogger(__name__)

MIN_EXPIRES_IN_DAYS = 1
MAX_EXPIRES_IN_DAYS = 30
# Последний компонент пути на диске ограничен 255 байтами
MAX_KEY_NAME_BYTES = 100

_UNSAFE_KEY_CHARS = re.compile(r"[\x00-\x1f\x7f/\\]")


def safe_key_name(filename: str) -> str:
    """Имя файла для ключа: без путей и управляющих символов"""
    name = re.split(r"[/\\]", filename or "")[-1]
    name = _UNSAFE_KEY_CHARS.sub("", name).strip().lstrip(".")
    # Хвост по байтам UTF-8, обрезанный посередине символ отбрасывается
    name = name.encode("utf-8", errors="ignore")[-MAX_KEY_NAME_BYTES:].decode("utf-8", errors="ignore")
    return name.strip().lstrip(".") or "file"


class FileService:
    """Жизненный цикл файла: создание, удаление владельцем, истечение, скачивания.

    Истечение не хранится отдельным статусом, а вычисляется из expires_at.
    Байты всегда пишутся в хранилище раньше строки метаданных.
    """

    def __init__(
        self,
        session: AsyncSession,
        object_store: Optional[ObjectStore] = None,
        clock: Callable[[], datetime] = utcnow,
        max_upload_size: Optional[int] = None,
        verify_uploads: Optional[bool] = None,
    ):
        self.session = session
        self.file_repository = FileRepository(session)
        self.object_store = object_store
        self.clock = clock
        self.max_upload_size = (
            max_upload_size if max_upload_size is not None else settings.storage.MAX_UPLOAD_SIZE
        )
        self.verify_uploads = (
            verify_uploads if verify_uploads is not None else settings.storage.VERIFY_UPLOADS
        )

    # --- валидация ---

    @staticmethod
    def validate_expiration(expires_in_days) -> int:
        if isinstance(expires_in_days, bool) or not isinstance(expires_in_days, int):
            raise ValidationError("Expiration time must be a whole number of days")
        if not MIN_EXPIRES_IN_DAYS <= expires_in_days <= MAX_EXPIRES_IN_DAYS:
            raise ValidationError(
                f"Expiration time must be between {MIN_EXPIRES_IN_DAYS} and {MAX_EXPIRES_IN_DAYS} days"
            )
        return expires_in_days

    def validate_size(self, size) -> int:
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValidationError("File size must be a non-negative integer")
        if size > self.max_upload_size:
            raise ValidationError(
                f"File too large. Maximum size is {self.max_upload_size // (1024 * 1024)}MB"
            )
        return size

    @staticmethod
    def validate_filename(filename: Optional[str]) -> str:
        if not filename or not filename.strip():
            raise ValidationError("No file provided")
        return filename

    def generate_object_key(self, owner_id: str, filename: str) -> str:
        """Уникальный ключ: владелец + миллисекунды + случайный суффикс"""
        timestamp = int(self.clock().timestamp() * 1000)
        random_part = secrets.token_hex(6)
        return f"{owner_id}/{timestamp}-{random_part}-{safe_key_name(filename)}"

    # --- создание ---

    async def _create_record(
        self,
        owner_id: str,
        filename: str,
        content_type: Optional[str],
        size_bytes: int,
        expires_in_days: int,
        object_key: str,
    ) -> FileRecord:
        self.validate_filename(filename)
        self.validate_expiration(expires_in_days)
        self.validate_size(size_bytes)

        now = self.clock()
        return await self.file_repository.create(
            file_id=str(uuid.uuid4()),
            user_id=owner_id,
            filename=filename,
            content_type=content_type or None,
            size=size_bytes,
            object_key=object_key,
            expires_at=now + timedelta(days=expires_in_days),
            created_at=now,
        )

    async def create(
        self,
        owner_id: str,
        filename: str,
        content_type: Optional[str],
        size_bytes: int,
        expires_in_days: int,
        object_key: str,
    ) -> str:
        """Записать метаданные файла, байты которого уже лежат под object_key.

        Возвращает id записи, он же публичный токен ссылки.
        """
        record = await self._create_record(
            owner_id, filename, content_type, size_bytes, expires_in_days, object_key
        )
        return record.id

    async def upload(
        self,
        owner_id: str,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        expires_in_days: int,
    ) -> FileRecord:
        """Полный путь загрузки: проверка, запись в хранилище, затем метаданные"""
        self.validate_filename(filename)
        self.validate_expiration(expires_in_days)
        self.validate_size(len(data))

        object_key = self.generate_object_key(owner_id, filename)
        await self.object_store.put(object_key, data, content_type)

        if self.verify_uploads and not await self.object_store.head(object_key):
            logger.error(f"Object {object_key} missing right after upload")
            raise StorageError("Failed to store file")

        record = await self._create_record(
            owner_id, filename, content_type, len(data), expires_in_days, object_key
        )
        logger.info(f"File {record.id} uploaded by user {owner_id} ({record.size} bytes)")
        return record

    # --- чтение ---

    async def get_by_id(self, file_id: str) -> Optional[FileRecord]:
        """Публичное чтение: без проверки владельца, с данными загрузившего"""
        return await self.file_repository.get_with_owner(file_id)

    async def is_expired(self, file_id: str) -> bool:
        """Отсутствующий файл считается истёкшим"""
        expires_at = await self.file_repository.get_expires_at(file_id)
        if expires_at is None:
            return True
        return expires_at <= self.clock()

    async def list_for_owner(self, owner_id: str) -> List[FileRecord]:
        """Только неистёкшие файлы, даже если очистка их ещё не удалила"""
        return await self.file_repository.list_live_for_owner(owner_id, self.clock())

    async def get_live(self, file_id: str) -> FileRecord:
        """Файл для публичного доступа; истёкший неотличим от отсутствующего"""
        record = await self.get_by_id(file_id)
        if record is None or await self.is_expired(file_id):
            raise NotFoundError()
        return record

    # --- скачивание ---

    async def increment_download_count(self, file_id: str) -> None:
        await self.file_repository.increment_download_count(file_id)

    async def open_download(self, file_id: str) -> Tuple[FileRecord, StoredObject]:
        record = await self.get_live(file_id)

        stored = await self.object_store.get(record.object_key)
        if stored is None:
            logger.warning(f"File {file_id} has no object under {record.object_key}")
            raise NotFoundError("File not found in storage")

        # Счётчик не связан транзакцией с отдачей байтов: недосчёт допустим.
        # Откат делает закрытие сессии в конце запроса, record остаётся загруженным.
        try:
            await self.increment_download_count(file_id)
        except SQLAlchemyError:
            logger.exception(f"Failed to increment download count for file {file_id}")

        return record, stored

    # --- удаление ---

    async def delete(self, file_id: str, requester_id: str) -> bool:
        """Удаление одной командой по id и владельцу.

        True только если строка действительно удалена этим вызовом.
        """
        return await self.file_repository.delete_owned(file_id, requester_id)

    async def delete_file(self, file_id: str, requester_id: str) -> bool:
        """Удаление владельцем: метаданные, затем объект в хранилище"""
        record = await self.file_repository.get_with_owner(file_id)
        if record is None:
            raise NotFoundError()
        if record.user_id != requester_id:
            raise AuthorizationError()

        object_key = record.object_key
        removed = await self.delete(file_id, requester_id)
        if removed:
            await self.object_store.delete(object_key)
            logger.info(f"File {file_id} deleted by owner {requester_id}")
        else:
            logger.info(f"File {file_id} was already removed concurrently")
        return removed
