# tempshare/services/reconciler.py
import logging
from typing import Callable
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.models.base import utcnow
from tempshare.repositories.file_repository import FileRepository
from tempshare.storage.base import ObjectStore

logger = logging.getLogger(__name__)


class ExpirationReconciler:
    """Периодическая очистка истёкших файлов из обоих хранилищ.

    Сначала удаляется объект, потом строка. Если объект удалить не удалось,
    строка остаётся и запись повторится на следующем проходе. Ошибки по
    отдельной записи логируются и не прерывают проход.
    """

    def __init__(
        self,
        session: AsyncSession,
        object_store: ObjectStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.file_repository = FileRepository(session)
        self.object_store = object_store
        self.clock = clock

    async def sweep(self) -> int:
        """Один проход; возвращает число полностью удалённых записей"""
        expired = await self.file_repository.list_expired(self.clock())
        if not expired:
            logger.info("No expired files to clean up")
            return 0

        logger.info(f"Found {len(expired)} expired files")
        reconciled = 0

        for file_id, object_key in expired:
            try:
                await self.object_store.delete(object_key)
            except Exception:
                logger.exception(f"Failed to delete object {object_key} of expired file {file_id}, will retry")
                continue

            try:
                removed = await self.file_repository.delete_by_id(file_id)
            except Exception:
                logger.exception(f"Failed to delete metadata of expired file {file_id}, will retry")
                await self.session.rollback()
                continue

            if removed:
                reconciled += 1
            else:
                logger.info(f"Expired file {file_id} was already removed")

        logger.info(f"Cleaned up {reconciled} of {len(expired)} expired files")
        return reconciled
