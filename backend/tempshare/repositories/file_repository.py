# tempshare/repositories/file_repository.py
from typing import Optional, List
from datetime import datetime
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from tempshare.models.file import FileRecord

class FileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        file_id: str,
        user_id: str,
        filename: str,
        content_type: Optional[str],
        size: int,
        object_key: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> FileRecord:
        """Создать запись о файле"""
        record = FileRecord(
            id=file_id,
            user_id=user_id,
            filename=filename,
            content_type=content_type,
            size=size,
            object_key=object_key,
            expires_at=expires_at,
            download_count=0,
            created_at=created_at,
        )
        self.session.add(record)
        await self.session.commit()
        return record

    async def get_with_owner(self, file_id: str) -> Optional[FileRecord]:
        """Получить файл вместе с загрузившим его пользователем"""
        stmt = (
            select(FileRecord)
            .where(FileRecord.id == file_id)
            .options(selectinload(FileRecord.owner))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_expires_at(self, file_id: str) -> Optional[datetime]:
        """Получить только время истечения"""
        stmt = select(FileRecord.expires_at).where(FileRecord.id == file_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_live_for_owner(self, user_id: str, now: datetime) -> List[FileRecord]:
        """Неистёкшие файлы пользователя, новые первыми"""
        stmt = (
            select(FileRecord)
            .where(
                FileRecord.user_id == user_id,
                FileRecord.expires_at > now,
            )
            .order_by(FileRecord.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_expired(self, now: datetime) -> List[tuple[str, str]]:
        """Пары (id, object_key) всех истёкших файлов"""
        stmt = (
            select(FileRecord.id, FileRecord.object_key)
            .where(FileRecord.expires_at <= now)
            .order_by(FileRecord.expires_at)
        )
        result = await self.session.execute(stmt)
        return [(row.id, row.object_key) for row in result.all()]

    async def delete_owned(self, file_id: str, user_id: str) -> bool:
        """Удалить файл, только если он принадлежит user_id"""
        stmt = delete(FileRecord).where(
            FileRecord.id == file_id,
            FileRecord.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def delete_by_id(self, file_id: str) -> bool:
        """Удалить файл без проверки владельца (очистка истёкших)"""
        stmt = delete(FileRecord).where(FileRecord.id == file_id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    async def increment_download_count(self, file_id: str) -> None:
        """Увеличить счётчик скачиваний"""
        stmt = (
            update(FileRecord)
            .where(FileRecord.id == file_id)
            .values(download_count=FileRecord.download_count + 1)
        )
        await self.session.execute(stmt)
        await self.session.commit()
