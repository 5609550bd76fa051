# tempshare/repositories/session_repository.py
from typing import Optional
from datetime import datetime
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.models.user import User, UserSession
from tempshare.models.base import utcnow

class SessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        session_id: str,
        user_id: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UserSession:
        """Создать сессию после успешного входа"""
        now = utcnow()
        user_session = UserSession(
            id=session_id,
            user_id=user_id,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user_session)
        await self.session.commit()
        return user_session

    async def get_live_with_user(self, session_id: str, now: datetime) -> Optional[tuple[UserSession, User]]:
        """Получить неистёкшую сессию вместе с владельцем"""
        stmt = (
            select(UserSession, User)
            .join(User, UserSession.user_id == User.id)
            .where(
                UserSession.id == session_id,
                UserSession.expires_at > now,
            )
        )
        result = await self.session.execute(stmt)
        return result.first()

    async def delete(self, session_id: str) -> bool:
        """Удалить сессию (выход из аккаунта)"""
        stmt = delete(UserSession).where(UserSession.id == session_id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0
