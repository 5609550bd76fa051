# tempshare/services/auth_service.py
import logging
from typing import Callable, Optional, Tuple
from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.core.config import settings
from tempshare.core.schemas.auth import ExternalIdentity
from tempshare.core.security import generate_session_token
from tempshare.models.base import utcnow
from tempshare.models.user import User, UserSession
from tempshare.repositories.session_repository import SessionRepository
from tempshare.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
        session_ttl: Optional[timedelta] = None,
    ):
        self.session = session
        self.user_repository = UserRepository(session)
        self.session_repository = SessionRepository(session)
        self.clock = clock
        self.session_ttl = session_ttl or timedelta(days=settings.security.SESSION_TTL_DAYS)

    async def sign_in(
        self,
        identity: ExternalIdentity,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[User, UserSession]:
        """Вход по проверенной внешней личности: пользователь, привязка, сессия"""
        user = await self._get_or_create_user(identity)
        await self._link_account(user, identity)

        user_session = await self.session_repository.create(
            session_id=generate_session_token(),
            user_id=user.id,
            expires_at=self.clock() + self.session_ttl,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User {user.id} signed in via {identity.provider}")
        return user, user_session

    async def sign_out(self, session_id: str) -> bool:
        """Жёсткое удаление сессии"""
        removed = await self.session_repository.delete(session_id)
        if removed:
            logger.info(f"Session {session_id[:8]}... signed out")
        return removed

    async def _get_or_create_user(self, identity: ExternalIdentity) -> User:
        # Сначала по привязке к провайдеру, потом по почте
        account = await self.user_repository.get_account(identity.provider, identity.account_id)
        if account:
            user = await self.user_repository.get_by_id(account.user_id)
            if user:
                return user

        email = identity.resolved_email
        user = await self.user_repository.get_by_email(email)
        if user:
            return user

        try:
            return await self.user_repository.create(
                email=email,
                name=identity.name,
                image=identity.avatar_url,
            )
        except IntegrityError:
            # Параллельный вход уже создал пользователя с этой почтой
            await self.session.rollback()
            user = await self.user_repository.get_by_email(email)
            if user is None:
                raise
            return user

    async def _link_account(self, user: User, identity: ExternalIdentity) -> None:
        account = await self.user_repository.get_account(identity.provider, identity.account_id)
        if account:
            if identity.access_token and account.access_token != identity.access_token:
                await self.user_repository.update_account_tokens(account.id, identity.access_token)
            return

        try:
            await self.user_repository.create_account(
                user_id=user.id,
                provider=identity.provider,
                account_id=identity.account_id,
                access_token=identity.access_token,
            )
        except IntegrityError:
            # (provider, account_id) уникальна: привязку уже создал параллельный вход
            await self.session.rollback()
            await self.session.refresh(user)
            logger.info(f"Account {identity.provider}:{identity.account_id} already linked")
