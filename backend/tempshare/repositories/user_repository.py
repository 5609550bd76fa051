# tempshare/repositories/user_repository.py
import uuid
from typing import Optional
from datetime import datetime
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.models.user import User, ExternalAccount
from tempshare.models.base import utcnow

class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        """Получить пользователя по email"""
        stmt = select(User).where(func.lower(User.email) == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Получить пользователя по ID"""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, email: str, name: Optional[str], image: Optional[str]) -> User:
        """Создать нового пользователя"""
        now = utcnow()
        db_user = User(
            id=str(uuid.uuid4()),
            email=email.lower(),
            name=name,
            image=image,
            created_at=now,
            updated_at=now,
        )
        self.session.add(db_user)
        await self.session.commit()
        await self.session.refresh(db_user)
        return db_user

    async def get_account(self, provider: str, account_id: str) -> Optional[ExternalAccount]:
        """Получить привязку к внешнему провайдеру"""
        stmt = select(ExternalAccount).where(
            ExternalAccount.provider == provider,
            ExternalAccount.account_id == account_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_account(
        self,
        user_id: str,
        provider: str,
        account_id: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        token_expires_at: Optional[datetime] = None,
    ) -> ExternalAccount:
        """Привязать внешний аккаунт к пользователю"""
        now = utcnow()
        account = ExternalAccount(
            id=str(uuid.uuid4()),
            provider=provider,
            account_id=account_id,
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires_at=token_expires_at,
            created_at=now,
            updated_at=now,
        )
        self.session.add(account)
        await self.session.commit()
        return account

    async def update_account_tokens(self, account_pk: str, access_token: Optional[str]) -> None:
        """Обновить закэшированный access token"""
        stmt = update(ExternalAccount).where(ExternalAccount.id == account_pk).values(
            access_token=access_token,
            updated_at=utcnow()
        )
        await self.session.execute(stmt)
        await self.session.commit()
