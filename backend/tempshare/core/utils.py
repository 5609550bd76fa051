# tempshare/core/utils.py
from typing import AsyncGenerator, Callable, Optional
from datetime import datetime
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.core.exceptions import AuthenticationError
from tempshare.core.schemas.auth import SessionIdentity
from tempshare.services.auth_service import AuthService
from tempshare.services.file_service import FileService
from tempshare.services.github_oauth import IdentityProvider
from tempshare.services.session_service import SessionAuthenticator
from tempshare.storage.base import ObjectStore


# Все зависимости берутся из app.state, куда их кладёт create_app

async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async for session in request.app.state.db.session_getter():
        yield session


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_file_service(
    session: AsyncSession = Depends(get_db_session),
    object_store: ObjectStore = Depends(get_object_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> FileService:
    return FileService(session, object_store, clock=clock)


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AuthService:
    return AuthService(session, clock=clock)


async def get_optional_session(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> Optional[SessionIdentity]:
    """Личность из cookie или None; ошибки БД не превращаются в None"""
    authenticator = SessionAuthenticator(session, clock=clock)
    return await authenticator.resolve(request.headers.get("cookie"))


async def get_current_session(
    identity: Optional[SessionIdentity] = Depends(get_optional_session),
) -> SessionIdentity:
    """Зависимость для маршрутов, которым нужен вошедший пользователь"""
    if identity is None:
        raise AuthenticationError("Unauthorized")
    return identity
