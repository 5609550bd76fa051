# tempshare/services/session_service.py
from typing import Callable, Dict, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from tempshare.core.config import settings
from tempshare.core.schemas.auth import SessionIdentity, SessionUser
from tempshare.models.base import utcnow
from tempshare.repositories.session_repository import SessionRepository


def parse_cookie_header(cookie_header: Optional[str]) -> Dict[str, str]:
    """Разбор заголовка Cookie в пары имя/значение.

    Пары без имени или без значения пропускаются, при повторе имени
    побеждает первое вхождение.
    """
    cookies: Dict[str, str] = {}
    if not cookie_header:
        return cookies

    for part in cookie_header.split(";"):
        name, sep, value = part.strip().partition("=")
        name = name.strip()
        value = value.strip()
        if not sep or not name or not value:
            continue
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        # Первый дубликат выигрывает: браузер шлёт cookie с более узким path раньше
        cookies.setdefault(name, value)
    return cookies


class SessionAuthenticator:
    def __init__(
        self,
        session: AsyncSession,
        cookie_name: Optional[str] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_repository = SessionRepository(session)
        self.cookie_name = cookie_name or settings.security.SESSION_COOKIE_NAME
        self.clock = clock

    def extract_token(self, cookie_header: Optional[str]) -> Optional[str]:
        return parse_cookie_header(cookie_header).get(self.cookie_name)

    async def resolve(self, cookie_header: Optional[str]) -> Optional[SessionIdentity]:
        """Проверенная личность по заголовку Cookie или None.

        Без cookie в базу не ходим. Истёкшая сессия неотличима от
        несуществующей. Ошибки БД пробрасываются наверх.
        """
        token = self.extract_token(cookie_header)
        if not token:
            return None

        row = await self.session_repository.get_live_with_user(token, self.clock())
        if row is None:
            return None

        user_session, user = row
        return SessionIdentity(
            user=SessionUser(
                id=str(user.id),
                email=str(user.email),
                name=user.name,
                image=user.image,
            ),
            session_id=str(user_session.id),
        )


async def resolve_session(
    cookie_header: Optional[str],
    session: AsyncSession,
    cookie_name: Optional[str] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Optional[SessionIdentity]:
    authenticator = SessionAuthenticator(session, cookie_name=cookie_name, clock=clock)
    return await authenticator.resolve(cookie_header)
