# tempshare/core/security.py
from jose import jwt, JWTError
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from tempshare.core.config import settings


def generate_session_token() -> str:
    """Непредсказуемый токен сессии (он же id строки в sessions)"""
    return secrets.token_urlsafe(32)


def create_oauth_state(provider: str, now: Optional[datetime] = None) -> str:
    """Подписанный state для OAuth-редиректа"""
    now = now or datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.security.OAUTH_STATE_TTL_MINUTES)
    payload = {
        "exp": expire,
        "type": "oauth_state",
        "provider": provider,
        "nonce": secrets.token_urlsafe(16),
    }
    return jwt.encode(
        payload,
        settings.security.JWT_SECRET_KEY.get_secret_value(),
        algorithm=settings.security.JWT_ALGORITHM
    )


def verify_oauth_state(state: Optional[str], provider: str) -> bool:
    """Проверка state из колбэка: подпись, срок, провайдер"""
    if not state:
        return False
    try:
        payload = jwt.decode(
            state,
            settings.security.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.security.JWT_ALGORITHM]
        )
    except JWTError:
        return False
    return payload.get("type") == "oauth_state" and payload.get("provider") == provider
