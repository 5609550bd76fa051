# tempshare/core/limiter.py
from slowapi import Limiter
from slowapi.util import get_remote_address
from tempshare.core.config import settings

# Один лимитер на всё приложение (в продакшене можно вынести в Redis через storage_uri)
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
