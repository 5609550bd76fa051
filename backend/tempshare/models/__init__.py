# tempshare/models/__init__.py
from .base import Base
from .user import User, UserSession, ExternalAccount
from .file import FileRecord

# Этот список нужен, чтобы IDE и инструменты видели, что экспортируется
__all__ = [
    "Base",
    "User", "UserSession", "ExternalAccount",
    "FileRecord",
]
