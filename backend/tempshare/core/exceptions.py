# tempshare/core/exceptions.py
from fastapi import status

class AppException(Exception):
    """Базовое исключение для приложения"""
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail

class AuthenticationError(AppException):
    """Нет действующей сессии"""
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail)

class AuthorizationError(AppException):
    """Пользователь аутентифицирован, но не владелец ресурса"""
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)

class ValidationError(AppException):
    """Ошибка валидации входных данных"""
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)

class NotFoundError(AppException):
    """Ресурс не найден (или уже истёк)"""
    def __init__(self, detail: str = "File not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)

class StorageError(AppException):
    """Ошибка объектного хранилища"""
    def __init__(self, detail: str = "Object storage error"):
        super().__init__(status.HTTP_502_BAD_GATEWAY, detail)

class IdentityProviderError(AppException):
    """Ошибка обмена кода OAuth на личность"""
    def __init__(self, detail: str = "Identity provider error"):
        super().__init__(status.HTTP_502_BAD_GATEWAY, detail)
