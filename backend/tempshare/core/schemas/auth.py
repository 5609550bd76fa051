# tempshare/core/schemas/auth.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class SessionUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SessionIdentity(BaseModel):
    """Проверенная личность из cookie: пользователь + id сессии для выхода"""
    user: SessionUser
    session_id: str


class ExternalIdentity(BaseModel):
    """Результат обмена OAuth-кода у внешнего провайдера"""
    provider: str
    account_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def resolved_email(self) -> str:
        # У провайдера может не быть почты, тогда нужен уникальный заменитель
        if self.email:
            return self.email.lower()
        return f"{self.account_id}@{self.provider}.local"


class SessionResponse(BaseModel):
    user: Optional[SessionUser] = None


class SignOutResponse(BaseModel):
    success: bool = Field(True, description="Always true, sign-out is idempotent")
