# tempshare/core/config.py
from pydantic_settings import BaseSettings
from pydantic import BaseModel, Field, SecretStr
from typing import List, Optional
from functools import lru_cache


class DataBaseConfig(BaseModel):
    DB_HOST: str = Field("localhost", description="Database host")
    DB_PORT: int = Field(5432, description="Database port")
    DB_NAME: str = Field("tempshare", description="Database name")
    DB_USER: str = Field("tempshare", description="Database user")
    DB_PASSWORD: SecretStr = Field(SecretStr("tempshare"), description="Database password")
    # Полный URL, например sqlite+aiosqlite:///./tempshare.db, перекрывает DB_HOST/DB_*
    DB_URL: Optional[str] = Field(None, description="Full database URL override")
    DB_ECHO: bool = Field(False, description="Enable SQL echo")
    DB_POOL_SIZE: int = Field(5, description="Database pool size")
    DB_MAX_OVERFLOW: int = Field(10, description="Database max overflow")

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD.get_secret_value()}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    naming_convention: dict[str, str] = {
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_N_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }


class StorageConfig(BaseModel):
    BACKEND: str = Field("local", description="Object store backend: local or minio")
    LOCAL_PATH: str = Field("./_objects", description="Root directory of the local object store")
    MINIO_ENDPOINT: str = Field("localhost:9000", description="MinIO endpoint")
    MINIO_ACCESS_KEY: str = Field("minioadmin", description="MinIO access key")
    MINIO_SECRET_KEY: SecretStr = Field(SecretStr("minioadmin"), description="MinIO secret key")
    MINIO_SECURE: bool = Field(False, description="Use HTTPS for MinIO")
    MINIO_BUCKET_NAME: str = Field("tempshare", description="MinIO bucket name")
    MAX_UPLOAD_SIZE: int = Field(100 * 1024 * 1024, description="Maximum upload size in bytes")
    VERIFY_UPLOADS: bool = Field(True, description="Check the object exists before writing metadata")

    @property
    def minio_url(self) -> str:
        protocol = "https" if self.MINIO_SECURE else "http"
        return f"{protocol}://{self.MINIO_ENDPOINT}"


class SecurityConfig(BaseModel):
    JWT_SECRET_KEY: SecretStr = Field(SecretStr("change-me"), description="Secret used to sign OAuth state")
    JWT_ALGORITHM: str = Field("HS256", description="JWT algorithm")
    SESSION_COOKIE_NAME: str = Field("tempshare_session.token", description="Session cookie name")
    SESSION_TTL_DAYS: int = Field(7, description="Session lifetime in days")
    OAUTH_STATE_TTL_MINUTES: int = Field(10, description="Lifetime of the OAuth state parameter")


class GitHubConfig(BaseModel):
    GITHUB_CLIENT_ID: str = Field("", description="GitHub OAuth client id")
    GITHUB_CLIENT_SECRET: SecretStr = Field(SecretStr(""), description="GitHub OAuth client secret")
    GITHUB_TIMEOUT: int = Field(10, description="GitHub API timeout in seconds")


class CleanupConfig(BaseModel):
    ENABLED: bool = Field(False, description="Run the expiration sweep inside the API process")
    INTERVAL_SECONDS: int = Field(3600, description="Interval between in-process sweeps")


class Settings(BaseSettings):
    app_name: str = Field("TempShare", description="Application name")
    debug: bool = Field(False, description="Debug mode")
    app_url: str = Field("http://localhost:8000", description="Public base URL")
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        description="CORS origins"
    )
    rate_limit_enabled: bool = Field(True, description="Enable request rate limiting")

    db: DataBaseConfig = DataBaseConfig()
    storage: StorageConfig = StorageConfig()
    security: SecurityConfig = SecurityConfig()
    github: GitHubConfig = GitHubConfig()
    cleanup: CleanupConfig = CleanupConfig()

    @property
    def secure_cookies(self) -> bool:
        return self.app_url.startswith("https")

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        case_sensitive = False
        env_nested_delimiter = '__'  # DB__DB_HOST, STORAGE__BACKEND и т.д.


@lru_cache()
def get_settings() -> Settings:
    """Кэшированный экземпляр настроек"""
    return Settings()

settings = get_settings()
