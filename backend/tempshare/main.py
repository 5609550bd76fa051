# tempshare/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from contextlib import asynccontextmanager, suppress
from typing import Callable, Optional
from sqlalchemy import text
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import asyncio
import logging
from tempshare.api.v1.routes import api_router
from tempshare.core.config import Settings, settings
from tempshare.core.database import DatabaseHelper, create_db_helper
from tempshare.core.exceptions import AppException
from tempshare.core.limiter import limiter
from tempshare.models.base import utcnow
from tempshare.services.github_oauth import GitHubIdentityProvider, IdentityProvider
from tempshare.storage import ObjectStore, create_object_store
from tempshare.tasks.cleanup import periodic_cleanup

# Настройка логирования
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _masked_db_url(config: Settings) -> str:
    url = config.db.DATABASE_URL
    password = config.db.DB_PASSWORD.get_secret_value()
    if password and password in url:
        url = url.replace(password, "***")
    return url


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Контекстный менеджер для жизненного цикла приложения"""
    config: Settings = app.state.settings
    db: DatabaseHelper = app.state.db
    logger.info(f"🚀 Starting {config.app_name} in {'DEBUG' if config.debug else 'PRODUCTION'} mode")
    logger.info(f"📝 Database: {_masked_db_url(config)}")

    # Проверка подключения к базе данных при старте
    try:
        async with db.session_factory() as session:
            await session.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        raise

    await app.state.object_store.ensure_ready()

    cleanup_task = None
    if config.cleanup.ENABLED:
        cleanup_task = asyncio.create_task(
            periodic_cleanup(db, app.state.object_store, config.cleanup.INTERVAL_SECONDS, app.state.clock)
        )

    yield

    # Shutdown
    if cleanup_task is not None:
        cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup_task
    await db.dispose()
    logger.info("👋 Application shutdown complete")


def create_app(
    config: Optional[Settings] = None,
    db: Optional[DatabaseHelper] = None,
    object_store: Optional[ObjectStore] = None,
    identity_provider: Optional[IdentityProvider] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Собирает приложение; все внешние зависимости передаются явно"""
    config = config or settings

    app = FastAPI(
        title=config.app_name,
        debug=config.debug,
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
    )

    app.state.settings = config
    app.state.db = db or create_db_helper(config)
    app.state.object_store = object_store or create_object_store(config)
    app.state.identity_provider = identity_provider or GitHubIdentityProvider()
    app.state.clock = clock
    app.state.limiter = limiter

    # Настройка CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Подключение роутеров
    app.include_router(api_router, prefix="/api")

    @app.get("/health", summary="Health check", tags=["health"])
    async def health_check():
        """Проверка здоровья приложения"""
        try:
            async with app.state.db.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "database": "connected",
                "app_name": config.app_name,
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "database": "connection failed",
                    "error": str(e) if config.debug else "Database connection error"
                }
            )

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Глобальный обработчик исключений
    @app.exception_handler(AppException)
    async def app_exception_handler(request, exc: AppException):
        """Глобальный обработчик кастомных исключений"""
        if exc.status_code >= 500:
            logger.error(f"AppException: {exc.detail} (type: {type(exc).__name__})")
        else:
            logger.info(f"AppException: {exc.detail} (type: {type(exc).__name__})")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error": type(exc).__name__,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc: Exception):
        """Глобальный обработчик всех исключений"""
        logger.exception(f"Unhandled exception: {exc}")

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": "InternalServerError",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "debug_info": str(exc) if config.debug else None
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tempshare.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning",
        access_log=False
    )
