# tempshare/tasks/cleanup.py
"""Очистка истёкших файлов: разовый проход для cron (tempshare-cleanup)
и необязательный цикл внутри процесса API"""
import asyncio
import logging
import sys
from typing import Callable, Optional
from datetime import datetime
from tempshare.core.config import Settings, get_settings
from tempshare.core.database import DatabaseHelper, create_db_helper
from tempshare.models.base import utcnow
from tempshare.services.reconciler import ExpirationReconciler
from tempshare.storage import ObjectStore, create_object_store

logger = logging.getLogger(__name__)


async def sweep_once(
    db: DatabaseHelper,
    object_store: ObjectStore,
    clock: Callable[[], datetime] = utcnow,
) -> int:
    async with db.session_factory() as session:
        reconciler = ExpirationReconciler(session, object_store, clock=clock)
        return await reconciler.sweep()


async def run_cleanup(config: Optional[Settings] = None) -> int:
    """Один проход очистки; ничего не требует на вход"""
    config = config or get_settings()
    db = create_db_helper(config)
    object_store = create_object_store(config)
    try:
        deleted_count = await sweep_once(db, object_store)
    finally:
        await db.dispose()
    logger.info(f"Cleaned up {deleted_count} expired files")
    return deleted_count


async def periodic_cleanup(
    db: DatabaseHelper,
    object_store: ObjectStore,
    interval_seconds: int,
    clock: Callable[[], datetime] = utcnow,
) -> None:
    """Бесконечный цикл очистки внутри процесса API (отменяется при остановке)"""
    logger.info(f"In-process cleanup every {interval_seconds}s")
    while True:
        try:
            await sweep_once(db, object_store, clock)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Cleanup sweep failed")
        await asyncio.sleep(interval_seconds)


def main() -> None:
    config = get_settings()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    try:
        asyncio.run(run_cleanup(config))
    except Exception:
        logger.exception("Cleanup task failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
