# tempshare/storage/factory.py
import logging
from tempshare.core.config import settings
from tempshare.storage.base import ObjectStore

logger = logging.getLogger(__name__)


def create_object_store(config=None) -> ObjectStore:
    """Хранилище по настройке STORAGE__BACKEND; неизвестное имя - ValueError"""
    storage_config = (config or settings).storage
    backend = storage_config.BACKEND.lower()

    if backend == "local":
        from tempshare.storage.local_store import LocalObjectStore

        logger.info(f"Object store: local filesystem at {storage_config.LOCAL_PATH}")
        return LocalObjectStore(storage_config.LOCAL_PATH)

    if backend == "minio":
        from tempshare.storage.minio_store import MinioObjectStore

        logger.info(
            f"Object store: MinIO at {storage_config.minio_url}, bucket {storage_config.MINIO_BUCKET_NAME}"
        )
        return MinioObjectStore.from_config(storage_config)

    raise ValueError(f"Unknown storage backend: {storage_config.BACKEND}")
