# tempshare/storage/__init__.py
from .base import ObjectStore, StoredObject
from .factory import create_object_store

__all__ = ["ObjectStore", "StoredObject", "create_object_store"]
