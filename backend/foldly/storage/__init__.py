"""Object storage adapters."""

from functools import lru_cache

from ..core.config import StorageBackend, settings
from .base import BucketContext, StorageAdapter, ensure_user_scoped, workspace_key
from .memory import InMemoryStorageAdapter


@lru_cache(maxsize=1)
def get_storage() -> StorageAdapter:
    """Process-wide adapter chosen by ``STORAGE_BACKEND``. Usable as a FastAPI dependency."""
    if settings.storage_backend == StorageBackend.S3:
        from .s3 import S3StorageAdapter

        return S3StorageAdapter.from_settings(settings)
    return InMemoryStorageAdapter()


__all__ = [
    "BucketContext", "StorageAdapter", "InMemoryStorageAdapter",
    "ensure_user_scoped", "workspace_key", "get_storage",
]
