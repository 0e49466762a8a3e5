"""Process-local storage adapter for development and tests."""

import logging
import threading
from typing import Dict, Tuple

from ..exceptions import StorageError
from .base import BucketContext, StorageAdapter

logger = logging.getLogger(__name__)


class InMemoryStorageAdapter(StorageAdapter):
    """Keeps blobs in a dict per bucket context. Thread-safe."""

    def __init__(self):
        self._blobs: Dict[Tuple[BucketContext, str], bytes] = {}
        self._lock = threading.Lock()

    def put_blob(self, key: str, context: BucketContext, content: bytes = b"") -> None:
        with self._lock:
            self._blobs[(context, key)] = content

    def get_blob(self, key: str, context: BucketContext) -> bytes:
        with self._lock:
            try:
                return self._blobs[(context, key)]
            except KeyError:
                raise StorageError(f"Blob not found in {context.value}: {key}", key=key) from None

    def copy_blob(self, source_key, dest_key, source_context, dest_context) -> str:
        with self._lock:
            content = self._blobs.get((source_context, source_key))
            if content is None:
                raise StorageError(
                    f"Source blob not found in {source_context.value}: {source_key}",
                    key=source_key,
                )
            self._blobs[(dest_context, dest_key)] = content
        logger.debug(
            "Copied blob",
            extra={"source_key": source_key, "dest_key": dest_key, "dest_context": dest_context.value},
        )
        return dest_key

    def delete_blob(self, key: str, context: BucketContext) -> None:
        with self._lock:
            self._blobs.pop((context, key), None)

    def exists(self, key: str, context: BucketContext) -> bool:
        with self._lock:
            return (context, key) in self._blobs

    def keys(self, context: BucketContext) -> list:
        with self._lock:
            return sorted(key for ctx, key in self._blobs if ctx == context)
