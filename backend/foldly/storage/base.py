"""Storage adapter contract, bucket contexts and key layout."""

import re
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from ..exceptions import StorageError


class BucketContext(str, Enum):
    """Closed set of storage partitions."""
    SHARED = "shared"        # files uploaded through links
    WORKSPACE = "workspace"  # personal workspace files


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(file_name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", file_name.strip()).strip("._")
    return cleaned or "file"


def workspace_key(user_id: str, folder_id: Optional[str], file_name: str) -> str:
    """Key for a workspace blob: ``{user_id}/{folder_id|root}/{unique}_{name}``.

    The first segment must be the owning user's id; path-based bucket
    policies authorise on it.
    """
    if not user_id or "/" in user_id:
        raise StorageError(f"Invalid user id for storage key: {user_id!r}")
    unique = uuid.uuid4().hex[:12]
    return f"{user_id}/{folder_id or 'root'}/{unique}_{safe_file_name(file_name)}"


def ensure_user_scoped(key: str, user_id: str) -> None:
    if key.split("/", 1)[0] != user_id:
        raise StorageError("Workspace key must start with the owner's user id", key=key)


class StorageAdapter(ABC):
    """Blob operations the copy engine depends on.

    Implementations raise ``StorageError`` on failure.
    """

    @abstractmethod
    def copy_blob(
        self,
        source_key: str,
        dest_key: str,
        source_context: BucketContext,
        dest_context: BucketContext,
    ) -> str:
        """Copy one blob across contexts. Returns the destination key."""

    @abstractmethod
    def delete_blob(self, key: str, context: BucketContext) -> None:
        """Delete one blob. Deleting a missing key is not an error."""

    @abstractmethod
    def exists(self, key: str, context: BucketContext) -> bool:
        """Whether a blob is present."""
