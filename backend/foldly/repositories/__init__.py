from .base import BaseRepository, OwnerScope
from .file_repository import FileRepository
from .folder_repository import FolderRepository
from .owner_repository import LinkRepository, WorkspaceRepository

__all__ = [
    "BaseRepository",
    "OwnerScope",
    "FileRepository",
    "FolderRepository",
    "LinkRepository",
    "WorkspaceRepository",
]
