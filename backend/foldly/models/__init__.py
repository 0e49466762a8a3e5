"""Database models."""

from .owner import Workspace, Link
from .folder import Folder
from .file import File, ProcessingStatus

__all__ = ["Workspace", "Link", "Folder", "File", "ProcessingStatus"]
