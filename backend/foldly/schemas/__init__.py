"""Pydantic schemas."""

from .tree import FileNode, FolderNode, TreeNode, TreeView
from .copy import CopyItem, CopyRequest, CopyResult, FailedItem, SizeRequest, SizeResponse
from .drop import DropRequest, DropResponse

__all__ = [
    "FileNode", "FolderNode", "TreeNode", "TreeView",
    "CopyItem", "CopyRequest", "CopyResult", "FailedItem",
    "SizeRequest", "SizeResponse",
    "DropRequest", "DropResponse",
]
