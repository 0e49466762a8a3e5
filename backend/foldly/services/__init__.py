"""Business logic services."""

from .copy_service import CopyService
from .tree_service import TreeService, file_to_node, folder_to_node

__all__ = ["CopyService", "TreeService", "file_to_node", "folder_to_node"]
