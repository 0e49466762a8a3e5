"""User-driven tree mutations: rename, insert, remove and internal drag-drop.

Handlers hold a reference to a TreeStore and never touch node objects
directly. Nothing here performs I/O; persistence happens elsewhere.
"""

import logging
import uuid
from typing import List, Optional

from ..models.file import ProcessingStatus
from ..schemas.tree import FileNode, FolderNode, TreeNode
from . import sort_policy
from .names import file_extension, validate_name
from .store import TreeStore

logger = logging.getLogger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


class TreeMutations:
    """Mutation handlers bound to one TreeStore.

    Public methods:
        rename         -- rename in place, cascading folder paths
        insert_file    -- optimistic file insert (negative sort_order)
        insert_folder  -- optimistic folder insert (negative sort_order)
        remove         -- remove items and their subtrees
        internal_drop  -- reorder/move inside this tree
    """

    def __init__(self, store: TreeStore):
        self.store = store

    def rename(self, node_id: str, new_name: str) -> TreeNode:
        name = validate_name(new_name)
        node = self.store.rename(node_id, name)
        logger.debug("Renamed node", extra={"node_id": node_id, "tree_id": self.store.tree_id})
        return node

    def insert_file(
        self,
        parent_id: Optional[str],
        name: str,
        mime_type: str = "application/octet-stream",
        file_size: int = 0,
        processing_status: ProcessingStatus = ProcessingStatus.PENDING,
    ) -> FileNode:
        name = validate_name(name)
        node = FileNode(
            id=_new_id("file"),
            name=name,
            parent_id=parent_id,
            sort_order=self._leading_sort_order(parent_id),
            mime_type=mime_type or "application/octet-stream",
            file_size=file_size,
            extension=file_extension(name),
            processing_status=processing_status,
        )
        return self.store.upsert(node)

    def insert_folder(self, parent_id: Optional[str], name: str) -> FolderNode:
        node = FolderNode(
            id=_new_id("folder"),
            name=validate_name(name),
            parent_id=parent_id,
            sort_order=self._leading_sort_order(parent_id),
        )
        return self.store.upsert(node)

    def remove(self, node_ids: List[str]) -> List[str]:
        """Remove each id with its subtree; ids already gone with an ancestor are skipped."""
        removed: List[str] = []
        for node_id in node_ids:
            if node_id in removed:
                continue
            removed.extend(self.store.remove(node_id))
        return removed

    def internal_drop(self, target_folder_id: Optional[str], new_children: List[str]) -> List[str]:
        """Apply a drop inside this tree.

        ``new_children`` is the full ordered child list the target should end
        up with. Moved items leave their old folders and the target takes the
        new order in one step; an id is never listed twice or dropped.
        Returns the ids that changed parent.
        """
        moved = self.store.move_many(target_folder_id, list(new_children))
        logger.info(
            "Tree drop applied",
            extra={
                "tree_id": self.store.tree_id,
                "target_folder_id": target_folder_id,
                "moved": len(moved),
                "reordered": len(new_children) - len(moved),
            },
        )
        return moved

    def _leading_sort_order(self, parent_id: Optional[str]) -> int:
        siblings = [self.store.get_node(sid) for sid in self.store.get_children(parent_id)]
        return sort_policy.next_insert_sort_order(siblings)
