"""Loads persisted folders and files into a TreeStore."""

import logging
from typing import List

from sqlalchemy.orm import Session

from ..models.file import File
from ..models.folder import Folder
from ..repositories import FileRepository, FolderRepository, LinkRepository, OwnerScope, WorkspaceRepository
from ..schemas.tree import FileNode, FolderNode, TreeNode
from ..tree import TreeStore

logger = logging.getLogger(__name__)


def folder_to_node(folder: Folder) -> FolderNode:
    return FolderNode(
        id=folder.id,
        name=folder.name,
        parent_id=folder.parent_folder_id,
        sort_order=folder.sort_order or 0,
        path=folder.path or folder.name,
        depth=folder.depth or 0,
        file_count=folder.file_count or 0,
        total_size=folder.total_size or 0,
        is_archived=bool(folder.is_archived),
    )


def file_to_node(record: File) -> FileNode:
    return FileNode(
        id=record.id,
        name=record.file_name,
        parent_id=record.folder_id,
        sort_order=record.sort_order or 0,
        mime_type=record.mime_type,
        file_size=record.file_size or 0,
        extension=record.extension,
        processing_status=record.processing_status,
    )


class TreeService:
    """Builds in-memory trees from link- or workspace-scoped records.

    Public methods:
        load_workspace_tree -- tree of a workspace (tree id "workspace-<id>")
        load_link_tree      -- tree of a link upload area (tree id "link-<id>")
    """

    def __init__(self, db: Session):
        self.db = db
        self.folder_repo = FolderRepository(db)
        self.file_repo = FileRepository(db)

    def load_workspace_tree(self, workspace_id: str) -> TreeStore:
        WorkspaceRepository(self.db).get_by_id(workspace_id)
        return self._load(OwnerScope.workspace(workspace_id), f"workspace-{workspace_id}")

    def load_link_tree(self, link_id: str) -> TreeStore:
        LinkRepository(self.db).get_by_id(link_id)
        return self._load(OwnerScope.link(link_id), f"link-{link_id}")

    def _load(self, scope: OwnerScope, tree_id: str) -> TreeStore:
        nodes: List[TreeNode] = [folder_to_node(f) for f in self.folder_repo.list_by_scope(scope)]
        nodes.extend(file_to_node(f) for f in self.file_repo.list_by_scope(scope))
        store = TreeStore.from_nodes(nodes, tree_id=tree_id)
        logger.debug("Tree loaded", extra={"tree_id": tree_id, "nodes": len(store)})
        return store
