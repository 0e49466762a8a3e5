"""Repository for folder records."""

from typing import List, Optional

from ..models.folder import Folder
from .base import BaseRepository, OwnerScope


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders."""

    model_class = Folder
    record_kind = "folder"

    def get_children(self, parent_id: Optional[str], scope: OwnerScope) -> List[Folder]:
        """Direct subfolders of ``parent_id`` (None = scope root)."""
        query = self._scoped_query(scope)
        if parent_id is None:
            query = query.filter(Folder.parent_folder_id.is_(None))
        else:
            query = query.filter(Folder.parent_folder_id == parent_id)
        return query.order_by(Folder.sort_order, Folder.name, Folder.id).all()

    def list_by_scope(self, scope: OwnerScope) -> List[Folder]:
        return self._scoped_query(scope).order_by(Folder.depth, Folder.sort_order, Folder.name).all()

    def update_aggregates(self, folder_id: str, file_count: int, total_size: int) -> Folder:
        """Store a folder's file count and byte total. Rolls back and re-raises on failure."""
        folder = self.get_by_id(folder_id)
        folder.file_count = file_count
        folder.total_size = total_size
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(folder)
        return folder
