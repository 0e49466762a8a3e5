"""Repository for file records."""

from typing import List, Optional

from sqlalchemy import func

from ..models.file import File
from .base import BaseRepository, OwnerScope


class FileRepository(BaseRepository[File]):
    """Data access layer for file metadata."""

    model_class = File
    record_kind = "file"

    def get_children(self, folder_id: Optional[str], scope: OwnerScope) -> List[File]:
        """Files directly inside ``folder_id`` (None = scope root)."""
        query = self._scoped_query(scope)
        if folder_id is None:
            query = query.filter(File.folder_id.is_(None))
        else:
            query = query.filter(File.folder_id == folder_id)
        return query.order_by(File.sort_order, File.file_name, File.id).all()

    def list_by_scope(self, scope: OwnerScope) -> List[File]:
        return self._scoped_query(scope).order_by(File.sort_order, File.file_name).all()

    def total_size(self, file_ids: List[str], scope: Optional[OwnerScope] = None) -> int:
        """Sum of ``file_size`` over the given ids. Unknown ids contribute nothing."""
        if not file_ids:
            return 0
        query = self.db.query(func.coalesce(func.sum(File.file_size), 0)).filter(File.id.in_(file_ids))
        if scope is not None:
            if scope.link_id is not None:
                query = query.filter(File.link_id == scope.link_id)
            else:
                query = query.filter(File.workspace_id == scope.workspace_id)
        return int(query.scalar() or 0)
