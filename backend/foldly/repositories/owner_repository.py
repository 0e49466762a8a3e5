"""Repositories for the ownership roots (workspaces and links)."""

from typing import Optional

from ..models.owner import Link, Workspace
from .base import BaseRepository


class WorkspaceRepository(BaseRepository[Workspace]):
    model_class = Workspace
    record_kind = "workspace"

    def get_for_user(self, user_id: str) -> Optional[Workspace]:
        return self._base_query().filter(Workspace.user_id == user_id).first()


class LinkRepository(BaseRepository[Link]):
    model_class = Link
    record_kind = "link"
