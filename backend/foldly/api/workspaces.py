"""Workspace API: tree view, copy from a link, and cross-tree drops."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import OwnershipError
from ..repositories import WorkspaceRepository
from ..schemas.copy import CopyRequest, CopyResult
from ..schemas.drop import DropRequest, DropResponse
from ..schemas.tree import TreeView
from ..services.copy_service import CopyService
from ..services.tree_service import TreeService
from ..storage import StorageAdapter, get_storage
from ..tree import CrossTreeBridge, DataTransfer, DropTarget, TreeDescriptor, TreeType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])


def _require_owner(db: Session, workspace_id: str, auth: AuthContext) -> None:
    workspace = WorkspaceRepository(db).get_by_id(workspace_id)
    if workspace.user_id != auth.user_id:
        raise OwnershipError(
            "Workspace does not belong to the current user",
            details={"workspace_id": workspace_id},
        )


@router.get("/{workspace_id}/tree", response_model=TreeView)
def get_workspace_tree(
    workspace_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    """Flat tree of a workspace: root ordering plus every node."""
    _require_owner(db, workspace_id, auth)
    return TreeService(db).load_workspace_tree(workspace_id).snapshot()


@router.post("/{workspace_id}/copy", response_model=CopyResult)
def copy_to_workspace(
    workspace_id: str,
    request: CopyRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    storage: StorageAdapter = Depends(get_storage),
):
    """Copy link files/folders into the workspace.

    Partial success returns 200 with ``failed_items``; nothing copied is a 422.
    """
    service = CopyService(db, storage, auth.user_id)
    return service.copy_subtree(
        request.items,
        request.source_link_id,
        workspace_id,
        request.target_folder_id,
    )


@router.post("/{workspace_id}/drop", response_model=DropResponse)
def drop_into_workspace(
    workspace_id: str,
    request: DropRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    storage: StorageAdapter = Depends(get_storage),
):
    """Accept a link-tree drag payload and merge the copies into the workspace tree."""
    _require_owner(db, workspace_id, auth)
    store = TreeService(db).load_workspace_tree(workspace_id)
    bridge = CrossTreeBridge(
        TreeDescriptor(tree_id=store.tree_id, tree_type=TreeType.WORKSPACE, workspace_id=workspace_id),
        store,
    )
    service = CopyService(db, storage, auth.user_id)

    def copy_fn(items, source_link_id, target_folder_id):
        return service.copy_subtree(items, source_link_id, workspace_id, target_folder_id)

    result = bridge.accept_drop(
        DataTransfer(data=dict(request.data)),
        DropTarget(item_id=request.target_id),
        copy_fn,
    )
    return DropResponse(result=result, tree=store.snapshot())
