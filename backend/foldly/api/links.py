"""Link API: read-only tree view and selection size preview."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext, require_auth
from ..database import get_db
from ..exceptions import OwnershipError
from ..repositories import LinkRepository
from ..schemas.copy import SizeRequest, SizeResponse
from ..schemas.tree import TreeView
from ..services.copy_service import CopyService
from ..services.tree_service import TreeService
from ..storage import StorageAdapter, get_storage

router = APIRouter(prefix="/api/links", tags=["links"])


def _require_owner(db: Session, link_id: str, auth: AuthContext) -> None:
    link = LinkRepository(db).get_by_id(link_id)
    if link.user_id != auth.user_id:
        raise OwnershipError("Link does not belong to the current user", details={"link_id": link_id})


@router.get("/{link_id}/tree", response_model=TreeView)
def get_link_tree(
    link_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
):
    _require_owner(db, link_id, auth)
    return TreeService(db).load_link_tree(link_id).snapshot()


@router.post("/{link_id}/size", response_model=SizeResponse)
def get_selection_size(
    link_id: str,
    request: SizeRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_auth),
    storage: StorageAdapter = Depends(get_storage),
):
    """Total bytes of the selected link files, for a copy preview."""
    _require_owner(db, link_id, auth)
    total = CopyService(db, storage, auth.user_id).get_files_total_size(request.file_ids, link_id=link_id)
    return SizeResponse(total_size=total)
