"""Drag payloads between two independently rendered trees.

A link tree (read-only) and a workspace tree never share memory, so a drag
from one to the other carries a small JSON payload under a private MIME
type. Only link → workspace copies are accepted: link content is immutable
from the workspace's side.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..schemas.copy import CopyItem, CopyResult
from ..schemas.tree import FolderNode
from .store import TreeStore
from .transfer import (
    BRIDGE_MIME_TYPE,
    DataTransfer,
    DropKind,
    DropTarget,
    classify_drop,
    resolve_drop_folder,
)

logger = logging.getLogger(__name__)


class TreeType(str, Enum):
    LINK = "link"
    WORKSPACE = "workspace"


@dataclass(frozen=True)
class TreeDescriptor:
    """Identity of one rendered tree instance."""
    tree_id: str
    tree_type: TreeType
    link_id: Optional[str] = None
    workspace_id: Optional[str] = None


class BridgeItem(BaseModel):
    id: str
    name: str
    type: Literal["file", "folder"]


class DragPayload(BaseModel):
    source_tree_id: str
    source_type: TreeType
    source_link_id: Optional[str] = None
    items: List[BridgeItem] = Field(min_length=1)
    operation: Literal["copy"] = "copy"


# (items, source_link_id, target_folder_id) -> CopyResult
CopyFunction = Callable[[List[CopyItem], str, Optional[str]], CopyResult]


def is_bridge_drop(data_transfer: DataTransfer) -> bool:
    return classify_drop(data_transfer) == DropKind.BRIDGE


def unpack(data_transfer: DataTransfer) -> Optional[DragPayload]:
    """Decode the private payload; None when absent or malformed."""
    raw = data_transfer.get_data(BRIDGE_MIME_TYPE)
    if not raw:
        return None
    try:
        return DragPayload.model_validate_json(raw)
    except PydanticValidationError as exc:
        logger.warning("Malformed tree drag payload", extra={"error": str(exc)})
        return None


class CrossTreeBridge:
    """Packs selections for outgoing drags and vets incoming ones.

    Public methods:
        package_selection -- serialise selected ids into a drag payload
        can_accept        -- capability check for an incoming drop
        accept_drop       -- copy an accepted drop, then merge the new nodes
    """

    def __init__(self, descriptor: TreeDescriptor, store: TreeStore):
        self.descriptor = descriptor
        self.store = store

    def package_selection(self, selected_ids: List[str]) -> Dict[str, str]:
        """Payload for a drag starting in this tree, keyed by the private MIME type.

        A selected item whose ancestor is also selected is left out; copying
        the ancestor already brings it along.
        """
        if not selected_ids:
            raise ValidationError("Nothing selected to drag", field="selected_ids")

        selected = list(dict.fromkeys(selected_ids))
        selected_set = set(selected)
        items: List[BridgeItem] = []
        for node_id in selected:
            node = self.store.get_node(node_id)
            if self._has_selected_ancestor(node.parent_id, selected_set):
                continue
            items.append(BridgeItem(
                id=node.id,
                name=node.name,
                type="folder" if isinstance(node, FolderNode) else "file",
            ))

        payload = DragPayload(
            source_tree_id=self.descriptor.tree_id,
            source_type=self.descriptor.tree_type,
            source_link_id=self.descriptor.link_id,
            items=items,
        )
        return {BRIDGE_MIME_TYPE: payload.model_dump_json()}

    def can_accept(self, data_transfer: DataTransfer) -> bool:
        if not is_bridge_drop(data_transfer):
            return False
        payload = unpack(data_transfer)
        if payload is None:
            return False
        return (
            self.descriptor.tree_type == TreeType.WORKSPACE
            and payload.source_type == TreeType.LINK
            and payload.source_link_id is not None
            and payload.source_tree_id != self.descriptor.tree_id
        )

    def accept_drop(
        self,
        data_transfer: DataTransfer,
        target: Optional[DropTarget],
        copy_fn: CopyFunction,
    ) -> CopyResult:
        """Copy the dropped link items, then merge the destination-owned nodes.

        Source ids are never written into this store; only the nodes the copy
        created (with their new ids) are merged, after the copy returns.
        """
        if not self.can_accept(data_transfer):
            raise ValidationError(
                "This tree cannot accept the dropped items", field="data_transfer"
            )
        payload = unpack(data_transfer)
        target_folder_id = resolve_drop_folder(self.store, target)
        items = [CopyItem(id=item.id, type=item.type, name=item.name) for item in payload.items]

        result = copy_fn(items, payload.source_link_id, target_folder_id)

        source_ids = {item.id for item in payload.items}
        created = [node for node in result.created_nodes if node.id not in source_ids]
        self.store.apply_patch(upserts=created)

        logger.info(
            "Cross-tree drop merged",
            extra={
                "tree_id": self.descriptor.tree_id,
                "source_tree_id": payload.source_tree_id,
                "merged_nodes": len(created),
                "failed_items": len(result.failed_items),
            },
        )
        return result

    def _has_selected_ancestor(self, parent_id: Optional[str], selected: set) -> bool:
        while parent_id is not None:
            if parent_id in selected:
                return True
            parent_id = self.store.get_node(parent_id).parent_id
        return False
