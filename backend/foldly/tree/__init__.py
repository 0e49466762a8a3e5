"""Hierarchical tree engine: ordering, the node store, mutations and drag-drop."""

from .store import TreeStore
from .mutations import TreeMutations
from .transfer import BRIDGE_MIME_TYPE, DataTransfer, DropTarget, DroppedFile, TransferItem
from .foreign_drop import ForeignDropResult, handle_foreign_drop
from .bridge import CrossTreeBridge, DragPayload, TreeDescriptor, TreeType

__all__ = [
    "TreeStore", "TreeMutations",
    "BRIDGE_MIME_TYPE", "DataTransfer", "DropTarget", "DroppedFile", "TransferItem",
    "ForeignDropResult", "handle_foreign_drop",
    "CrossTreeBridge", "DragPayload", "TreeDescriptor", "TreeType",
]
