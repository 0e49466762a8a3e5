"""Boundary types for drag-and-drop payloads coming from the UI layer.

A ``DataTransfer`` mirrors what a browser drop event carries: string payloads
keyed by MIME type plus file items. OS file drags expose directories through
an entry/reader API that is modelled by the ``DropEntry`` and
``DirectoryReader`` protocols.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from ..exceptions import NodeNotFoundError
from ..schemas.tree import FolderNode
from .store import TreeStore

# Private format for tree-to-tree drags. Never a generic type such as
# text/plain or Files, so it cannot be confused with a native OS drag.
BRIDGE_MIME_TYPE = "application/x-foldly-tree-items"


@dataclass
class DroppedFile:
    """A file handed over by the platform. ``handle`` stays opaque."""
    name: str
    size: int = 0
    mime_type: str = "application/octet-stream"
    handle: Any = None


class DirectoryReader(Protocol):
    async def read_entries(self) -> List["DropEntry"]:
        """Next batch of entries; an empty list means the directory is exhausted."""
        ...


class DropEntry(Protocol):
    name: str
    is_file: bool
    is_directory: bool

    async def get_file(self) -> DroppedFile:
        ...

    def create_reader(self) -> DirectoryReader:
        ...


@dataclass
class TransferItem:
    """One item of a drop. ``entry`` is None when the platform has no entry API."""
    kind: str  # "file" or "string"
    entry: Optional[DropEntry] = None
    file: Optional[DroppedFile] = None


@dataclass
class DataTransfer:
    data: Dict[str, str] = field(default_factory=dict)
    items: List[TransferItem] = field(default_factory=list)

    @property
    def types(self) -> List[str]:
        kinds = list(self.data)
        if any(item.kind == "file" for item in self.items):
            kinds.append("Files")
        return kinds

    def get_data(self, mime_type: str) -> str:
        return self.data.get(mime_type, "")

    def set_data(self, mime_type: str, value: str) -> None:
        self.data[mime_type] = value


class DropKind(str, Enum):
    BRIDGE = "bridge"
    OS_FILES = "os_files"
    UNSUPPORTED = "unsupported"


def classify_drop(data_transfer: DataTransfer) -> DropKind:
    """Bridge payloads are recognised first; only then do file items count."""
    if BRIDGE_MIME_TYPE in data_transfer.data:
        return DropKind.BRIDGE
    if any(item.kind == "file" for item in data_transfer.items):
        return DropKind.OS_FILES
    return DropKind.UNSUPPORTED


@dataclass(frozen=True)
class DropTarget:
    """Where something was dropped. ``item_id`` None means the tree root."""
    item_id: Optional[str] = None


def resolve_drop_folder(store: TreeStore, target: Optional[DropTarget]) -> Optional[str]:
    """Folder that receives a drop: the folder itself, or a file's parent."""
    if target is None or target.item_id is None:
        return None
    if not store.has_node(target.item_id):
        raise NodeNotFoundError(target.item_id)
    node = store.get_node(target.item_id)
    if isinstance(node, FolderNode):
        return node.id
    return node.parent_id
