"""Tree node schemas: the tagged union shared by the tree engine and the API."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from ..models.file import ProcessingStatus


class _NodeBase(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    sort_order: int = 0


class FolderNode(_NodeBase):
    """A folder. ``children`` is derived by the TreeStore, never set by callers."""
    kind: Literal["folder"] = "folder"
    path: str = ""
    depth: int = 0
    children: List[str] = Field(default_factory=list)
    file_count: int = 0
    total_size: int = 0
    is_archived: bool = False


class FileNode(_NodeBase):
    """A file leaf."""
    kind: Literal["file"] = "file"
    mime_type: str = "application/octet-stream"
    file_size: int = 0
    extension: Optional[str] = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING


TreeNode = Annotated[Union[FolderNode, FileNode], Field(discriminator="kind")]


class TreeView(BaseModel):
    """Flat, serialisable view of a tree: root ordering plus the node map."""
    tree_id: str
    root: List[str]
    nodes: List[TreeNode]
