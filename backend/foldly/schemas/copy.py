"""Schemas for copying link items into a workspace."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .tree import TreeNode

ItemType = Literal["file", "folder"]


class CopyItem(BaseModel):
    """One selected source item."""
    id: str
    type: ItemType
    name: str = ""


class CopyRequest(BaseModel):
    """Copy a selection from a link into the caller's workspace."""
    items: List[CopyItem]
    source_link_id: str
    target_folder_id: Optional[str] = None  # None = workspace root

    @field_validator('items')
    @classmethod
    def validate_items(cls, v: List[CopyItem]) -> List[CopyItem]:
        if not v:
            raise ValueError("Select at least one item to copy")
        return v


class FailedItem(BaseModel):
    """A source item that could not be copied, with a human-readable reason."""
    id: str
    type: ItemType
    reason: str


class CopyResult(BaseModel):
    """Aggregated outcome of a copy batch."""
    copied_files: int = 0
    copied_folders: int = 0
    total_size: int = 0
    failed_items: List[FailedItem] = Field(default_factory=list)
    # Destination-owned nodes, parents before children.
    created_nodes: List[TreeNode] = Field(default_factory=list)
    # Source id -> new destination id for every copied file and folder.
    id_map: Dict[str, str] = Field(default_factory=dict)

    @property
    def copied_total(self) -> int:
        return self.copied_files + self.copied_folders

    @property
    def failed_ids(self) -> List[str]:
        return [item.id for item in self.failed_items]


class SizeRequest(BaseModel):
    file_ids: List[str]


class SizeResponse(BaseModel):
    total_size: int
