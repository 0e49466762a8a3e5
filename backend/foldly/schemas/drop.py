"""Schemas for drops arriving from another tree over HTTP."""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from .copy import CopyResult
from .tree import TreeView


class DropRequest(BaseModel):
    """Raw drag data (MIME type -> string payload) plus the drop target."""
    data: Dict[str, str] = Field(default_factory=dict)
    target_id: Optional[str] = None  # folder, file (delegates to its parent) or None = root


class DropResponse(BaseModel):
    result: CopyResult
    tree: TreeView
