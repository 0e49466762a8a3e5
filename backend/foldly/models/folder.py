"""Folder records, scoped either to a link or to a workspace."""

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index,
    Integer, String, Text,
)
from sqlalchemy.sql import func

from ..database import Base


class Folder(Base):
    """A folder in a link upload area or in a workspace (never both)."""

    __tablename__ = "folders"
    __table_args__ = (
        CheckConstraint(
            "(workspace_id IS NULL) <> (link_id IS NULL)",
            name="ck_folders_single_owner",
        ),
        Index("ix_folders_workspace_parent", "workspace_id", "parent_folder_id"),
        Index("ix_folders_link_parent", "link_id", "parent_folder_id"),
    )

    id = Column(String(50), primary_key=True)
    workspace_id = Column(String(50), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True)
    link_id = Column(String(50), ForeignKey("links.id", ondelete="CASCADE"), nullable=True)
    parent_folder_id = Column(String(50), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True)

    name = Column(String(255), nullable=False)
    # Denormalized: "a/b/c" from ancestor names, no leading slash.
    path = Column(Text, nullable=False)
    depth = Column(Integer, nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)

    file_count = Column(Integer, nullable=False, default=0)
    total_size = Column(BigInteger, nullable=False, default=0)
    is_archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
