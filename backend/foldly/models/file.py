"""File records, scoped either to a link or to a workspace."""

from enum import Enum

from sqlalchemy import (
    BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    String, Text,
)
from sqlalchemy.sql import func

from ..database import Base


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class File(Base):
    """Metadata for one stored blob."""

    __tablename__ = "files"
    __table_args__ = (
        CheckConstraint(
            "(workspace_id IS NULL) <> (link_id IS NULL)",
            name="ck_files_single_owner",
        ),
        Index("ix_files_workspace_folder", "workspace_id", "folder_id"),
        Index("ix_files_link_folder", "link_id", "folder_id"),
    )

    id = Column(String(50), primary_key=True)
    workspace_id = Column(String(50), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True)
    link_id = Column(String(50), ForeignKey("links.id", ondelete="CASCADE"), nullable=True)
    folder_id = Column(String(50), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True)

    file_name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=True)
    file_size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(255), nullable=False, default="application/octet-stream")
    extension = Column(String(32), nullable=True)
    storage_path = Column(Text, nullable=False)
    checksum = Column(String(128), nullable=True)
    processing_status = Column(String(20), nullable=False, default=ProcessingStatus.PENDING.value)

    sort_order = Column(Integer, nullable=False, default=0)
    download_count = Column(Integer, nullable=False, default=0)
    copied_from_file_id = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
