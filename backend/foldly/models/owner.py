"""Ownership roots: a user's workspace and the upload links they publish."""

from sqlalchemy import Boolean, Column, DateTime, Index, String
from sqlalchemy.sql import func

from ..database import Base


class Workspace(Base):
    """A user's private, persistent file area."""

    __tablename__ = "workspaces"
    __table_args__ = (
        Index("ix_workspaces_user_id", "user_id"),
    )

    id = Column(String(50), primary_key=True)
    user_id = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False, default="My Workspace")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Link(Base):
    """A shareable endpoint through which collaborators upload files."""

    __tablename__ = "links"
    __table_args__ = (
        Index("ix_links_user_id", "user_id"),
    )

    id = Column(String(50), primary_key=True)
    user_id = Column(String(50), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    title = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
