"""API routes."""

from .links import router as links_router
from .workspaces import router as workspaces_router

__all__ = ["links_router", "workspaces_router"]
