"""Shared test fixtures for the Foldly backend test suite.

Every test runs against a fresh in-memory SQLite database (tables are
dropped and recreated around each test) and a fresh in-memory blob store.
"""

import os

# Force auth off and use in-memory backends before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["STRICT_INVARIANTS"] = "true"
os.environ["LOG_FORMAT"] = "text"

import uuid
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from foldly import models  # noqa: F401  (registers tables)
from foldly.database import Base, SessionLocal, engine, get_db
from foldly.main import app
from foldly.models import File, Folder, Link, Workspace
from foldly.storage import BucketContext, InMemoryStorageAdapter, get_storage

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Recreate all tables for each test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def storage() -> InMemoryStorageAdapter:
    return InMemoryStorageAdapter()


@pytest.fixture()
def client(db, storage):
    """FastAPI TestClient with DB and storage dependencies overridden."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def user_headers() -> dict:
    return {"X-User-Id": USER_ID}


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

def _id() -> str:
    return str(uuid.uuid4())


def make_workspace(db, user_id: str = USER_ID, **overrides) -> Workspace:
    workspace = Workspace(id=overrides.pop("id", _id()), user_id=user_id, name="My Workspace", **overrides)
    db.add(workspace)
    db.commit()
    return workspace


def make_link(db, user_id: str = USER_ID, slug: Optional[str] = None, **overrides) -> Link:
    link_id = overrides.pop("id", _id())
    link = Link(id=link_id, user_id=user_id, slug=slug or f"link-{link_id[:8]}", **overrides)
    db.add(link)
    db.commit()
    return link


def make_folder(
    db,
    name: str,
    link: Optional[Link] = None,
    workspace: Optional[Workspace] = None,
    parent: Optional[Folder] = None,
    **overrides,
) -> Folder:
    folder = Folder(
        id=overrides.pop("id", _id()),
        link_id=link.id if link else None,
        workspace_id=workspace.id if workspace else None,
        parent_folder_id=parent.id if parent else None,
        name=name,
        path=f"{parent.path}/{name}" if parent else name,
        depth=parent.depth + 1 if parent else 0,
        **overrides,
    )
    db.add(folder)
    db.commit()
    return folder


def make_file(
    db,
    name: str,
    link: Optional[Link] = None,
    workspace: Optional[Workspace] = None,
    folder: Optional[Folder] = None,
    size: int = 100,
    storage: Optional[InMemoryStorageAdapter] = None,
    **overrides,
) -> File:
    """Create a file record; with ``storage`` also put its blob in place."""
    owner_id = link.id if link else workspace.id
    storage_path = overrides.pop("storage_path", f"{owner_id}/{_id()[:8]}_{name}")
    record = File(
        id=overrides.pop("id", _id()),
        link_id=link.id if link else None,
        workspace_id=workspace.id if workspace else None,
        folder_id=folder.id if folder else None,
        file_name=name,
        original_name=name,
        file_size=size,
        mime_type=overrides.pop("mime_type", "application/octet-stream"),
        extension=name.rsplit(".", 1)[-1].lower() if "." in name else None,
        storage_path=storage_path,
        processing_status="completed",
        **overrides,
    )
    db.add(record)
    db.commit()
    if storage is not None:
        context = BucketContext.SHARED if link else BucketContext.WORKSPACE
        storage.put_blob(storage_path, context, f"blob:{name}".encode())
    return record
