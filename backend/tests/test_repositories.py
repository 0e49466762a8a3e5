"""Tests for scoped folder/file repositories."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from foldly.exceptions import RecordNotFoundError, ValidationError
from foldly.repositories import FileRepository, FolderRepository, OwnerScope
from tests.conftest import make_file, make_folder, make_link, make_workspace


class TestOwnerScope:

    def test_exactly_one_owner(self):
        with pytest.raises(ValidationError):
            OwnerScope()
        with pytest.raises(ValidationError):
            OwnerScope(link_id="l", workspace_id="w")


class TestFolderRepository:

    def test_children_are_scoped(self, db):
        link = make_link(db)
        ws = make_workspace(db)
        link_root = make_folder(db, "uploads", link=link)
        make_folder(db, "mine", workspace=ws)
        make_folder(db, "nested", link=link, parent=link_root)

        repo = FolderRepository(db)
        assert [f.name for f in repo.get_children(None, OwnerScope.link(link.id))] == ["uploads"]
        assert [f.name for f in repo.get_children(link_root.id, OwnerScope.link(link.id))] == ["nested"]
        assert [f.name for f in repo.get_children(None, OwnerScope.workspace(ws.id))] == ["mine"]

    def test_get_by_id_raises_when_missing(self, db):
        with pytest.raises(RecordNotFoundError):
            FolderRepository(db).get_by_id("missing")
        assert FolderRepository(db).get_by_id_optional("missing") is None

    def test_delete(self, db):
        ws = make_workspace(db)
        folder = make_folder(db, "tmp", workspace=ws)
        repo = FolderRepository(db)
        assert repo.delete(folder.id) is True
        assert repo.delete(folder.id) is False

    def test_update_aggregates(self, db):
        ws = make_workspace(db)
        folder = make_folder(db, "reports", workspace=ws)
        updated = FolderRepository(db).update_aggregates(folder.id, file_count=3, total_size=300)
        assert (updated.file_count, updated.total_size) == (3, 300)

    def test_failed_aggregate_update_rolls_back(self, db):
        ws = make_workspace(db)
        folder = make_folder(db, "reports", workspace=ws)
        repo = FolderRepository(db)
        repo.update_aggregates(folder.id, file_count=3, total_size=300)

        with patch.object(db, "commit", side_effect=SQLAlchemyError("connection lost")):
            with pytest.raises(SQLAlchemyError):
                repo.update_aggregates(folder.id, file_count=9, total_size=900)

        reloaded = repo.get_by_id(folder.id)
        assert (reloaded.file_count, reloaded.total_size) == (3, 300)
        # The session keeps working for later writes.
        assert make_folder(db, "next", workspace=ws).id


class TestFileRepository:

    def test_children_sorted(self, db):
        link = make_link(db)
        make_file(db, "b.txt", link=link)
        make_file(db, "a.txt", link=link)
        make_file(db, "first.txt", link=link, sort_order=-1)
        names = [f.file_name for f in FileRepository(db).get_children(None, OwnerScope.link(link.id))]
        assert names == ["first.txt", "a.txt", "b.txt"]
