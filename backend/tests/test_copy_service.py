"""Tests for copying link content into a workspace."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from foldly.exceptions import CopyFailedError, OwnershipError, RecordNotFoundError
from foldly.models import File, Folder
from foldly.repositories import FileRepository, FolderRepository
from foldly.schemas.copy import CopyItem
from foldly.schemas.tree import FileNode, FolderNode
from foldly.services.copy_service import CopyService
from foldly.storage import BucketContext
from tests.conftest import OTHER_USER_ID, USER_ID, make_file, make_folder, make_link, make_workspace


@pytest.fixture()
def link(db):
    return make_link(db)


@pytest.fixture()
def workspace(db):
    return make_workspace(db)


@pytest.fixture()
def service(db, storage):
    return CopyService(db, storage, USER_ID, max_workers=4)


def _workspace_files(db, workspace):
    return db.query(File).filter(File.workspace_id == workspace.id).all()


def _workspace_folders(db, workspace):
    return db.query(Folder).filter(Folder.workspace_id == workspace.id).all()


class TestFolderCopy:

    def test_client_folder_copied_with_structure(self, db, storage, service, link, workspace):
        client_a = make_folder(db, "clientA", link=link)
        contracts = make_folder(db, "contracts", link=link, parent=client_a)
        a = make_file(db, "a.pdf", link=link, folder=client_a, size=100, storage=storage)
        make_file(db, "b.pdf", link=link, folder=client_a, size=50, storage=storage)
        make_file(db, "c.pdf", link=link, folder=contracts, size=25, storage=storage)

        result = service.copy_subtree(
            [CopyItem(id=client_a.id, type="folder", name="clientA")], link.id, workspace.id
        )

        assert result.copied_folders == 2
        assert result.copied_files == 3
        assert result.total_size == 175
        assert result.failed_items == []

        folders = {f.path: f for f in _workspace_folders(db, workspace)}
        assert set(folders) == {"clientA", "clientA/contracts"}
        assert folders["clientA"].depth == 0
        assert folders["clientA"].parent_folder_id is None
        assert folders["clientA/contracts"].depth == 1
        assert folders["clientA/contracts"].parent_folder_id == folders["clientA"].id
        # Aggregates cover direct files only.
        assert folders["clientA"].file_count == 2
        assert folders["clientA"].total_size == 150
        assert folders["clientA/contracts"].file_count == 1

        copies = {f.file_name: f for f in _workspace_files(db, workspace)}
        assert copies["a.pdf"].copied_from_file_id == a.id
        assert result.id_map[a.id] == copies["a.pdf"].id
        assert result.id_map[client_a.id] == folders["clientA"].id
        assert copies["a.pdf"].folder_id == folders["clientA"].id
        assert copies["a.pdf"].link_id is None
        assert copies["a.pdf"].processing_status == "completed"
        assert copies["a.pdf"].download_count == 0
        assert copies["a.pdf"].sort_order == -1
        for record in copies.values():
            assert record.storage_path.startswith(f"{USER_ID}/")
            assert storage.exists(record.storage_path, BucketContext.WORKSPACE)

        # Source side is untouched.
        assert db.query(File).filter(File.link_id == link.id).count() == 3

    def test_created_nodes_list_parents_first(self, db, storage, service, link, workspace):
        top = make_folder(db, "top", link=link)
        inner = make_folder(db, "inner", link=link, parent=top)
        make_file(db, "deep.txt", link=link, folder=inner, storage=storage)

        result = service.copy_subtree([CopyItem(id=top.id, type="folder")], link.id, workspace.id)

        seen = set()
        for node in result.created_nodes:
            assert node.parent_id is None or node.parent_id in seen
            seen.add(node.id)
        kinds = [type(node) for node in result.created_nodes]
        assert kinds.count(FolderNode) == 2
        assert kinds.count(FileNode) == 1

    def test_copy_into_target_folder(self, db, storage, service, link, workspace):
        projects = make_folder(db, "Projects", workspace=workspace)
        client_a = make_folder(db, "clientA", link=link)
        make_file(db, "a.pdf", link=link, folder=client_a, storage=storage)

        service.copy_subtree([CopyItem(id=client_a.id, type="folder")], link.id, workspace.id, projects.id)

        copied = db.query(Folder).filter(Folder.workspace_id == workspace.id, Folder.name == "clientA").one()
        assert copied.path == "Projects/clientA"
        assert copied.depth == 1
        assert copied.parent_folder_id == projects.id

    def test_nested_failure_reported_and_excluded_from_aggregates(
        self, db, storage, service, link, workspace
    ):
        folder = make_folder(db, "clientA", link=link)
        make_file(db, "ok.pdf", link=link, folder=folder, size=10, storage=storage)
        missing = make_file(db, "missing.pdf", link=link, folder=folder, size=99)  # no blob

        result = service.copy_subtree([CopyItem(id=folder.id, type="folder")], link.id, workspace.id)

        assert result.copied_folders == 1
        assert result.copied_files == 1
        assert result.failed_ids == [missing.id]
        copied_folder = _workspace_folders(db, workspace)[0]
        assert copied_folder.file_count == 1
        assert copied_folder.total_size == 10

    def test_aggregate_failure_keeps_folder_copied(self, db, storage, service, link, workspace):
        client_a = make_folder(db, "clientA", link=link)
        make_file(db, "inside.pdf", link=link, folder=client_a, size=40, storage=storage)
        loose = make_file(db, "loose.txt", link=link, size=5, storage=storage)

        with patch.object(
            FolderRepository, "update_aggregates", side_effect=SQLAlchemyError("lock timeout")
        ):
            result = service.copy_subtree(
                [CopyItem(id=client_a.id, type="folder"), CopyItem(id=loose.id, type="file")],
                link.id,
                workspace.id,
            )

        assert result.copied_folders == 1
        assert result.copied_files == 2
        assert result.failed_items == []
        assert client_a.id in result.id_map
        copied_folder = _workspace_folders(db, workspace)[0]
        assert copied_folder.id == result.id_map[client_a.id]
        assert copied_folder.file_count == 0
        folder_node = next(node for node in result.created_nodes if node.id == copied_folder.id)
        assert folder_node.file_count == 0


class TestFileCopy:

    def test_partial_failure_batch(self, db, storage, service, link, workspace):
        files = [make_file(db, f"f{i}.txt", link=link, size=i, storage=storage) for i in range(1, 6)]
        broken = files[2]
        storage.delete_blob(broken.storage_path, BucketContext.SHARED)

        result = service.copy_subtree(
            [CopyItem(id=f.id, type="file") for f in files], link.id, workspace.id
        )

        assert result.copied_files == 4
        assert result.failed_ids == [broken.id]
        assert result.failed_items[0].type == "file"
        assert result.failed_items[0].reason
        names = sorted(f.file_name for f in _workspace_files(db, workspace))
        assert names == ["f1.txt", "f2.txt", "f4.txt", "f5.txt"]

    def test_partial_failure_batch_with_foreign_item(self, db, storage, service, link, workspace):
        other_link = make_link(db)
        files = [
            make_file(db, f"f{i}.txt", link=other_link if i == 3 else link, size=i, storage=storage)
            for i in range(1, 6)
        ]

        result = service.copy_subtree(
            [CopyItem(id=f.id, type="file") for f in files], link.id, workspace.id
        )

        assert result.copied_files == 4
        assert result.failed_ids == [files[2].id]
        assert result.failed_items[0].reason == "File does not belong to the source link"
        assert result.total_size == 1 + 2 + 4 + 5
        names = sorted(f.file_name for f in _workspace_files(db, workspace))
        assert names == ["f1.txt", "f2.txt", "f4.txt", "f5.txt"]

    def test_storage_error_leaves_no_record(self, db, storage, service, link, workspace):
        good = make_file(db, "good.txt", link=link, storage=storage)
        bad = make_file(db, "bad.txt", link=link)  # blob never uploaded

        result = service.copy_subtree(
            [CopyItem(id=good.id, type="file"), CopyItem(id=bad.id, type="file")], link.id, workspace.id
        )

        assert result.failed_ids == [bad.id]
        assert [f.copied_from_file_id for f in _workspace_files(db, workspace)] == [good.id]

    def test_insert_failure_removes_copied_blob(self, db, storage, service, link, workspace):
        source = make_file(db, "doc.txt", link=link, storage=storage)

        with patch.object(FileRepository, "insert", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(CopyFailedError):
                service.copy_subtree([CopyItem(id=source.id, type="file")], link.id, workspace.id)

        assert storage.keys(BucketContext.WORKSPACE) == []
        assert _workspace_files(db, workspace) == []

    def test_file_from_other_link_is_an_item_failure(self, db, storage, service, link, workspace):
        other_link = make_link(db)
        foreign = make_file(db, "foreign.txt", link=other_link, storage=storage)
        own = make_file(db, "own.txt", link=link, storage=storage)

        result = service.copy_subtree(
            [CopyItem(id=foreign.id, type="file"), CopyItem(id=own.id, type="file")], link.id, workspace.id
        )

        assert result.copied_files == 1
        assert result.failed_ids == [foreign.id]

    def test_single_worker_pool(self, db, storage, link, workspace):
        files = [make_file(db, f"{i}.bin", link=link, storage=storage) for i in range(3)]
        service = CopyService(db, storage, USER_ID, max_workers=1)
        result = service.copy_subtree([CopyItem(id=f.id, type="file") for f in files], link.id, workspace.id)
        assert result.copied_files == 3


class TestCopyPreconditions:

    def test_nothing_copied_raises(self, db, service, link, workspace):
        with pytest.raises(CopyFailedError) as exc_info:
            service.copy_subtree([CopyItem(id="nope", type="file")], link.id, workspace.id)
        assert exc_info.value.status_code == 422
        assert exc_info.value.failed_items[0]["id"] == "nope"
        assert exc_info.value.message == "No items could be copied. Please check the items and try again."

    def test_unknown_link(self, service, workspace):
        with pytest.raises(RecordNotFoundError):
            service.copy_subtree([CopyItem(id="x", type="file")], "missing-link", workspace.id)

    def test_link_of_another_user(self, db, service, workspace):
        foreign_link = make_link(db, user_id=OTHER_USER_ID)
        with pytest.raises(OwnershipError):
            service.copy_subtree([CopyItem(id="x", type="file")], foreign_link.id, workspace.id)

    def test_workspace_of_another_user(self, db, service, link):
        foreign_ws = make_workspace(db, user_id=OTHER_USER_ID)
        with pytest.raises(OwnershipError):
            service.copy_subtree([CopyItem(id="x", type="file")], link.id, foreign_ws.id)

    def test_target_folder_in_another_workspace(self, db, service, link, workspace):
        other_ws = make_workspace(db)
        elsewhere = make_folder(db, "elsewhere", workspace=other_ws)
        with pytest.raises(OwnershipError):
            service.copy_subtree([CopyItem(id="x", type="file")], link.id, workspace.id, elsewhere.id)

    def test_target_folder_must_not_be_link_folder(self, db, service, link, workspace):
        link_folder = make_folder(db, "upload", link=link)
        with pytest.raises(OwnershipError):
            service.copy_subtree([CopyItem(id="x", type="file")], link.id, workspace.id, link_folder.id)


class TestTotalSize:

    def test_sums_known_files(self, db, service, link):
        a = make_file(db, "a", link=link, size=10)
        b = make_file(db, "b", link=link, size=32)
        assert service.get_files_total_size([a.id, b.id, "unknown"]) == 42

    def test_duplicates_counted_once(self, db, service, link):
        a = make_file(db, "a", link=link, size=10)
        assert service.get_files_total_size([a.id, a.id]) == 10

    def test_scoped_to_link(self, db, service, link):
        other = make_link(db)
        a = make_file(db, "a", link=link, size=10)
        b = make_file(db, "b", link=other, size=5)
        assert service.get_files_total_size([a.id, b.id], link_id=link.id) == 10

    def test_empty_selection(self, service):
        assert service.get_files_total_size([]) == 0
