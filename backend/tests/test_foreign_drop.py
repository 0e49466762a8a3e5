"""Tests for drops coming from the operating system (files and folders)."""

from typing import List, Optional

import pytest

from foldly.exceptions import ValidationError
from foldly.schemas.tree import FolderNode
from foldly.tree import (
    BRIDGE_MIME_TYPE,
    DataTransfer,
    DropTarget,
    DroppedFile,
    TransferItem,
    TreeStore,
    handle_foreign_drop,
)
from foldly.tree.foreign_drop import drain_directory


class FakeReader:
    """Hands out entries in fixed-size batches, then an empty batch."""

    def __init__(self, entries, batch_size: int = 1, fail_after: Optional[int] = None):
        self._entries = list(entries)
        self._batch_size = batch_size
        self._fail_after = fail_after
        self.calls = 0

    async def read_entries(self):
        self.calls += 1
        if self._fail_after is not None and self.calls > self._fail_after:
            raise OSError("permission denied")
        batch = self._entries[:self._batch_size]
        self._entries = self._entries[self._batch_size:]
        return batch


class FakeFileEntry:
    is_file = True
    is_directory = False

    def __init__(self, name: str, size: int = 10):
        self.name = name
        self._file = DroppedFile(name=name, size=size, mime_type="image/jpeg")

    async def get_file(self) -> DroppedFile:
        return self._file

    def create_reader(self):
        raise AssertionError("files have no reader")


class FakeDirEntry:
    is_file = False
    is_directory = True

    def __init__(self, name: str, children: List, batch_size: int = 1, fail_after: Optional[int] = None):
        self.name = name
        self.children = children
        self.batch_size = batch_size
        self.fail_after = fail_after

    async def get_file(self):
        raise AssertionError("directories have no file")

    def create_reader(self):
        return FakeReader(self.children, self.batch_size, self.fail_after)


def _os_drop(*entries) -> DataTransfer:
    return DataTransfer(items=[TransferItem(kind="file", entry=entry) for entry in entries])


@pytest.fixture()
def store():
    return TreeStore.from_nodes(
        [FolderNode(id="inbox", name="inbox")], tree_id="ws", strict=True
    )


class TestDrainDirectory:

    @pytest.mark.asyncio
    async def test_reads_until_empty_batch(self):
        reader = FakeReader([FakeFileEntry(f"{i}.jpg") for i in range(5)], batch_size=2)
        entries = await drain_directory(reader)
        assert [e.name for e in entries] == ["0.jpg", "1.jpg", "2.jpg", "3.jpg", "4.jpg"]
        # Three non-empty batches plus the terminating empty one.
        assert reader.calls == 4


class TestHandleForeignDrop:

    @pytest.mark.asyncio
    async def test_photos_folder_structure_preserved(self, store):
        photos = FakeDirEntry("Photos", [
            FakeFileEntry("a.jpg"),
            FakeDirEntry("2024", [FakeFileEntry("c.jpg")]),
            FakeFileEntry("b.jpg"),
        ])

        result = await handle_foreign_drop(store, _os_drop(photos), DropTarget(item_id="inbox"))

        assert sorted(f.name for f in result.folder_structure["Photos"]) == ["a.jpg", "b.jpg"]
        assert [f.name for f in result.folder_structure["Photos/2024"]] == ["c.jpg"]
        assert len(result.files) == 3
        assert result.summary() == (
            "Uploading 3 files from 1 folder. Folder structure will be preserved."
        )

        photos_id = result.created_folders["Photos"]
        year_id = result.created_folders["Photos/2024"]
        assert store.get_node(photos_id).parent_id == "inbox"
        assert store.get_node(year_id).path == "inbox/Photos/2024"
        names = sorted(store.get_node(i).name for i in store.get_children(photos_id))
        assert names == ["2024", "a.jpg", "b.jpg"]
        assert [store.get_node(i).name for i in store.get_children(year_id)] == ["c.jpg"]
        store.check_invariants()

    @pytest.mark.asyncio
    async def test_unreadable_folder_contributes_nothing(self, store):
        broken = FakeDirEntry(
            "Broken",
            [FakeFileEntry("x.jpg"), FakeFileEntry("y.jpg"), FakeFileEntry("z.jpg")],
            fail_after=1,
        )
        loose = FakeFileEntry("loose.txt")

        result = await handle_foreign_drop(store, _os_drop(broken, loose))

        assert "Broken" in result.failed_directories
        assert [f.name for f in result.files] == ["loose.txt"]
        assert "Broken" not in result.created_folders
        names = [store.get_node(i).name for i in store.root_ids()]
        assert "x.jpg" not in names
        assert "loose.txt" in names

    @pytest.mark.asyncio
    async def test_drop_on_file_goes_to_parent(self, store):
        first = await handle_foreign_drop(
            store, _os_drop(FakeFileEntry("one.jpg")), DropTarget(item_id="inbox")
        )
        file_id = first.inserted_ids[0]

        second = await handle_foreign_drop(
            store, _os_drop(FakeFileEntry("two.jpg")), DropTarget(item_id=file_id)
        )

        assert second.target_folder_id == "inbox"
        assert len(store.get_children("inbox")) == 2

    @pytest.mark.asyncio
    async def test_files_without_entry_api(self, store):
        transfer = DataTransfer(items=[TransferItem(kind="file", file=DroppedFile(name="plain.pdf", size=5))])
        result = await handle_foreign_drop(store, transfer)
        assert result.summary() is None
        assert store.get_node(result.inserted_ids[0]).name == "plain.pdf"

    @pytest.mark.asyncio
    async def test_bridge_payload_is_not_a_foreign_drop(self, store):
        transfer = _os_drop(FakeFileEntry("a.jpg"))
        transfer.set_data(BRIDGE_MIME_TYPE, "{}")
        with pytest.raises(ValidationError):
            await handle_foreign_drop(store, transfer)
