"""Drops that originate outside the tree, such as an OS file/folder drag.

Directory contents are only reachable through a reader that returns batches
until it returns an empty one. ``drain_directory`` keeps reading until then;
a directory is either expanded completely or contributes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ..exceptions import ValidationError
from .mutations import TreeMutations
from .names import validate_name
from .store import TreeStore
from .transfer import (
    DataTransfer,
    DirectoryReader,
    DropEntry,
    DropKind,
    DroppedFile,
    DropTarget,
    classify_drop,
    resolve_drop_folder,
)

logger = logging.getLogger(__name__)


@dataclass
class ForeignDropResult:
    """What a foreign drop produced.

    ``folder_structure`` maps a relative folder path ("Photos/sub") to the
    files directly inside it, so the caller can recreate folders remotely.
    """
    target_folder_id: Optional[str]
    files: List[DroppedFile] = field(default_factory=list)
    folder_structure: Dict[str, List[DroppedFile]] = field(default_factory=dict)
    failed_directories: Dict[str, str] = field(default_factory=dict)
    created_folders: Dict[str, str] = field(default_factory=dict)
    inserted_ids: List[str] = field(default_factory=list)

    def summary(self) -> Optional[str]:
        if not self.folder_structure:
            return None
        folder_count = len({path.split("/")[0] for path in self.folder_structure})
        file_count = len(self.files)
        return (
            f"Uploading {file_count} file{'s' if file_count != 1 else ''} "
            f"from {folder_count} folder{'s' if folder_count != 1 else ''}. "
            "Folder structure will be preserved."
        )


async def drain_directory(reader: DirectoryReader) -> List[DropEntry]:
    """Read batches until the reader reports an empty one."""
    entries: List[DropEntry] = []
    while True:
        batch = await reader.read_entries()
        if not batch:
            return entries
        entries.extend(batch)


async def iter_directory_files(
    entry: DropEntry, parent_path: str = ""
) -> AsyncIterator[Tuple[DroppedFile, str]]:
    """Depth-first ``(file, relative_path)`` pairs below a directory entry.

    Relative paths start with the directory's own name. Each call opens a
    fresh reader, so the sequence can be restarted from scratch.
    """
    base = f"{parent_path}/{entry.name}" if parent_path else entry.name
    for child in await drain_directory(entry.create_reader()):
        if child.is_directory:
            async for item in iter_directory_files(child, base):
                yield item
        elif child.is_file:
            dropped = await child.get_file()
            yield dropped, f"{base}/{dropped.name}"


async def expand_directory(entry: DropEntry) -> List[Tuple[DroppedFile, str]]:
    return [item async for item in iter_directory_files(entry)]


def _folder_of(relative_path: str) -> str:
    return relative_path.rsplit("/", 1)[0] if "/" in relative_path else ""


async def handle_foreign_drop(
    store: TreeStore,
    data_transfer: DataTransfer,
    target: Optional[DropTarget] = None,
) -> ForeignDropResult:
    """Expand an OS drop and insert optimistic nodes for everything in it."""
    if classify_drop(data_transfer) != DropKind.OS_FILES:
        raise ValidationError("Drop does not carry external files", field="data_transfer")

    target_folder_id = resolve_drop_folder(store, target)
    result = ForeignDropResult(target_folder_id=target_folder_id)
    loose_files: List[DroppedFile] = []

    for item in data_transfer.items:
        if item.kind != "file":
            continue
        entry = item.entry
        if entry is None:
            if item.file is not None:
                loose_files.append(item.file)
            continue
        if entry.is_directory:
            try:
                expanded = await expand_directory(entry)
            except Exception as exc:
                # Reader failures come from the platform; the folder is skipped as a whole.
                logger.warning(
                    "Could not read dropped folder",
                    extra={"folder": entry.name, "error": str(exc)},
                )
                result.failed_directories[entry.name] = (
                    f'Error reading folder "{entry.name}". Please try selecting files directly.'
                )
                continue
            for dropped, relative_path in expanded:
                result.folder_structure.setdefault(_folder_of(relative_path), []).append(dropped)
                result.files.append(dropped)
        elif entry.is_file:
            loose_files.append(await entry.get_file())

    result.files = loose_files + result.files
    _insert_nodes(store, result, loose_files)

    logger.info(
        "Foreign drop expanded",
        extra={
            "tree_id": store.tree_id,
            "target_folder_id": target_folder_id,
            "files": len(result.files),
            "folders": len(result.folder_structure),
            "failed_folders": len(result.failed_directories),
        },
    )
    return result


def _insert_nodes(store: TreeStore, result: ForeignDropResult, loose_files: List[DroppedFile]) -> None:
    # Validate every name first so a bad one cannot leave a half-inserted drop.
    for dropped in result.files:
        validate_name(dropped.name)
    for folder_path in result.folder_structure:
        for segment in folder_path.split("/"):
            validate_name(segment)

    mutations = TreeMutations(store)
    for dropped in loose_files:
        node = mutations.insert_file(
            result.target_folder_id, dropped.name, dropped.mime_type, dropped.size
        )
        result.inserted_ids.append(node.id)

    for folder_path in sorted(result.folder_structure, key=lambda p: (p.count("/"), p)):
        folder_id = _ensure_folder_chain(mutations, result, folder_path)
        for dropped in result.folder_structure[folder_path]:
            node = mutations.insert_file(folder_id, dropped.name, dropped.mime_type, dropped.size)
            result.inserted_ids.append(node.id)


def _ensure_folder_chain(mutations: TreeMutations, result: ForeignDropResult, folder_path: str) -> str:
    parent_id = result.target_folder_id
    walked: List[str] = []
    for segment in folder_path.split("/"):
        walked.append(segment)
        key = "/".join(walked)
        if key not in result.created_folders:
            folder = mutations.insert_folder(parent_id, segment)
            result.created_folders[key] = folder.id
            result.inserted_ids.append(folder.id)
        parent_id = result.created_folders[key]
    return parent_id
