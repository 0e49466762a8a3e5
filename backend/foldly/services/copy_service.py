"""Copying link content into a workspace.

A copy batch never stops at the first bad item: each top-level item (and
each nested file or subfolder) succeeds or fails on its own, and failures
are reported back next to the counts. An item is either counted as copied or
listed as failed, never both.

Blob copies run on a bounded thread pool; database writes stay on the
calling thread, one commit per record. Folders are therefore walked one
after another: every folder and file record goes through the one session,
and only the blob copies of each folder's files fan out.
"""

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import CopyFailedError, FoldlyException, OwnershipError, StorageError
from ..models.file import File, ProcessingStatus
from ..models.folder import Folder
from ..repositories import FileRepository, FolderRepository, LinkRepository, OwnerScope, WorkspaceRepository
from ..schemas.copy import CopyItem, CopyResult, FailedItem
from ..storage import BucketContext, StorageAdapter, ensure_user_scoped, workspace_key
from .tree_service import file_to_node, folder_to_node

logger = logging.getLogger(__name__)

# Copies land first among their new siblings.
COPIED_SORT_ORDER = -1


def _new_id() -> str:
    return str(uuid.uuid4())


class CopyService:
    """Link-to-workspace copy engine.

    Public methods:
        copy_subtree          -- copy selected link files/folders into a workspace
        get_files_total_size  -- byte total of a file selection
    """

    def __init__(
        self,
        db: Session,
        storage: StorageAdapter,
        user_id: str,
        max_workers: Optional[int] = None,
    ):
        self.db = db
        self.storage = storage
        self.user_id = user_id
        self.max_workers = max_workers or settings.copy_max_workers
        self.folder_repo = FolderRepository(db)
        self.file_repo = FileRepository(db)
        self.link_repo = LinkRepository(db)
        self.workspace_repo = WorkspaceRepository(db)
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def copy_subtree(
        self,
        source_items: List[CopyItem],
        source_link_id: str,
        target_workspace_id: str,
        target_folder_id: Optional[str] = None,
    ) -> CopyResult:
        """Copy link items under ``target_folder_id`` (None = workspace root).

        Ownership of the link, the workspace and the target folder is checked
        up front and fails the whole call. After that, failures are per item.
        Raises CopyFailedError when nothing at all could be copied.
        """
        dest_parent = self._check_preconditions(source_link_id, target_workspace_id, target_folder_id)
        link_scope = OwnerScope.link(source_link_id)
        result = CopyResult()

        logger.info(
            "Copy started",
            extra={
                "link_id": source_link_id,
                "workspace_id": target_workspace_id,
                "target_folder_id": target_folder_id,
                "items": len(source_items),
            },
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            self._executor = executor
            try:
                file_items = [item for item in source_items if item.type == "file"]
                folder_items = [item for item in source_items if item.type == "folder"]

                sources: List[File] = []
                for item in file_items:
                    try:
                        sources.append(self._load_source(self.file_repo, item.id, link_scope))
                    except FoldlyException as exc:
                        self._fail(result, item.id, "file", exc.message)
                self._copy_files(sources, target_workspace_id, dest_parent, result)

                for item in folder_items:
                    try:
                        source = self._load_source(self.folder_repo, item.id, link_scope)
                        self._copy_folder(source, link_scope, target_workspace_id, dest_parent, result)
                    except (FoldlyException, SQLAlchemyError) as exc:
                        self._fail(result, item.id, "folder", self._reason(exc))
            finally:
                self._executor = None

        logger.info(
            "Copy finished",
            extra={
                "link_id": source_link_id,
                "workspace_id": target_workspace_id,
                "copied_files": result.copied_files,
                "copied_folders": result.copied_folders,
                "failed": len(result.failed_items),
                "total_size": result.total_size,
            },
        )

        if result.copied_total == 0:
            raise CopyFailedError([item.model_dump() for item in result.failed_items])
        return result

    def get_files_total_size(self, file_ids: List[str], link_id: Optional[str] = None) -> int:
        """Sum of sizes for ``file_ids``; unknown ids count as zero."""
        scope = OwnerScope.link(link_id) if link_id else None
        return self.file_repo.total_size(list(dict.fromkeys(file_ids)), scope)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_preconditions(
        self,
        source_link_id: str,
        target_workspace_id: str,
        target_folder_id: Optional[str],
    ) -> Optional[Folder]:
        link = self.link_repo.get_by_id(source_link_id)
        if link.user_id != self.user_id:
            raise OwnershipError("Link does not belong to the current user", details={"link_id": source_link_id})

        workspace = self.workspace_repo.get_by_id(target_workspace_id)
        if workspace.user_id != self.user_id:
            raise OwnershipError(
                "Workspace does not belong to the current user",
                details={"workspace_id": target_workspace_id},
            )

        if target_folder_id is None:
            return None
        folder = self.folder_repo.get_by_id(target_folder_id)
        if folder.workspace_id != target_workspace_id:
            raise OwnershipError(
                "Target folder is not in the workspace",
                details={"folder_id": target_folder_id, "workspace_id": target_workspace_id},
            )
        return folder

    @staticmethod
    def _load_source(repo, item_id: str, link_scope: OwnerScope):
        """Source record of a selected item; it must live in the source link."""
        source = repo.get_by_id(item_id)
        if not link_scope.owns(source):
            raise OwnershipError(
                f"{repo.record_kind.capitalize()} does not belong to the source link",
                details={"id": item_id, "link_id": link_scope.link_id},
            )
        return source

    def _copy_folder(
        self,
        source: Folder,
        link_scope: OwnerScope,
        workspace_id: str,
        dest_parent: Optional[Folder],
        result: CopyResult,
    ) -> Folder:
        """Recreate ``source`` under ``dest_parent``, then its files and subfolders."""
        if dest_parent is None:
            path, depth = source.name, 0
        else:
            path, depth = f"{dest_parent.path}/{source.name}", dest_parent.depth + 1

        folder = self.folder_repo.insert(Folder(
            id=_new_id(),
            workspace_id=workspace_id,
            link_id=None,
            parent_folder_id=dest_parent.id if dest_parent else None,
            name=source.name,
            path=path,
            depth=depth,
            sort_order=COPIED_SORT_ORDER,
            file_count=0,
            total_size=0,
            is_archived=False,
        ))
        result.copied_folders += 1
        result.id_map[source.id] = folder.id
        node = folder_to_node(folder)
        result.created_nodes.append(node)

        copied = self._copy_files(
            self.file_repo.get_children(source.id, link_scope), workspace_id, folder, result
        )
        if copied:
            self._write_aggregates(folder, node, copied)

        for subfolder in self.folder_repo.get_children(source.id, link_scope):
            try:
                self._copy_folder(subfolder, link_scope, workspace_id, folder, result)
            except (FoldlyException, SQLAlchemyError) as exc:
                self._fail(result, subfolder.id, "folder", self._reason(exc))
        return folder

    def _write_aggregates(self, folder: Folder, node, copied: List[File]) -> None:
        # The folder and its files exist by now; a failed count update only
        # leaves stale aggregates and the folder stays copied.
        file_count = len(copied)
        total_size = sum(record.file_size or 0 for record in copied)
        try:
            self.folder_repo.update_aggregates(folder.id, file_count=file_count, total_size=total_size)
        except SQLAlchemyError as exc:
            logger.warning(
                "Folder aggregate update failed",
                extra={"folder_id": folder.id, "file_count": file_count, "error": str(exc)},
            )
            return
        node.file_count = file_count
        node.total_size = total_size

    def _copy_files(
        self,
        sources: List[File],
        workspace_id: str,
        dest_folder: Optional[Folder],
        result: CopyResult,
    ) -> List[File]:
        """Copy blobs concurrently, then insert records in source order."""
        dest_folder_id = dest_folder.id if dest_folder else None
        planned: List[Tuple[File, str, Future]] = []
        for source in sources:
            dest_key = workspace_key(self.user_id, dest_folder_id, source.file_name)
            future = self._executor.submit(
                self.storage.copy_blob,
                source.storage_path,
                dest_key,
                BucketContext.SHARED,
                BucketContext.WORKSPACE,
            )
            planned.append((source, dest_key, future))

        copied: List[File] = []
        for source, dest_key, future in planned:
            try:
                future.result()
            except StorageError as exc:
                logger.warning(
                    "Blob copy failed",
                    extra={"file_id": source.id, "storage_path": source.storage_path, "error": exc.message},
                )
                self._fail(result, source.id, "file", exc.message)
                continue

            record = self._new_file_record(source, workspace_id, dest_folder_id, dest_key)
            try:
                self.file_repo.insert(record)
            except SQLAlchemyError as exc:
                logger.error(
                    "File record insert failed, removing copied blob",
                    extra={"file_id": source.id, "dest_key": dest_key, "error": str(exc)},
                )
                self._discard_blob(dest_key)
                self._fail(result, source.id, "file", "Failed to save copied file")
                continue

            copied.append(record)
            result.id_map[source.id] = record.id
            result.copied_files += 1
            result.total_size += record.file_size or 0
            result.created_nodes.append(file_to_node(record))
        return copied

    def _new_file_record(
        self, source: File, workspace_id: str, folder_id: Optional[str], dest_key: str
    ) -> File:
        return File(
            id=_new_id(),
            workspace_id=workspace_id,
            link_id=None,
            folder_id=folder_id,
            file_name=source.file_name,
            original_name=source.original_name or source.file_name,
            file_size=source.file_size,
            mime_type=source.mime_type,
            extension=source.extension,
            storage_path=dest_key,
            checksum=source.checksum,
            processing_status=ProcessingStatus.COMPLETED.value,
            sort_order=COPIED_SORT_ORDER,
            download_count=0,
            copied_from_file_id=source.id,
        )

    def _discard_blob(self, key: str) -> None:
        ensure_user_scoped(key, self.user_id)
        try:
            self.storage.delete_blob(key, BucketContext.WORKSPACE)
        except StorageError as exc:
            # Leaves an orphan blob; reported for manual cleanup.
            logger.error("Could not remove copied blob", extra={"dest_key": key, "error": exc.message})

    @staticmethod
    def _reason(exc: Exception) -> str:
        if isinstance(exc, FoldlyException):
            return exc.message
        return "Database error while copying"

    @staticmethod
    def _fail(result: CopyResult, item_id: str, item_type: str, reason: str) -> None:
        result.failed_items.append(FailedItem(id=item_id, type=item_type, reason=reason))
