"""Arena-and-index store for one tree instance.

The store owns a single ``id -> node`` map plus the ordered root list, and is
the only code allowed to change either. Every public mutation validates its
input first, applies the change, then verifies the structural invariants:

  1. every id in a folder's ``children`` points back to that folder through
     ``parent_id``, and no id is listed by two folders
  2. the parent graph is acyclic
  3. every ``children`` list equals the SortPolicy order of its members
  4. folder ``path``/``depth`` follow from the parent's at all times

In strict mode every mutation re-checks the whole tree. Otherwise only the
sibling lists and folder subtrees the mutation touched are checked, so an
insert costs time in proportion to its siblings rather than the tree.

Folder paths are stored denormalized and cascaded eagerly on every rename and
move, so a read never has to walk ancestors.

Reads hand out copies; callers change nodes only through the methods here.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.config import settings
from ..exceptions import (
    CycleError,
    InvariantViolation,
    NodeNotFoundError,
    ValidationError,
)
from ..schemas.tree import FileNode, FolderNode, TreeNode, TreeView
from . import sort_policy
from .names import validate_name

logger = logging.getLogger(__name__)


class TreeStore:
    """Single-writer node map for one file/folder tree.

    Public methods:
        get_node / has_node / get_children / root_ids / descendants
        upsert          -- insert or replace a node (idempotent)
        remove          -- delete a node and its subtree
        reparent        -- move a node under another folder (or the root)
        rename          -- change a node's name, cascading folder paths
        move_many       -- atomic multi-item drop with an explicit order
        apply_patch     -- idempotent corrective patch from the server
        check_invariants / repair
        snapshot
    """

    def __init__(self, tree_id: str = "tree", strict: Optional[bool] = None):
        self.tree_id = tree_id
        self._nodes: Dict[str, TreeNode] = {}
        self._root: List[str] = []
        self._strict = settings.strict_invariants if strict is None else strict

    @classmethod
    def from_nodes(
        cls,
        nodes: Iterable[TreeNode],
        tree_id: str = "tree",
        strict: Optional[bool] = None,
    ) -> "TreeStore":
        """Build a store from flat nodes, deriving children from ``parent_id``."""
        store = cls(tree_id=tree_id, strict=strict)
        for node in nodes:
            if node.id in store._nodes:
                raise ValidationError(f"Duplicate node id: {node.id}", field="id")
            copy = node.model_copy(deep=True)
            if isinstance(copy, FolderNode):
                copy.children = []
            store._nodes[copy.id] = copy
        store._rebuild_children()
        store._refresh_all_paths()
        store._verify()
        return store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._nodes))

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> TreeNode:
        return self._require(node_id).model_copy(deep=True)

    def get_children(self, folder_id: Optional[str]) -> List[str]:
        """Ordered child ids of a folder; ``None`` means the root level."""
        return list(self._child_list(folder_id))

    def root_ids(self) -> List[str]:
        return list(self._root)

    def descendants(self, node_id: str) -> List[str]:
        """All descendant ids of a node, depth-first in child order."""
        self._require(node_id)
        result: List[str] = []
        stack = list(reversed(self._own_children(node_id)))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._own_children(current)))
        return result

    def is_descendant(self, ancestor_id: str, candidate_id: str) -> bool:
        """True when candidate_id is ancestor_id itself or lies beneath it."""
        current: Optional[str] = candidate_id
        seen = set()
        while current is not None and current not in seen:
            if current == ancestor_id:
                return True
            seen.add(current)
            node = self._nodes.get(current)
            current = node.parent_id if node else None
        return False

    def node_path(self, node_id: str) -> str:
        """Slash path of any node; files use their parent's path plus name."""
        node = self._require(node_id)
        if isinstance(node, FolderNode):
            return node.path
        if node.parent_id is None:
            return node.name
        return f"{self._folder(node.parent_id).path}/{node.name}"

    def snapshot(self) -> TreeView:
        return TreeView(
            tree_id=self.tree_id,
            root=list(self._root),
            nodes=[node.model_copy(deep=True) for node in self._nodes.values()],
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def upsert(self, node: TreeNode) -> TreeNode:
        """Insert a new node or replace an existing one.

        A folder's incoming ``children`` are ignored; they are derived from the
        other nodes' ``parent_id``. ``path``/``depth`` are recomputed. Applying
        the same node twice leaves the store unchanged.
        """
        incoming = node.model_copy(deep=True)
        existing = self._nodes.get(incoming.id)

        self._validate_parent(incoming.id, incoming.parent_id)
        if existing is not None:
            if isinstance(existing, FolderNode) and not isinstance(incoming, FolderNode):
                if existing.children:
                    raise ValidationError(
                        f"Cannot turn non-empty folder {incoming.id} into a file", field="kind"
                    )
            if incoming.parent_id is not None and self.is_descendant(incoming.id, incoming.parent_id):
                raise CycleError(incoming.id, incoming.parent_id)

        if isinstance(incoming, FolderNode):
            incoming.children = list(existing.children) if isinstance(existing, FolderNode) else []

        touched = [incoming.parent_id]
        if existing is not None:
            touched.append(existing.parent_id)
            self._detach(existing)
        self._nodes[incoming.id] = incoming
        self._attach(incoming)
        subtrees = []
        if isinstance(incoming, FolderNode):
            self._refresh_paths(incoming.id)
            subtrees.append(incoming.id)

        self._verify(touched, subtrees)
        return incoming.model_copy(deep=True)

    def remove(self, node_id: str) -> List[str]:
        """Remove a node and its whole subtree. Returns every removed id."""
        node = self._require(node_id)
        removed = [node_id] + self.descendants(node_id)
        self._detach(node)
        for removed_id in removed:
            del self._nodes[removed_id]
        self._verify([node.parent_id])
        return removed

    def reparent(
        self,
        node_id: str,
        new_parent_id: Optional[str],
        insertion_index: Optional[int] = None,
    ) -> TreeNode:
        """Move a node under ``new_parent_id`` (``None`` = root).

        Without ``insertion_index`` the node lands where SortPolicy puts it.
        With one, the destination siblings' ``sort_order`` values are
        renumbered so the sorted order shows the node at that index.
        """
        node = self._require(node_id)
        self._validate_parent(node_id, new_parent_id)
        if new_parent_id is not None and self.is_descendant(node_id, new_parent_id):
            raise CycleError(node_id, new_parent_id)

        old_parent_id = node.parent_id
        self._detach(node)
        node.parent_id = new_parent_id
        if insertion_index is None:
            self._attach(node)
        else:
            siblings = list(self._child_list(new_parent_id))
            index = max(0, min(insertion_index, len(siblings)))
            ordered = siblings[:index] + [node_id] + siblings[index:]
            self._apply_explicit_order(new_parent_id, ordered)

        subtrees = []
        if isinstance(node, FolderNode):
            self._refresh_paths(node_id)
            subtrees.append(node_id)

        self._verify([old_parent_id, new_parent_id], subtrees)
        return node.model_copy(deep=True)

    def rename(self, node_id: str, new_name: str) -> TreeNode:
        name = validate_name(new_name)
        node = self._require(node_id)
        self._detach(node)
        node.name = name
        self._attach(node)
        subtrees = []
        if isinstance(node, FolderNode):
            self._refresh_paths(node_id)
            subtrees.append(node_id)
        self._verify([node.parent_id], subtrees)
        return node.model_copy(deep=True)

    def move_many(self, target_id: Optional[str], ordered_ids: List[str]) -> List[str]:
        """Make ``ordered_ids`` the complete, ordered child list of ``target_id``.

        Ids currently elsewhere are moved in; the target's existing children
        must all still be present. Returns the ids that changed parent.
        Everything is validated before the first change, so a rejected drop
        leaves the store as it was.
        """
        if target_id is not None:
            self._folder(target_id)
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError("Drop order lists an item twice", field="children")
        for node_id in ordered_ids:
            self._require(node_id)

        current = set(self._child_list(target_id))
        missing = current - set(ordered_ids)
        if missing:
            raise ValidationError(
                f"Drop order omits existing children: {sorted(missing)}", field="children"
            )

        moved = [node_id for node_id in ordered_ids if node_id not in current]
        for node_id in moved:
            if target_id is not None and self.is_descendant(node_id, target_id):
                raise CycleError(node_id, target_id)
        # An item may not be moved together with one of its own ancestors.
        moved_set = set(moved)
        for node_id in moved:
            parent = self._nodes[node_id].parent_id
            while parent is not None:
                if parent in moved_set:
                    raise ValidationError(
                        f"Cannot move {node_id} together with its ancestor {parent}",
                        field="children",
                    )
                parent = self._nodes[parent].parent_id

        touched: List[Optional[str]] = [target_id]
        for node_id in moved:
            node = self._nodes[node_id]
            touched.append(node.parent_id)
            self._detach(node)
            node.parent_id = target_id
        self._apply_explicit_order(target_id, ordered_ids)
        subtrees = [node_id for node_id in moved if isinstance(self._nodes[node_id], FolderNode)]
        for node_id in subtrees:
            self._refresh_paths(node_id)

        self._verify(touched, subtrees)
        return moved

    def apply_patch(
        self,
        upserts: Iterable[TreeNode] = (),
        removals: Iterable[str] = (),
    ) -> None:
        """Apply a corrective patch. Idempotent and all-or-nothing.

        Removals of unknown ids are ignored. Upserts may arrive in any order;
        parents are applied before their children.
        """
        backup = self._capture()
        try:
            for node_id in removals:
                if node_id in self._nodes:
                    self.remove(node_id)

            pending = {node.id: node for node in upserts}
            while pending:
                ready = [
                    node for node in pending.values()
                    if node.parent_id is None
                    or node.parent_id in self._nodes
                    and node.parent_id not in pending
                ]
                if not ready:
                    raise ValidationError(
                        f"Patch references unknown parents for: {sorted(pending)}",
                        field="parent_id",
                    )
                for node in ready:
                    self.upsert(node)
                    del pending[node.id]
        except Exception:
            self._restore(backup)
            raise

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        problems = self._collect_problems()
        if problems:
            raise InvariantViolation(problems)

    def repair(self) -> int:
        """Recompute all derived state from ``parent_id`` ground truth.

        Orphans (missing or non-folder parent) and cycle members are moved to
        the root. Returns the number of corrected nodes and lists.
        """
        fixes = 0
        for node in self._nodes.values():
            if node.parent_id is not None and not isinstance(self._nodes.get(node.parent_id), FolderNode):
                node.parent_id = None
                fixes += 1
        for node_id in list(self._nodes):
            if self._in_cycle(node_id):
                self._nodes[node_id].parent_id = None
                fixes += 1

        before_lists = self._list_state()
        before_paths = {
            node.id: (node.path, node.depth)
            for node in self._nodes.values() if isinstance(node, FolderNode)
        }
        self._rebuild_children()
        self._refresh_all_paths()
        after_lists = self._list_state()
        fixes += sum(1 for key in after_lists if before_lists.get(key) != after_lists[key])
        fixes += sum(
            1 for node in self._nodes.values()
            if isinstance(node, FolderNode) and before_paths.get(node.id) != (node.path, node.depth)
        )
        return fixes

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require(self, node_id: str) -> TreeNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def _folder(self, folder_id: str) -> FolderNode:
        node = self._require(folder_id)
        if not isinstance(node, FolderNode):
            raise ValidationError(f"Not a folder: {folder_id}", field="parent_id")
        return node

    def _validate_parent(self, node_id: str, parent_id: Optional[str]) -> None:
        if parent_id is None:
            return
        if parent_id == node_id:
            raise CycleError(node_id, parent_id)
        self._folder(parent_id)

    def _child_list(self, folder_id: Optional[str]) -> List[str]:
        if folder_id is None:
            return self._root
        return self._folder(folder_id).children

    def _own_children(self, node_id: str) -> List[str]:
        node = self._nodes[node_id]
        return node.children if isinstance(node, FolderNode) else []

    def _detach(self, node: TreeNode) -> None:
        siblings = self._child_list(node.parent_id)
        if node.id in siblings:
            siblings.remove(node.id)

    def _attach(self, node: TreeNode) -> None:
        siblings = self._child_list(node.parent_id)
        placed = sort_policy.insert_sorted(
            [sid for sid in siblings if sid != node.id], node.id, self._nodes
        )
        siblings[:] = placed

    def _apply_explicit_order(self, parent_id: Optional[str], ordered: List[str]) -> None:
        for position, node_id in enumerate(ordered):
            self._nodes[node_id].sort_order = position
        self._child_list(parent_id)[:] = list(ordered)

    def _expected_location(self, folder: FolderNode) -> Tuple[str, int]:
        parent = self._nodes.get(folder.parent_id) if folder.parent_id else None
        if isinstance(parent, FolderNode):
            return f"{parent.path}/{folder.name}", parent.depth + 1
        return folder.name, 0

    def _refresh_paths(self, folder_id: str) -> None:
        stack = [folder_id]
        while stack:
            folder = self._nodes[stack.pop()]
            if not isinstance(folder, FolderNode):
                continue
            folder.path, folder.depth = self._expected_location(folder)
            stack.extend(folder.children)

    def _refresh_all_paths(self) -> None:
        for node_id in list(self._root):
            self._refresh_paths(node_id)

    def _rebuild_children(self) -> None:
        grouped: Dict[Optional[str], List[str]] = {}
        for node in self._nodes.values():
            grouped.setdefault(node.parent_id, []).append(node.id)
        for node in self._nodes.values():
            if isinstance(node, FolderNode):
                node.children = sort_policy.sort_children(grouped.get(node.id, []), self._nodes)
        self._root = sort_policy.sort_children(grouped.get(None, []), self._nodes)

    def _in_cycle(self, node_id: str) -> bool:
        seen = set()
        current: Optional[str] = node_id
        while current is not None:
            if current in seen:
                return current == node_id
            seen.add(current)
            node = self._nodes.get(current)
            current = node.parent_id if node else None
        return False

    def _list_state(self) -> Dict[Optional[str], List[str]]:
        state: Dict[Optional[str], List[str]] = {None: list(self._root)}
        for node in self._nodes.values():
            if isinstance(node, FolderNode):
                state[node.id] = list(node.children)
        return state

    def _list_problems(self, owner_id: Optional[str], children: List[str]) -> List[str]:
        problems: List[str] = []
        label = owner_id or "root"
        if len(set(children)) != len(children):
            problems.append(f"{label} lists a child twice")
        complete = True
        for child_id in children:
            child = self._nodes.get(child_id)
            if child is None:
                problems.append(f"{label} lists missing node {child_id}")
                complete = False
            elif child.parent_id != owner_id:
                problems.append(f"{child_id} listed by {label} but parent_id is {child.parent_id}")
        if complete and not sort_policy.is_sorted(children, self._nodes):
            problems.append(f"children of {label} are not in sort order")
        return problems

    def _location_problems(self, folder: FolderNode) -> List[str]:
        expected = self._expected_location(folder)
        if (folder.path, folder.depth) != expected:
            return [f"{folder.id} has path/depth {(folder.path, folder.depth)}, expected {expected}"]
        return []

    def _collect_problems(self) -> List[str]:
        problems: List[str] = []
        listed_by: Dict[str, Optional[str]] = {}

        for owner_id, children in self._list_state().items():
            problems.extend(self._list_problems(owner_id, children))
            for child_id in children:
                if child_id in listed_by:
                    problems.append(f"{child_id} listed by more than one folder")
                listed_by[child_id] = owner_id

        for node in self._nodes.values():
            if node.id not in listed_by:
                problems.append(f"{node.id} is not listed by its parent {node.parent_id or 'root'}")
            if node.parent_id is not None and not isinstance(self._nodes.get(node.parent_id), FolderNode):
                problems.append(f"{node.id} has invalid parent {node.parent_id}")
            if self._in_cycle(node.id):
                problems.append(f"{node.id} is part of a cycle")
            if isinstance(node, FolderNode):
                problems.extend(self._location_problems(node))
        return problems

    def _collect_local_problems(
        self, lists: Iterable[Optional[str]], subtrees: Iterable[str]
    ) -> List[str]:
        """Check only the given sibling lists and the folders below ``subtrees``."""
        problems: List[str] = []
        for owner_id in dict.fromkeys(lists):
            if owner_id is not None and not isinstance(self._nodes.get(owner_id), FolderNode):
                continue
            problems.extend(self._list_problems(owner_id, self._child_list(owner_id)))
        for folder_id in subtrees:
            for node_id in [folder_id] + self.descendants(folder_id):
                node = self._nodes[node_id]
                if isinstance(node, FolderNode):
                    problems.extend(self._location_problems(node))
        return problems

    def _verify(
        self,
        lists: Optional[Iterable[Optional[str]]] = None,
        subtrees: Iterable[str] = (),
    ) -> None:
        """Check invariants after a change; raise in strict mode, repair otherwise.

        ``lists`` names the sibling lists the change touched (``None`` entry =
        root). Leaving it out, or running strict, checks the whole tree.
        """
        if self._strict or lists is None:
            problems = self._collect_problems()
        else:
            problems = self._collect_local_problems(lists, subtrees)
        if not problems:
            return
        if self._strict:
            raise InvariantViolation(problems)
        logger.error(
            "Tree invariants violated, repairing from parent_id",
            extra={"tree_id": self.tree_id, "problems": problems},
        )
        self.repair()

    def _capture(self) -> Tuple[Dict[str, TreeNode], List[str]]:
        return (
            {node_id: node.model_copy(deep=True) for node_id, node in self._nodes.items()},
            list(self._root),
        )

    def _restore(self, state: Tuple[Dict[str, TreeNode], List[str]]) -> None:
        self._nodes, self._root = state


__all__ = ["TreeStore", "FileNode", "FolderNode"]
