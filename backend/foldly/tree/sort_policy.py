"""Sibling ordering for tree folders.

Order, strongest key first:
  1. ascending ``sort_order`` (unsaved items carry negative values and lead)
  2. folders before files
  3. case-sensitive ``name``
  4. ``id`` as the final tiebreak so the order is total

Pure functions over a node mapping; the TreeStore is the only caller that
writes their output back into ``children``.
"""

from typing import Iterable, List, Mapping, Tuple

from ..schemas.tree import FolderNode, TreeNode

SortKey = Tuple[int, int, str, str]


def sort_key(node: TreeNode) -> SortKey:
    kind_rank = 0 if isinstance(node, FolderNode) else 1
    return (node.sort_order, kind_rank, node.name, node.id)


def sort_children(ids: Iterable[str], nodes: Mapping[str, TreeNode]) -> List[str]:
    """Full resort of ``ids``. Idempotent."""
    return sorted(ids, key=lambda node_id: sort_key(nodes[node_id]))


def insert_sorted(ids: List[str], new_id: str, nodes: Mapping[str, TreeNode]) -> List[str]:
    """Return a new list with ``new_id`` placed where a full resort would put it.

    Linear scan: the ids already present keep their relative order exactly.
    """
    new_key = sort_key(nodes[new_id])
    result = list(ids)
    for index, node_id in enumerate(result):
        if new_key < sort_key(nodes[node_id]):
            result.insert(index, new_id)
            return result
    result.append(new_id)
    return result


def next_insert_sort_order(siblings: Iterable[TreeNode]) -> int:
    """A negative sort_order below every sibling, so a new item leads."""
    lowest = min((sibling.sort_order for sibling in siblings), default=0)
    return min(lowest, 0) - 1


def is_sorted(ids: List[str], nodes: Mapping[str, TreeNode]) -> bool:
    """True when ``ids`` already equals ``sort_children(ids)``; one key per id."""
    keys = [sort_key(nodes[node_id]) for node_id in ids]
    return all(left < right for left, right in zip(keys, keys[1:]))
