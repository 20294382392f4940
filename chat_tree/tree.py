"""Branching conversation tree: navigation and mutation."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from chat_ai.types import Part, Role

from .node import MessageNode, generate_id, now_ms
from .store import NodeStore

logger = logging.getLogger(__name__)

_ROLES = ("user", "model")


class ConversationTree:
    """A single conversation whose turns form a tree.

    Every parent remembers which of its children is selected; following those
    selections from the root yields the active path, which is what gets sent
    to the model and shown to the user.
    """

    def __init__(self, store: Optional[NodeStore] = None) -> None:
        self._store = store if store is not None else NodeStore()
        self._root_id: Optional[str] = None
        self._last_timestamp = 0

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def root_id(self) -> Optional[str]:
        return self._root_id

    def get(self, node_id: Optional[str]) -> Optional[MessageNode]:
        return self._store.get(node_id)

    def __len__(self) -> int:
        return len(self._store)

    # Navigation

    def linear_path(self) -> List[MessageNode]:
        path: List[MessageNode] = []
        seen: Set[str] = set()
        current = self._store.get(self._root_id)
        while current is not None and current.id not in seen:
            path.append(current)
            seen.add(current.id)
            current = self._store.get(current.selected_child_id())
        return path

    def path_to(self, node_id: str) -> List[MessageNode]:
        """Ancestors of ``node_id`` from the root down, ending with the node itself."""
        path: List[MessageNode] = []
        seen: Set[str] = set()
        current = self._store.get(node_id)
        while current is not None and current.id not in seen:
            path.append(current)
            seen.add(current.id)
            current = self._store.get(current.parent_id)
        path.reverse()
        return path

    def switch_branch(self, parent_id: str, index: int) -> None:
        parent = self._store.get(parent_id)
        if parent is None:
            return
        # index == len(children) is the "new branch pending" state
        if 0 <= index <= len(parent.children_ids):
            parent.selected_child_index = index

    def create_branch(self, parent_id: str) -> None:
        parent = self._store.get(parent_id)
        if parent is None:
            return
        parent.selected_child_index = len(parent.children_ids)

    def navigate_to_message(self, target_id: str) -> None:
        seen: Set[str] = set()
        current = self._store.get(target_id)
        while current is not None and current.parent_id is not None and current.id not in seen:
            seen.add(current.id)
            parent = self._store.get(current.parent_id)
            if parent is None or current.id not in parent.children_ids:
                break
            parent.selected_child_index = parent.children_ids.index(current.id)
            current = parent

    def sibling_info(self, node_id: str) -> Tuple[int, int]:
        """Position of a node among its siblings as ``(index, count)``."""
        node = self._store.get(node_id)
        parent = self._store.get(node.parent_id) if node is not None else None
        if node is None or parent is None or node.id not in parent.children_ids:
            return 0, 1
        return parent.children_ids.index(node.id), len(parent.children_ids)

    # Mutation

    def add_message(
        self,
        role: Role,
        parts: Sequence[Part],
        parent_id: Optional[str] = None,
    ) -> MessageNode:
        if role not in _ROLES:
            raise ValueError(f"Unknown role: {role}")
        if not parts:
            raise ValueError("A message needs at least one part")

        parent: Optional[MessageNode] = None
        if parent_id is not None:
            parent = self._store.get(parent_id)
            if parent is None:
                raise ValueError(f"Parent not found: {parent_id}")
        elif self._root_id is not None:
            raise ValueError("Root already exists")

        node = MessageNode(
            id=self._next_id(),
            role=role,
            content=list(parts),
            parent_id=parent_id,
            timestamp=self._next_timestamp(),
        )
        self._store.put(node)

        if parent is not None:
            parent.children_ids.append(node.id)
            parent.selected_child_index = len(parent.children_ids) - 1
        else:
            self._root_id = node.id

        logger.debug("Added %s message %s under %s", role, node.id, parent_id)
        return node

    def delete_message(self, node_id: str) -> List[str]:
        """Remove a node and its whole subtree; returns the removed ids."""
        node = self._store.get(node_id)
        if node is None:
            return []

        if self._root_id == node_id:
            self._root_id = None

        parent = self._store.get(node.parent_id)
        if parent is not None and node_id in parent.children_ids:
            parent.children_ids.remove(node_id)
            count = len(parent.children_ids)
            if parent.selected_child_index >= count:
                parent.selected_child_index = max(0, count - 1)

        removed: List[str] = []
        stack = [node_id]
        while stack:
            current = self._store.remove(stack.pop())
            if current is None:
                continue
            removed.append(current.id)
            stack.extend(current.children_ids)

        logger.debug("Deleted %d message(s) starting at %s", len(removed), node_id)
        return removed

    def set_collapsed(self, node_id: str, collapsed: bool) -> None:
        node = self._store.get(node_id)
        if node is not None:
            node.collapsed = collapsed

    def auto_collapse(self, keep_last: int) -> int:
        """Collapse every node on the active path except the last ``keep_last``."""
        path = self.linear_path()
        older = path[: max(len(path) - max(keep_last, 0), 0)]
        changed = 0
        for node in older:
            if not node.collapsed:
                node.collapsed = True
                changed += 1
        return changed

    def clear(self) -> None:
        self._store.clear()
        self._root_id = None

    def replace_all(self, nodes: Iterable[MessageNode], root_id: Optional[str]) -> None:
        """Swap in a complete set of nodes, as produced by an import."""
        self.clear()
        for node in nodes:
            self._store.put(node)
            self._last_timestamp = max(self._last_timestamp, node.timestamp)
        self._root_id = root_id if root_id in self._store else None

    def _next_id(self) -> str:
        node_id = generate_id()
        while node_id in self._store:
            node_id = generate_id()
        return node_id

    def _next_timestamp(self) -> int:
        self._last_timestamp = max(now_ms(), self._last_timestamp)
        return self._last_timestamp
