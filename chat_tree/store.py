"""Id-addressed table of message nodes."""

from __future__ import annotations

from typing import Dict, Iterator, Optional

from .node import MessageNode


class NodeStore:
    """Owns every node of one conversation.

    ``get`` hands back the stored instance itself, so an edit made through
    any previously obtained node is seen by every other holder.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, MessageNode] = {}

    def get(self, node_id: Optional[str]) -> Optional[MessageNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def put(self, node: MessageNode) -> None:
        self._nodes[node.id] = node

    def remove(self, node_id: str) -> Optional[MessageNode]:
        return self._nodes.pop(node_id, None)

    def values(self) -> Iterator[MessageNode]:
        return iter(list(self._nodes.values()))

    def ids(self) -> Iterator[str]:
        return iter(list(self._nodes))

    def clear(self) -> None:
        self._nodes.clear()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
