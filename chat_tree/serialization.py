"""Compact, versioned export format for conversation trees.

Layout::

    {"version": 2, "rootId": "ab12cd34", "nodes": [node, ...]}

where each node is a positional array::

    [id, role, content, parentId, childrenIds, selectedChildIndex, timestamp, metadata?]

``role`` is ``0`` for user and ``1`` for model. ``content`` is a bare string
when the node holds a single text part, otherwise the list of wire parts
(``{"text": ...}`` / ``{"inlineData": {...}}``). ``metadata`` is only written
when something in it is set and uses the short keys ``it``, ``ot``, ``ic``,
``oc`` and ``c``.

Version 1 exports predate attachments; their content is always a string.
"""

from __future__ import annotations

import json
import logging
import math
from collections import deque
from typing import Any, Dict, List, Optional, Union

from chat_ai.types import Part, TextPart, part_from_wire, part_to_wire

from .errors import StructuralError
from .node import MessageNode
from .tree import ConversationTree

logger = logging.getLogger(__name__)

CURRENT_EXPORT_VERSION = 2
SUPPORTED_EXPORT_VERSIONS = (1, 2)

_ROLE_TO_CODE = {"user": 0, "model": 1}
_CODE_TO_ROLE = {code: role for role, code in _ROLE_TO_CODE.items()}


def export_tree(tree: ConversationTree) -> Dict[str, Any]:
    """Encode every node of ``tree``.

    Importing the result reproduces the same ``linear_path()``, except in the
    window between ``create_branch`` and the next ``add_message``: the
    pending-branch selection is never written, it is clamped to the last
    child, so the restored path continues through that child.
    """
    nodes = [_encode_node(node) for node in tree.store.values()]
    logger.debug("Exported %d node(s)", len(nodes))
    return {"version": CURRENT_EXPORT_VERSION, "rootId": tree.root_id, "nodes": nodes}


def export_json(tree: ConversationTree) -> str:
    return json.dumps(export_tree(tree), ensure_ascii=False, separators=(",", ":"))


def import_tree(tree: ConversationTree, payload: Any) -> None:
    """Replace the contents of ``tree`` with ``payload``.

    The payload is fully decoded before the tree is touched, so a
    StructuralError leaves the previous conversation in place.
    """
    if not isinstance(payload, dict):
        raise StructuralError("Export payload must be an object")

    version = payload.get("version")
    if type(version) is not int or version not in SUPPORTED_EXPORT_VERSIONS:
        raise StructuralError(f"Unsupported export version: {version!r}")

    raw_nodes = payload.get("nodes")
    if not isinstance(raw_nodes, list):
        raise StructuralError("Export payload is missing the 'nodes' array")

    nodes: Dict[str, MessageNode] = {}
    for index, raw in enumerate(raw_nodes):
        node = _decode_node(raw, version, index)
        if node.id in nodes:
            raise StructuralError(f"Duplicate node id: {node.id}")
        nodes[node.id] = node

    root_id = payload.get("rootId")
    if root_id is not None and not isinstance(root_id, str):
        raise StructuralError("rootId must be a string or null")

    kept = _reachable(nodes, root_id)
    if len(kept) != len(nodes):
        logger.warning("Dropped %d node(s) not reachable from the root", len(nodes) - len(kept))

    tree.replace_all(kept, root_id)
    logger.debug("Imported %d node(s) from version %d export", len(kept), version)


def import_json(tree: ConversationTree, text: Union[str, bytes]) -> None:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StructuralError(f"Export is not valid JSON: {exc}") from exc
    import_tree(tree, payload)


def _encode_node(node: MessageNode) -> List[Any]:
    count = len(node.children_ids)
    selected = node.selected_child_index
    if not 0 <= selected < count:
        selected = max(count - 1, 0)

    encoded: List[Any] = [
        node.id,
        _ROLE_TO_CODE[node.role],
        _encode_content(node.content),
        node.parent_id,
        list(node.children_ids),
        selected,
        node.timestamp,
    ]
    metadata = _encode_metadata(node)
    if metadata:
        encoded.append(metadata)
    return encoded


def _encode_content(content: List[Part]) -> Union[str, List[Dict[str, Any]]]:
    if len(content) == 1 and isinstance(content[0], TextPart):
        return content[0].text
    return [part_to_wire(part) for part in content]


def _encode_metadata(node: MessageNode) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    if node.input_tokens:
        metadata["it"] = node.input_tokens
    if node.output_tokens:
        metadata["ot"] = node.output_tokens
    if node.input_cost:
        metadata["ic"] = node.input_cost
    if node.output_cost:
        metadata["oc"] = node.output_cost
    if node.collapsed:
        metadata["c"] = 1
    return metadata


def _decode_node(raw: Any, version: int, index: int) -> MessageNode:
    if not isinstance(raw, list) or len(raw) < 7:
        raise StructuralError(f"Node #{index} must be an array of at least 7 fields")

    node_id, role_code, content, parent_id, children_ids, selected, timestamp = raw[:7]
    metadata = raw[7] if len(raw) > 7 else None

    if not isinstance(node_id, str) or not node_id:
        raise StructuralError(f"Node #{index} has an invalid id")
    if type(role_code) is not int or role_code not in _CODE_TO_ROLE:
        raise StructuralError(f"Node {node_id} has an unknown role code: {role_code!r}")
    if parent_id is not None and not isinstance(parent_id, str):
        raise StructuralError(f"Node {node_id} has an invalid parent id")
    if not isinstance(children_ids, list) or not all(isinstance(c, str) for c in children_ids):
        raise StructuralError(f"Node {node_id} has an invalid children list")
    if type(selected) is not int:
        raise StructuralError(f"Node {node_id} has an invalid selected index")
    if metadata is not None and not isinstance(metadata, dict):
        raise StructuralError(f"Node {node_id} has invalid metadata")

    node = MessageNode(
        id=node_id,
        role=_CODE_TO_ROLE[role_code],
        content=_decode_content(content, version, node_id),
        parent_id=parent_id,
        children_ids=list(children_ids),
        selected_child_index=selected,
        timestamp=_as_int(timestamp, node_id, "timestamp"),
    )
    _apply_metadata(node, metadata or {})

    text_length = len(node.text())
    if node.role == "user":
        node.sent_chars = text_length
    else:
        node.received_chars = text_length
    return node


def _decode_content(content: Any, version: int, node_id: str) -> List[Part]:
    if isinstance(content, str):
        return [TextPart(text=content)]
    if version == 1:
        raise StructuralError(f"Node {node_id}: version 1 content must be a string")
    if not isinstance(content, list) or not content:
        raise StructuralError(f"Node {node_id} has empty or invalid content")
    try:
        return [part_from_wire(part) for part in content]
    except ValueError as exc:
        raise StructuralError(f"Node {node_id} has invalid content: {exc}") from exc


def _apply_metadata(node: MessageNode, metadata: Dict[str, Any]) -> None:
    if metadata.get("it"):
        node.input_tokens = _as_int(metadata["it"], node.id, "it")
    if metadata.get("ot"):
        node.output_tokens = _as_int(metadata["ot"], node.id, "ot")
    if metadata.get("ic"):
        node.input_cost = _as_float(metadata["ic"], node.id, "ic")
    if metadata.get("oc"):
        node.output_cost = _as_float(metadata["oc"], node.id, "oc")
    node.collapsed = bool(metadata.get("c"))


def _as_float(value: Any, node_id: str, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StructuralError(f"Node {node_id} has an invalid {field}: {value!r}")
    try:
        result = float(value)
    except OverflowError as exc:
        raise StructuralError(f"Node {node_id} has an out of range {field}") from exc
    # json.loads accepts NaN and Infinity
    if not math.isfinite(result):
        raise StructuralError(f"Node {node_id} has a non-finite {field}: {value!r}")
    return result


def _as_int(value: Any, node_id: str, field: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return int(_as_float(value, node_id, field))


def _reachable(nodes: Dict[str, MessageNode], root_id: Optional[str]) -> List[MessageNode]:
    """Nodes reachable from the root, with child lists and selections repaired."""
    root = nodes.get(root_id) if root_id is not None else None
    if root is None:
        return []

    root.parent_id = None
    kept: List[MessageNode] = []
    seen = {root.id}
    queue = deque([root])
    while queue:
        node = queue.popleft()
        kept.append(node)
        children: List[str] = []
        for child_id in node.children_ids:
            child = nodes.get(child_id)
            if child is None or child.parent_id != node.id or child_id in seen:
                continue
            seen.add(child_id)
            children.append(child_id)
            queue.append(child)
        node.children_ids = children
        if not 0 <= node.selected_child_index < len(children):
            node.selected_child_index = max(len(children) - 1, 0)
    return kept
