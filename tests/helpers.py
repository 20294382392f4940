"""Test helpers for the chat packages."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from chat_ai.streaming import FragmentStream
from chat_ai.types import InlineData, InlineDataPart, TextPart
from chat_tree.tree import ConversationTree


def text(value: str) -> List[TextPart]:
    return [TextPart(text=value)]


def image(data: str = "iVBORw0KGgo=", name: Optional[str] = "pic.png") -> InlineDataPart:
    return InlineDataPart(inline_data=InlineData(mime_type="image/png", data=data, name=name))


def build_branched_tree():
    """root -> u1 -> m1 -> {m1a, m1b}, with m1b selected."""
    tree = ConversationTree()
    root = tree.add_message("user", text("root"))
    u1 = tree.add_message("model", text("u1"), root.id)
    m1 = tree.add_message("user", text("m1"), u1.id)
    m1a = tree.add_message("model", text("m1a"), m1.id)
    m1b = tree.add_message("model", text("m1b"), m1.id)
    return tree, {"root": root, "u1": u1, "m1": m1, "m1a": m1a, "m1b": m1b}


def ids(nodes: Iterable[Any]) -> List[str]:
    return [node.id for node in nodes]


def invariant_problems(tree: ConversationTree) -> List[str]:
    problems: List[str] = []
    store = tree.store
    nodes = list(store.values())

    if tree.root_id is None and nodes:
        problems.append("nodes present without a root")
    if tree.root_id is not None:
        root = store.get(tree.root_id)
        if root is None:
            problems.append("root id does not resolve")
        elif root.parent_id is not None:
            problems.append("root has a parent")

    owners: Dict[str, str] = {}
    for node in nodes:
        if not node.content:
            problems.append(f"{node.id} has empty content")
        if node.id != tree.root_id and store.get(node.parent_id) is None:
            problems.append(f"{node.id} has a missing parent")
        for child_id in node.children_ids:
            child = store.get(child_id)
            if child is None or child.parent_id != node.id:
                problems.append(f"{node.id} lists foreign child {child_id}")
            if child_id in owners:
                problems.append(f"{child_id} has two parents")
            owners[child_id] = node.id
        if node.children_ids and not 0 <= node.selected_child_index < len(node.children_ids):
            problems.append(f"{node.id} selects out of range")
        parent = store.get(node.parent_id)
        if parent is not None and node.id not in parent.children_ids:
            problems.append(f"{node.id} missing from its parent's children")
    return problems


def make_stream_fn(events: List[Dict[str, Any]], calls: Optional[List[Any]] = None):
    def stream_fn(contents, config, options=None):
        if calls is not None:
            calls.append({"contents": contents, "config": config, "options": options})
        stream = FragmentStream()
        for event in events:
            stream.push(event)
        stream.end()
        return stream

    return stream_fn


def text_events(*chunks: str, input_tokens: int = 10, output_tokens: int = 5) -> List[Dict[str, Any]]:
    events: List[Dict[str, Any]] = [{"type": "fragment", "part": TextPart(text=c)} for c in chunks]
    events.append({"type": "usage", "input_tokens": input_tokens, "output_tokens": output_tokens})
    events.append({"type": "done"})
    return events
