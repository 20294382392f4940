"""History selection and wire conversion for generation requests."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Sequence, TypeVar

from .types import ContextLength, Part, part_to_wire


class HasContent(Protocol):
    role: str
    content: List[Part]


T = TypeVar("T")


def select_history(messages: Sequence[T], context_length: ContextLength) -> List[T]:
    """Apply the context-length policy.

    ``"all"`` keeps every message. An integer ``n`` keeps the last ``n``
    history messages plus the new one, so at most ``n + 1`` in total.
    """
    if context_length == "all":
        return list(messages)
    keep = int(context_length) + 1
    return list(messages[-keep:]) if messages else []


def to_contents(messages: Sequence[HasContent]) -> List[Dict[str, Any]]:
    return [
        {"role": message.role, "parts": [part_to_wire(part) for part in message.content]}
        for message in messages
    ]
