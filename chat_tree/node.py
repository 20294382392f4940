"""Message node held by the conversation tree."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import uuid4

from chat_ai.types import Part, Role, TextPart


def generate_id() -> str:
    return uuid4().hex[:8]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(eq=False)
class MessageNode:
    id: str
    role: Role
    content: List[Part]
    parent_id: Optional[str] = None
    children_ids: List[str] = field(default_factory=list)
    selected_child_index: int = 0
    timestamp: int = 0

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    input_cost: Optional[float] = None
    output_cost: Optional[float] = None
    sent_chars: Optional[int] = None
    received_chars: Optional[int] = None
    collapsed: bool = False

    def text(self) -> str:
        return "".join(part.text for part in self.content if isinstance(part, TextPart))

    def selected_child_id(self) -> Optional[str]:
        if 0 <= self.selected_child_index < len(self.children_ids):
            return self.children_ids[self.selected_child_index]
        return None
