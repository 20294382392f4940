"""Conversation tree engine for branching chats."""

from .errors import StructuralError
from .merger import PENDING_TEXT, STOPPED_TEXT, MergeState, StreamingMerger, placeholder_parts
from .node import MessageNode
from .serialization import (
    CURRENT_EXPORT_VERSION,
    SUPPORTED_EXPORT_VERSIONS,
    export_json,
    export_tree,
    import_json,
    import_tree,
)
from .store import NodeStore
from .tree import ConversationTree

__all__ = [
    "CURRENT_EXPORT_VERSION",
    "ConversationTree",
    "MergeState",
    "MessageNode",
    "NodeStore",
    "PENDING_TEXT",
    "STOPPED_TEXT",
    "SUPPORTED_EXPORT_VERSIONS",
    "StreamingMerger",
    "StructuralError",
    "export_json",
    "export_tree",
    "import_json",
    "import_tree",
    "placeholder_parts",
]
