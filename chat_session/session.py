"""Chat session: drives the conversation tree against a generation transport."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from chat_ai.context import select_history, to_contents
from chat_ai.providers.base import StreamFunction
from chat_ai.providers.gemini import GeminiOptions, stream_gemini
from chat_ai.types import ChatConfig, InlineDataPart, Part, TextPart
from chat_tree import serialization
from chat_tree.merger import MergeState, StreamingMerger, placeholder_parts
from chat_tree.node import MessageNode
from chat_tree.tree import ConversationTree

from .attachments import load_attachment
from .settings import AppSettings

logger = logging.getLogger(__name__)

Attachment = Union[InlineDataPart, str, Path]


class ChatSession:
    """Owns one conversation tree and at most one in-flight generation.

    Every turn is a user node followed by a model node. Editing or
    regenerating adds a sibling branch instead of overwriting, so earlier
    versions stay reachable through :meth:`switch_branch`.
    """

    def __init__(
        self,
        tree: Optional[ConversationTree] = None,
        *,
        config: Optional[ChatConfig] = None,
        settings: Optional[AppSettings] = None,
        stream_fn: Optional[StreamFunction] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._tree = tree if tree is not None else ConversationTree()
        self._config = config or ChatConfig()
        self._settings = settings or AppSettings()
        self._stream_fn: StreamFunction = stream_fn or stream_gemini
        self._api_key = api_key
        self._base_url = base_url
        self._headers = headers
        self._abort_event: Optional[asyncio.Event] = None
        self._is_loading = False
        self._last_state: Optional[MergeState] = None

    @property
    def tree(self) -> ConversationTree:
        return self._tree

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_state(self) -> Optional[MergeState]:
        """Outcome of the most recent generation."""
        return self._last_state

    def set_config(self, config: ChatConfig) -> None:
        self._config = config

    def set_settings(self, settings: AppSettings) -> None:
        self._settings = settings

    def linear_path(self) -> List[MessageNode]:
        return self._tree.linear_path()

    async def send_message(
        self,
        text: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> MessageNode:
        """Append a user turn to the end of the active path and stream the reply."""
        self._ensure_idle()
        parts = self._build_parts(text, attachments)
        path = self._tree.linear_path()
        parent_id = path[-1].id if path else None

        user = self._tree.add_message("user", parts, parent_id)
        user.sent_chars = len(user.text())
        return await self._generate(user.id)

    async def regenerate(self, node_id: str) -> MessageNode:
        """Produce an alternative reply.

        For a model node the new reply becomes a sibling of it; for a user node
        it becomes another child of that node.
        """
        self._ensure_idle()
        node = self._tree.get(node_id)
        if node is None:
            raise ValueError(f"Message not found: {node_id}")

        parent_id = node.parent_id if node.role == "model" else node.id
        if parent_id is None:
            raise ValueError("Cannot regenerate a response without a preceding message")
        self._tree.create_branch(parent_id)
        return await self._generate(parent_id)

    async def edit_message(
        self,
        node_id: str,
        text: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> MessageNode:
        """Branch a user turn with new content and stream a reply to it."""
        self._ensure_idle()
        node = self._tree.get(node_id)
        if node is None:
            raise ValueError(f"Message not found: {node_id}")
        if node.role != "user":
            raise ValueError("Only user messages can be edited")
        if node.parent_id is None:
            raise ValueError("The first message of a conversation cannot be branched")

        parts = self._build_parts(text, attachments)
        self._tree.create_branch(node.parent_id)
        edited = self._tree.add_message("user", parts, node.parent_id)
        edited.sent_chars = len(edited.text())
        return await self._generate(edited.id)

    def stop_generation(self) -> None:
        if self._abort_event:
            self._abort_event.set()

    def delete_message(self, node_id: str) -> List[str]:
        return self._tree.delete_message(node_id)

    def switch_branch(self, parent_id: str, index: int) -> None:
        self._tree.switch_branch(parent_id, index)

    def navigate_to_message(self, node_id: str) -> None:
        self._tree.navigate_to_message(node_id)

    def toggle_collapsed(self, node_id: str) -> None:
        node = self._tree.get(node_id)
        if node is not None:
            self._tree.set_collapsed(node_id, not node.collapsed)

    def export_json(self) -> str:
        return serialization.export_json(self._tree)

    def import_json(self, text: Union[str, bytes]) -> None:
        self._ensure_idle()
        serialization.import_json(self._tree, text)

    async def _generate(self, parent_id: str) -> MessageNode:
        self._is_loading = True
        signal = asyncio.Event()
        self._abort_event = signal
        try:
            placeholder = self._tree.add_message("model", placeholder_parts(), parent_id)
            history = self._tree.path_to(parent_id)
            contents = to_contents(select_history(history, self._config.context_length))
            merger = StreamingMerger(placeholder)

            options = GeminiOptions(
                api_key=self._api_key,
                base_url=self._base_url,
                headers=self._headers,
                signal=signal,
            )
            try:
                stream = self._stream_fn(contents, self._config, options)
                await merger.consume(stream, signal, model=self._config.model)
            except asyncio.CancelledError:
                merger.abort()
                raise
            except Exception as error:
                logger.warning("Could not start generation: %s", error)
                merger.fail(str(error))

            self._last_state = merger.state
            logger.debug("Generation for %s finished as %s", placeholder.id, merger.state.value)
            if self._settings.enable_auto_collapse:
                self._tree.auto_collapse(self._settings.collapse_threshold)
            return placeholder
        finally:
            self._is_loading = False
            self._abort_event = None

    def _build_parts(self, text: str, attachments: Optional[Sequence[Attachment]]) -> List[Part]:
        parts: List[Part] = []
        if text and text.strip():
            parts.append(TextPart(text=text))
        for attachment in attachments or []:
            if isinstance(attachment, InlineDataPart):
                parts.append(attachment)
            else:
                parts.append(load_attachment(attachment, self._settings))
        if not parts:
            raise ValueError("Message is empty")
        return parts

    def _ensure_idle(self) -> None:
        if self._is_loading:
            raise RuntimeError("A response is already being generated.")
