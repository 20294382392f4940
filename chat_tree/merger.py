"""Merge streamed fragments into the response node being generated."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from chat_ai.pricing import calculate_cost
from chat_ai.streaming import FragmentStream
from chat_ai.types import CostBreakdown, Part, TextPart

from .node import MessageNode

logger = logging.getLogger(__name__)

PENDING_TEXT = "Thinking..."
STOPPED_TEXT = "**[Generation stopped]**"
ERROR_PREFIX = "**Error:** "

PricingFn = Callable[[str, int, int], CostBreakdown]


class MergeState(str, Enum):
    PLACEHOLDER = "placeholder"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


_TERMINAL = {MergeState.COMPLETED, MergeState.ABORTED, MergeState.FAILED}


def placeholder_parts() -> list[Part]:
    return [TextPart(text=PENDING_TEXT)]


class StreamingMerger:
    """Single-writer state machine for one in-flight response node.

    Text fragments are folded into the trailing text part; attachments always
    start a new part. Once a terminal state is reached further input is
    ignored.
    """

    def __init__(self, node: MessageNode, *, pricing_fn: PricingFn = calculate_cost) -> None:
        self._node = node
        self._pricing_fn = pricing_fn
        self._state = MergeState.PLACEHOLDER

    @property
    def node(self) -> MessageNode:
        return self._node

    @property
    def state(self) -> MergeState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state in _TERMINAL

    def add_fragment(self, part: Part) -> None:
        if self.finished:
            return
        if self._state is MergeState.PLACEHOLDER:
            self._node.content = []
            self._transition(MergeState.STREAMING)

        content = self._node.content
        if isinstance(part, TextPart):
            if content and isinstance(content[-1], TextPart):
                content[-1].text += part.text
            else:
                content.append(TextPart(text=part.text))
        else:
            content.append(part)

    def complete(
        self,
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> None:
        if self.finished:
            return
        node = self._node
        if self._state is MergeState.PLACEHOLDER:
            node.content = [TextPart(text="")]

        if input_tokens is not None:
            node.input_tokens = input_tokens
        if output_tokens is not None:
            node.output_tokens = output_tokens
        if model and (input_tokens is not None or output_tokens is not None):
            cost = self._pricing_fn(model, input_tokens or 0, output_tokens or 0)
            node.input_cost = cost.input_cost
            node.output_cost = cost.output_cost

        self._finish(MergeState.COMPLETED)

    def abort(self) -> None:
        if self.finished:
            return
        node = self._node
        if self._state is MergeState.PLACEHOLDER:
            node.content = [TextPart(text=STOPPED_TEXT)]
        elif node.content and isinstance(node.content[-1], TextPart):
            node.content[-1].text += "\n\n" + STOPPED_TEXT
        else:
            node.content.append(TextPart(text=STOPPED_TEXT))
        self._finish(MergeState.ABORTED)

    def fail(self, message: Optional[str] = None) -> None:
        if self.finished:
            return
        self._node.content = [TextPart(text=f"{ERROR_PREFIX}{message or 'Unknown error'}")]
        self._finish(MergeState.FAILED)

    async def consume(
        self,
        stream: FragmentStream,
        signal: Optional[asyncio.Event] = None,
        model: Optional[str] = None,
    ) -> MergeState:
        input_tokens: Optional[int] = None
        output_tokens: Optional[int] = None

        try:
            async for event in stream:
                if signal is not None and signal.is_set():
                    break
                event_type = event.get("type")
                if event_type == "fragment":
                    self.add_fragment(event["part"])
                elif event_type == "usage":
                    input_tokens = event.get("input_tokens")
                    output_tokens = event.get("output_tokens")
                elif event_type == "done":
                    self.complete(input_tokens, output_tokens, model)
                elif event_type == "error":
                    if event.get("reason") == "aborted":
                        self.abort()
                    else:
                        self.fail(event.get("message"))
                if self.finished:
                    break
        except Exception as error:
            if signal is not None and signal.is_set():
                self.abort()
            else:
                logger.warning("Generation for %s failed: %s", self._node.id, error)
                self.fail(str(error))

        if not self.finished:
            if signal is not None and signal.is_set():
                self.abort()
            else:
                self.complete(input_tokens, output_tokens, model)
        return self._state

    def _finish(self, state: MergeState) -> None:
        # counts the final visible text, which is what an import recomputes
        self._node.received_chars = len(self._node.text())
        self._transition(state)

    def _transition(self, state: MergeState) -> None:
        logger.debug("Response %s: %s -> %s", self._node.id, self._state.value, state.value)
        self._state = state
