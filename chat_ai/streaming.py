"""Async stream of generation events delivered by a transport."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Dict, Optional

FragmentEvent = Dict[str, Any]


class FragmentStream(AsyncIterator[FragmentEvent]):
    """Queue-backed event stream.

    Events are dicts keyed by ``type``:

    - ``{"type": "fragment", "part": Part}``
    - ``{"type": "usage", "input_tokens": int, "output_tokens": int}``
    - ``{"type": "done"}``
    - ``{"type": "error", "reason": "aborted" | "error", "message": str}``

    ``done`` and ``error`` are terminal and resolve :meth:`result`.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[FragmentEvent | None] = asyncio.Queue()
        self._done = False
        self._result: Optional[FragmentEvent] = None
        self._result_event = asyncio.Event()

    def push(self, event: FragmentEvent) -> None:
        if self._done:
            return
        if event.get("type") in {"done", "error"}:
            self._set_result(event)
        self._queue.put_nowait(event)

    def end(self, result: Optional[FragmentEvent] = None) -> None:
        if result is not None:
            self._set_result(result)
        if not self._done:
            self._done = True
            self._queue.put_nowait(None)

    async def result(self) -> FragmentEvent:
        await self._result_event.wait()
        if self._result is None:
            raise RuntimeError("Stream finished without a terminal event.")
        return self._result

    def _set_result(self, event: FragmentEvent) -> None:
        if self._result is None:
            self._result = event
            self._result_event.set()

    def __aiter__(self) -> "FragmentStream":
        return self

    async def __anext__(self) -> FragmentEvent:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item
