"""Abstract transport interface."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

from ..streaming import FragmentStream
from ..types import ChatConfig, StreamOptions


class StreamFunction(Protocol):
    def __call__(
        self,
        contents: List[Dict[str, Any]],
        config: ChatConfig,
        options: StreamOptions | None = None,
    ) -> FragmentStream: ...
