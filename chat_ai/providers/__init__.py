"""Provider implementations and interfaces."""

from __future__ import annotations

from .gemini import GeminiOptions, stream_gemini

__all__ = [
    "base",
    "gemini",
    "GeminiOptions",
    "stream_gemini",
]
