"""Errors raised by the conversation tree."""

from __future__ import annotations


class StructuralError(ValueError):
    """Raised when an import payload does not describe a valid tree."""
