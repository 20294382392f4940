"""Utility helpers for chat_ai."""

from .serialization import to_camel_dict, to_camel_key, to_snake_dict, to_snake_key

__all__ = [
    "to_camel_dict",
    "to_camel_key",
    "to_snake_dict",
    "to_snake_key",
]
