"""Key-case helpers for the camelCase wire format."""

from __future__ import annotations

import re
from dataclasses import asdict, is_dataclass
from typing import Any, Dict

from pydantic import BaseModel


def to_camel_key(key: str) -> str:
    if "_" not in key:
        return key
    parts = [part for part in key.split("_") if part]
    if not parts:
        return key
    return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


def to_snake_key(key: str) -> str:
    if "_" in key:
        return key
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", key)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return s2.lower()


def _to_plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, dict):
        return {key: _to_plain(val) for key, val in value.items()}
    if isinstance(value, list):
        return [_to_plain(item) for item in value]
    return value


def convert_keys(value: Any, key_fn) -> Any:
    if isinstance(value, dict):
        converted: Dict[Any, Any] = {}
        for key, val in value.items():
            new_key = key_fn(key) if isinstance(key, str) else key
            converted[new_key] = convert_keys(val, key_fn)
        return converted
    if isinstance(value, list):
        return [convert_keys(item, key_fn) for item in value]
    return value


def to_camel_dict(value: Any) -> Any:
    return convert_keys(_to_plain(value), to_camel_key)


def to_snake_dict(value: Any) -> Any:
    return convert_keys(_to_plain(value), to_snake_key)
