"""Core types for message parts, generation config and pricing."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils.serialization import to_camel_dict, to_snake_dict

Role = Literal["user", "model"]
ContextLength = Union[Literal["all"], int]


class TextPart(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["text"] = "text"
    text: str


class InlineData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mime_type: str
    data: str
    name: Optional[str] = None


class InlineDataPart(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["inline_data"] = "inline_data"
    inline_data: InlineData


Part = Union[TextPart, InlineDataPart]


def part_to_wire(part: Part) -> Dict[str, Any]:
    """Render a part the way the generation API and export format spell it."""
    if part.type == "text":
        return {"text": part.text}
    return {"inlineData": to_camel_dict(part.inline_data)}


def part_from_wire(payload: Dict[str, Any]) -> Part:
    if not isinstance(payload, dict):
        raise ValueError(f"Part must be an object, got {type(payload).__name__}")
    if "text" in payload:
        return TextPart(text=payload["text"])
    if "inlineData" in payload or "inline_data" in payload:
        data = payload.get("inlineData", payload.get("inline_data"))
        return InlineDataPart(inline_data=InlineData.model_validate(to_snake_dict(data)))
    raise ValueError(f"Unrecognized part: {sorted(payload)}")


class ModelTier(BaseModel):
    model_config = ConfigDict(extra="forbid")

    threshold: Optional[int] = None
    input: float = 0.0
    output: float = 0.0


class ModelPricing(BaseModel):
    """USD per million tokens; tier2 applies above tier1.threshold input tokens."""

    model_config = ConfigDict(extra="forbid")

    tier1: ModelTier = Field(default_factory=ModelTier)
    tier2: Optional[ModelTier] = None


class CostBreakdown(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input_cost: float = 0.0
    output_cost: float = 0.0

    @property
    def total(self) -> float:
        return self.input_cost + self.output_cost


class ChatConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    model: str = "gemini-2.5-flash"
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    context_length: ContextLength = "all"

    @field_validator("context_length", mode="before")
    @classmethod
    def _parse_context_length(cls, value: Any) -> Any:
        if isinstance(value, str) and value != "all":
            try:
                value = int(value, 10)
            except ValueError as exc:
                raise ValueError(f"context_length must be 'all' or an integer, got {value!r}") from exc
        if isinstance(value, int) and not isinstance(value, bool) and value < 0:
            raise ValueError("context_length must be non-negative")
        return value


@dataclass
class StreamOptions:
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    signal: Optional[asyncio.Event] = None
