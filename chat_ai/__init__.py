"""Generation layer: parts, config, pricing and the streaming transport."""

from .context import select_history, to_contents
from .pricing import calculate_cost, get_pricing, register_pricing
from .streaming import FragmentStream
from .types import (
    ChatConfig,
    CostBreakdown,
    InlineData,
    InlineDataPart,
    ModelPricing,
    ModelTier,
    Part,
    TextPart,
    part_from_wire,
    part_to_wire,
)

__all__ = [
    "auth",
    "context",
    "pricing",
    "providers",
    "streaming",
    "types",
    "ChatConfig",
    "CostBreakdown",
    "FragmentStream",
    "InlineData",
    "InlineDataPart",
    "ModelPricing",
    "ModelTier",
    "Part",
    "TextPart",
    "calculate_cost",
    "get_pricing",
    "part_from_wire",
    "part_to_wire",
    "register_pricing",
    "select_history",
    "to_contents",
]
