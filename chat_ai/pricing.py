"""Model pricing registry and cost calculation."""

from __future__ import annotations

from typing import Dict

from .types import CostBreakdown, ModelPricing, ModelTier

_PRICING_REGISTRY: Dict[str, ModelPricing] = {}


def register_pricing(model_id: str, pricing: ModelPricing) -> None:
    _PRICING_REGISTRY[model_id] = pricing


def get_pricing(model_id: str) -> ModelPricing | None:
    return _PRICING_REGISTRY.get(model_id)


def _select_tier(pricing: ModelPricing, input_tokens: int) -> ModelTier:
    tier1 = pricing.tier1
    if pricing.tier2 is None or tier1.threshold is None:
        return tier1
    if input_tokens <= tier1.threshold:
        return tier1
    return pricing.tier2


def calculate_cost(model_id: str, input_tokens: int, output_tokens: int) -> CostBreakdown:
    pricing = _PRICING_REGISTRY.get(model_id)
    if pricing is None:
        return CostBreakdown()

    tier = _select_tier(pricing, input_tokens)
    return CostBreakdown(
        input_cost=input_tokens * tier.input / 1_000_000,
        output_cost=output_tokens * tier.output / 1_000_000,
    )


def _register_if_missing(model_id: str, pricing: ModelPricing) -> None:
    if model_id not in _PRICING_REGISTRY:
        _PRICING_REGISTRY[model_id] = pricing


def _register_builtin_pricing() -> None:
    _register_if_missing(
        "gemini-3-pro-preview",
        ModelPricing(
            tier1=ModelTier(threshold=200_000, input=2.00, output=12.00),
            tier2=ModelTier(threshold=200_000, input=4.00, output=18.00),
        ),
    )
    _register_if_missing(
        "gemini-2.5-pro",
        ModelPricing(
            tier1=ModelTier(threshold=200_000, input=1.25, output=10.00),
            tier2=ModelTier(threshold=200_000, input=2.50, output=15.00),
        ),
    )
    _register_if_missing(
        "gemini-2.5-flash",
        ModelPricing(tier1=ModelTier(input=0.30, output=2.50)),
    )


_register_builtin_pricing()
