import pytest

from chat_ai.pricing import calculate_cost, get_pricing, register_pricing
from chat_ai.types import ModelPricing, ModelTier


def test_flat_pricing():
    cost = calculate_cost("gemini-2.5-flash", 1_000_000, 2_000_000)
    assert cost.input_cost == pytest.approx(0.30)
    assert cost.output_cost == pytest.approx(5.00)
    assert cost.total == pytest.approx(5.30)


def test_tiered_pricing_switches_above_threshold():
    low = calculate_cost("gemini-2.5-pro", 200_000, 1_000_000)
    assert low.input_cost == pytest.approx(200_000 * 1.25 / 1_000_000)
    assert low.output_cost == pytest.approx(10.0)

    high = calculate_cost("gemini-2.5-pro", 200_001, 1_000_000)
    assert high.input_cost == pytest.approx(200_001 * 2.50 / 1_000_000)
    assert high.output_cost == pytest.approx(15.0)


def test_unknown_model_is_free():
    cost = calculate_cost("mystery-model", 10, 10)
    assert cost.input_cost == 0.0
    assert cost.output_cost == 0.0


def test_register_pricing():
    register_pricing("test-model", ModelPricing(tier1=ModelTier(input=1.0, output=2.0)))
    assert get_pricing("test-model") is not None
    cost = calculate_cost("test-model", 1_000_000, 1_000_000)
    assert cost.input_cost == pytest.approx(1.0)
    assert cost.output_cost == pytest.approx(2.0)
