"""Property-based tests for alert condition evaluation.

**Feature: price-alerts**
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from pricealert.engine.evaluator import matches

prices = st.decimals(
    min_value=Decimal("0.0001"),
    max_value=Decimal("100000"),
    places=4,
    allow_nan=False,
    allow_infinity=False,
)


class TestCrossingConditionEvaluation:
    """
    **Feature: price-alerts, Property 1: Crossing Condition Evaluation**

    *For any* threshold and current price, a crossing_up alert matches iff
    price >= threshold and a crossing_down alert matches iff price <= threshold.
    """

    @given(threshold=prices, current_price=prices)
    @settings(max_examples=200)
    def test_crossing_up(self, threshold: Decimal, current_price: Decimal):
        result = matches("crossing_up", threshold, current_price)
        assert result == (current_price >= threshold), (
            f"crossing_up @ {threshold} with price {current_price}: got {result}"
        )

    @given(threshold=prices, current_price=prices)
    @settings(max_examples=200)
    def test_crossing_down(self, threshold: Decimal, current_price: Decimal):
        result = matches("crossing_down", threshold, current_price)
        assert result == (current_price <= threshold), (
            f"crossing_down @ {threshold} with price {current_price}: got {result}"
        )

    @given(threshold=prices, direction=st.sampled_from(["crossing_up", "crossing_down"]))
    @settings(max_examples=50)
    def test_missing_price_never_matches(self, threshold: Decimal, direction: str):
        assert matches(direction, threshold, None) is False

    @given(threshold=prices, direction=st.sampled_from(["crossing_up", "crossing_down"]))
    @settings(max_examples=50)
    def test_price_equal_to_threshold_matches(self, threshold: Decimal, direction: str):
        assert matches(direction, threshold, threshold) is True

    def test_price_already_past_threshold_matches(self):
        """A level check fires even if the price never moved through the threshold."""
        assert matches("crossing_up", Decimal("1.2000"), Decimal("1.2050"))
        assert matches("crossing_down", Decimal("1.3000"), Decimal("1.2000"))

    def test_trailing_zeros_do_not_affect_comparison(self):
        assert matches("crossing_up", Decimal("1.2000"), Decimal("1.2"))
        assert matches("crossing_down", Decimal("1.20"), Decimal("1.2000"))

    def test_unknown_direction_never_matches(self):
        assert matches("sideways", Decimal("1"), Decimal("1")) is False
