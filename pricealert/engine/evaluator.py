"""Alert crossing condition evaluation."""

from decimal import Decimal
from typing import Optional

from pricealert.models import AlertDirection


def matches(
    direction: AlertDirection, threshold: Decimal, current_price: Optional[Decimal]
) -> bool:
    """Check whether a price satisfies an alert's crossing condition.

    This is a level check against the latest sample, not edge detection:
    an alert created while the price is already past its threshold matches
    on the first cycle that sees a quote.

    Args:
        direction: 'crossing_up' or 'crossing_down'.
        threshold: Alert threshold price.
        current_price: Latest price, None if no quote is available.

    Returns:
        True if the condition is met, False otherwise (including no quote).
    """
    if current_price is None:
        return False
    if direction == "crossing_up":
        return current_price >= threshold
    if direction == "crossing_down":
        return current_price <= threshold
    return False
