"""Data models for PriceAlert."""

from pricealert.models.alert import (
    Alert,
    AlertDirection,
    AlertStatus,
    normalize_instrument_key,
    to_local_naive,
)
from pricealert.models.outcome import CycleOutcome, CycleReport, ErrorKind
from pricealert.models.quote import PriceQuote

__all__ = [
    "Alert",
    "AlertDirection",
    "AlertStatus",
    "CycleOutcome",
    "CycleReport",
    "ErrorKind",
    "PriceQuote",
    "normalize_instrument_key",
    "to_local_naive",
]
