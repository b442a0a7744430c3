"""Persistence layer for PriceAlert."""

from pricealert.db.base import AlertFilter, AlertStore
from pricealert.db.store import DataStore

__all__ = ["AlertFilter", "AlertStore", "DataStore"]
