"""Base price feed interface for PriceAlert."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from pricealert.models import PriceQuote


class FeedResult(BaseModel):
    """Prices returned by one batched feed request.

    An empty ``prices`` mapping with ``error`` set means the feed was
    unavailable; an empty mapping without ``error`` means the feed answered
    but had no usable price for any requested instrument.
    """

    prices: dict[str, Decimal] = Field(default_factory=dict)
    error: Optional[str] = Field(default=None, description="Failure cause if the request failed")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: str) -> "FeedResult":
        return cls(prices={}, error=error)

    def get_quote(self, instrument_key: str) -> Optional[PriceQuote]:
        """Look up the quote for a normalized instrument key."""
        price = self.prices.get(instrument_key)
        if price is None:
            return None
        return PriceQuote(instrument_key=instrument_key, price=price)


class BasePriceFeed(ABC):
    """Abstract base class for quote sources.

    Implementations must not raise: upstream failures are reported through
    ``FeedResult.error``.
    """

    @abstractmethod
    def fetch_prices(self, instrument_keys: Iterable[str]) -> FeedResult:
        """Fetch current prices for a de-duplicated set of instruments.

        Args:
            instrument_keys: Normalized instrument keys (e.g., 'EUR/USD').

        Returns:
            FeedResult mapping instrument key to price.
        """
        pass


class StaticPriceFeed(BasePriceFeed):
    """Price feed backed by a fixed mapping, for dry runs and tests."""

    def __init__(self, prices: dict[str, Decimal], error: Optional[str] = None):
        self._prices = {key: Decimal(str(value)) for key, value in prices.items()}
        self._error = error
        self.requests: list[set[str]] = []

    def fetch_prices(self, instrument_keys: Iterable[str]) -> FeedResult:
        keys = set(instrument_keys)
        self.requests.append(keys)
        if self._error:
            return FeedResult.failed(self._error)
        return FeedResult(prices={k: v for k, v in self._prices.items() if k in keys})
