"""Forex Factory market data feed."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional
from urllib.parse import quote

import requests

from pricealert.feeds.base import BasePriceFeed, FeedResult

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://mds-api.forexfactory.com/instruments"
DEFAULT_TIMEFRAME = "M20"
DEFAULT_TIMEOUT = 10

REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}


def _parse_price(value: Any) -> Optional[Decimal]:
    """Convert a payload price into a positive, finite Decimal."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def parse_instruments_payload(payload: Any, timeframe: str = DEFAULT_TIMEFRAME) -> dict[str, Decimal]:
    """Extract current prices from an instruments response.

    The payload looks like::

        {"data": [{"instrument": {"name": "EUR/USD"},
                   "metrics": {"M20": {"price": 1.0851, ...}}}]}

    Entries without a usable price are skipped.

    Args:
        payload: Decoded JSON body.
        timeframe: Metrics bucket to read the price from.

    Returns:
        Mapping of instrument name to price.

    Raises:
        ValueError: If the payload does not have a ``data`` list.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ValueError("response has no 'data' list")

    prices: dict[str, Decimal] = {}
    for item in payload["data"]:
        if not isinstance(item, dict):
            continue
        instrument = item.get("instrument")
        metrics = item.get("metrics")
        if not isinstance(instrument, dict) or not isinstance(metrics, dict):
            continue
        name = instrument.get("name")
        bucket = metrics.get(timeframe)
        if not name or not isinstance(bucket, dict):
            continue
        price = _parse_price(bucket.get("price"))
        if price is None:
            logger.debug("No usable %s price for %s", timeframe, name)
            continue
        prices[name] = price
    return prices


class ForexFactoryFeed(BasePriceFeed):
    """Batched quote lookup against the Forex Factory instruments endpoint.

    One GET per call, no retries: the next scheduled cycle is the retry.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeframe: str = DEFAULT_TIMEFRAME,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the feed.

        Args:
            url: Instruments endpoint URL.
            timeframe: Metrics bucket holding the current price.
            timeout: Request timeout in seconds.
            session: Optional requests session to reuse.
        """
        self.url = url
        self.timeframe = timeframe
        self.timeout = timeout
        self._session = session or requests.Session()

    def build_url(self, instrument_keys: Iterable[str]) -> str:
        """Build the request URL with a comma-joined instrument list."""
        joined = ",".join(sorted(set(instrument_keys)))
        return f"{self.url}?instruments={quote(joined, safe='/,')}"

    def fetch_prices(self, instrument_keys: Iterable[str]) -> FeedResult:
        keys = set(instrument_keys)
        if not keys:
            return FeedResult()

        url = self.build_url(keys)
        logger.debug("Fetching prices from %s", url)

        try:
            response = self._session.get(url, headers=REQUEST_HEADERS, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error("Price feed request timed out after %ss", self.timeout)
            return FeedResult.failed("timeout")
        except requests.exceptions.RequestException as e:
            logger.error("Price feed request failed: %s", e)
            return FeedResult.failed(f"request error: {e}")

        if response.status_code != 200:
            logger.error("Price feed returned HTTP %s", response.status_code)
            return FeedResult.failed(f"HTTP {response.status_code}")

        try:
            prices = parse_instruments_payload(
                response.json(parse_float=Decimal), timeframe=self.timeframe
            )
        except ValueError as e:
            logger.error("Price feed returned malformed data: %s", e)
            return FeedResult.failed(f"malformed response: {e}")

        missing = keys - prices.keys()
        if missing:
            logger.info("No price data for %s", ", ".join(sorted(missing)))
        logger.info("Fetched prices for %d of %d instruments", len(prices.keys() & keys), len(keys))
        return FeedResult(prices=prices)
