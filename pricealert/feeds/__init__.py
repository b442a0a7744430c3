"""Price feed implementations for PriceAlert."""

from pricealert.feeds.base import BasePriceFeed, FeedResult, StaticPriceFeed
from pricealert.feeds.forexfactory import ForexFactoryFeed

__all__ = [
    "BasePriceFeed",
    "FeedResult",
    "ForexFactoryFeed",
    "StaticPriceFeed",
]
