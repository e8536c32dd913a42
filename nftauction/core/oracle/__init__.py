"""
Oracle Module.

Price feeds and the adapter that turns their answers into USD figures.
"""

from nftauction.core.oracle.feed import PriceFeed, FEED_DECIMALS
from nftauction.core.oracle.price_oracle import (
    PriceOracle,
    PriceQuote,
    PriceStatus,
    NATIVE_CURRENCY,
    STALENESS_THRESHOLD,
)

__all__ = [
    "PriceFeed",
    "FEED_DECIMALS",
    "PriceOracle",
    "PriceQuote",
    "PriceStatus",
    "NATIVE_CURRENCY",
    "STALENESS_THRESHOLD",
]
