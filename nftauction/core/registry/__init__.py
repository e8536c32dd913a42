"""
Auction Registry Module.

Creates auctions, indexes them and collects platform fees.
"""

from nftauction.core.registry.auction_registry import (
    AuctionRegistry,
    FeeTier,
    DEFAULT_FEE_RATE,
    DEFAULT_FEE_TIERS,
    UNREACHABLE_THRESHOLD,
)

__all__ = [
    "AuctionRegistry",
    "FeeTier",
    "DEFAULT_FEE_RATE",
    "DEFAULT_FEE_TIERS",
    "UNREACHABLE_THRESHOLD",
]
