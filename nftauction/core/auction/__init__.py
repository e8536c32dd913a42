"""
Auction Module.

Per-asset escrow auctions:
- Bidding in native currency or a fungible token
- Refund of the outbid bidder within the same transaction
- Settlement with platform fee, or return of an unsold asset
"""

from nftauction.core.auction.auction import (
    Auction,
    AuctionRecord,
    AuctionState,
    BASIS_POINTS,
)

__all__ = [
    "Auction",
    "AuctionRecord",
    "AuctionState",
    "BASIS_POINTS",
]
