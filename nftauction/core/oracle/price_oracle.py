"""
Price Oracle - USD valuation of payment assets.

This module provides:
- Feed configuration per payment asset (administrator only)
- A result-style price read that never raises on feed failure
- A strict USD conversion query for callers that need a real price

Availability:
-------------
`current_price` always returns a PriceQuote. Its status separates the
ways a price can be unusable:

    NO_FEED       no feed configured for the asset
    NON_POSITIVE  feed answered with price <= 0
    STALE         answer older than the staleness threshold
    FEED_ERROR    feed raised while being read

Bidding and settlement treat anything but OK as "report 0 USD and carry
on". Only `value_in_usd` (and the `*_price` helpers) escalate, raising
PriceUnavailable.

USD figures always carry 8 decimals, whatever the payment asset's own
precision:

    usd = amount * price // 10**decimals
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

from nftauction.core.access import AccessControlled, ADMIN_ROLE
from nftauction.core.errors import InvalidParameter, LengthMismatch, PriceUnavailable
from nftauction.crypto import short
from nftauction.utils.logger import get_logger
from nftauction.utils.units import NATIVE_DECIMALS
from nftauction.utils.validation import (
    NULL_ADDRESS,
    validate_address,
    validate_same_length,
)

logger = get_logger("oracle")


# =============================================================================
# Constants
# =============================================================================

# Native currency marker (same as the null identity)
NATIVE_CURRENCY = NULL_ADDRESS

# Maximum age of a usable answer, in seconds
STALENESS_THRESHOLD = 3600


# =============================================================================
# Enums
# =============================================================================


class PriceStatus(IntEnum):
    """Outcome of a price read."""
    OK = 0
    NO_FEED = 1
    NON_POSITIVE = 2
    STALE = 3
    FEED_ERROR = 4


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class PriceQuote:
    """
    Result of a price read.

    Attributes:
        asset: Payment asset the quote is for
        status: Availability of the price
        price: USD price with 8 decimals (0 unless status is OK)
        updated_at: Feed update time (0 unless status is OK)
    """
    asset: bytes
    status: PriceStatus
    price: int = 0
    updated_at: int = 0

    @property
    def available(self) -> bool:
        return self.status == PriceStatus.OK

    def convert(self, amount: int, decimals: int = NATIVE_DECIMALS) -> int:
        """USD value of `amount` smallest units; 0 when unavailable."""
        if not self.available:
            return 0
        return amount * self.price // (10 ** decimals)


# =============================================================================
# Price Oracle
# =============================================================================


class PriceOracle(AccessControlled):
    """
    Adapter over third-party price feeds.

    Reads never mutate state. Feed configuration is administrator only.
    """

    _state_fields = AccessControlled._state_fields + ("_feeds",)

    def __init__(
        self,
        chain,
        deployer: bytes,
        native_feed: Optional[bytes] = None,
        staleness_threshold: int = STALENESS_THRESHOLD,
    ):
        """
        Initialize the oracle.

        Args:
            chain: Chain to deploy on
            deployer: Deployer, who becomes administrator
            native_feed: Optional feed address for the native currency
            staleness_threshold: Maximum answer age in seconds
        """
        super().__init__(chain, deployer, admin=deployer)
        self.staleness_threshold = staleness_threshold

        # payment asset -> feed address
        self._feeds: Dict[bytes, bytes] = {}

        if native_feed is not None:
            valid, err = validate_address(native_feed, "feed")
            if not valid:
                raise InvalidParameter(err)
            self._feeds[NATIVE_CURRENCY] = native_feed

        logger.info(f"PriceOracle deployed at {short(self.address)}, staleness={staleness_threshold}s")

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_native_feed(self, caller: bytes, feed: bytes) -> None:
        """Configure the native currency feed."""
        self._check_role(ADMIN_ROLE, caller)
        valid, err = validate_address(feed, "feed")
        if not valid:
            raise InvalidParameter(err)

        self._touch()
        self._feeds[NATIVE_CURRENCY] = feed
        self.emit("NativeFeedUpdated", feed=feed)
        logger.info(f"Native feed set to {short(feed)}")

    def set_feed(self, caller: bytes, asset: bytes, feed: bytes) -> None:
        """Configure the feed for a token."""
        self._check_role(ADMIN_ROLE, caller)
        self._validate_pair(asset, feed)

        self._touch()
        self._feeds[asset] = feed
        self.emit("FeedUpdated", asset=asset, feed=feed)
        logger.info(f"Feed for {short(asset)} set to {short(feed)}")

    def set_feed_batch(self, caller: bytes, assets: List[bytes], feeds: List[bytes]) -> None:
        """
        Configure several token feeds at once.

        All pairs are validated before any is written, so one bad pair
        rejects the whole batch.
        """
        self._check_role(ADMIN_ROLE, caller)
        valid, err = validate_same_length("assets", assets, "feeds", feeds)
        if not valid:
            raise LengthMismatch(err)
        for asset, feed in zip(assets, feeds):
            self._validate_pair(asset, feed)

        self._touch()
        for asset, feed in zip(assets, feeds):
            self._feeds[asset] = feed
            self.emit("FeedUpdated", asset=asset, feed=feed)
        logger.info(f"Configured {len(assets)} feeds")

    @staticmethod
    def _validate_pair(asset: bytes, feed: bytes) -> None:
        for value, name in ((asset, "asset"), (feed, "feed")):
            valid, err = validate_address(value, name)
            if not valid:
                raise InvalidParameter(err)

    # =========================================================================
    # Reads
    # =========================================================================

    def feed_of(self, asset: bytes) -> bytes:
        return self._feeds.get(asset, NULL_ADDRESS)

    def is_feed_configured(self, asset: bytes) -> bool:
        return asset in self._feeds

    def current_price(self, asset: bytes) -> PriceQuote:
        """
        Read the price of a payment asset.

        Never raises because of the feed; see PriceStatus for the
        unavailable cases.
        """
        feed_address = self._feeds.get(asset)
        if feed_address is None:
            return PriceQuote(asset, PriceStatus.NO_FEED)

        try:
            feed = self.chain.contract_at(feed_address)
            price, updated_at = feed.latest_round_data()
        except Exception as e:
            logger.warning(f"Feed {short(feed_address)} failed for {short(asset)}: {e}")
            return PriceQuote(asset, PriceStatus.FEED_ERROR)

        if price <= 0:
            return PriceQuote(asset, PriceStatus.NON_POSITIVE)

        if self.now - updated_at > self.staleness_threshold:
            logger.debug(f"Stale price for {short(asset)}: updated {self.now - updated_at}s ago")
            return PriceQuote(asset, PriceStatus.STALE)

        return PriceQuote(asset, PriceStatus.OK, price=price, updated_at=updated_at)

    def value_in_usd(self, asset: bytes, amount: int, decimals: int = NATIVE_DECIMALS) -> int:
        """
        USD value (8 decimals) of `amount` smallest units of `asset`.

        Raises:
            PriceUnavailable: no usable price
        """
        quote = self.current_price(asset)
        if not quote.available:
            raise PriceUnavailable(asset, quote.status)
        return quote.convert(amount, decimals)

    def native_price(self) -> int:
        """Native currency price. Raises PriceUnavailable."""
        return self._strict_price(NATIVE_CURRENCY)

    def token_price(self, asset: bytes) -> int:
        """Token price. Raises PriceUnavailable."""
        return self._strict_price(asset)

    def _strict_price(self, asset: bytes) -> int:
        quote = self.current_price(asset)
        if not quote.available:
            raise PriceUnavailable(asset, quote.status)
        return quote.price
