"""
Auction - Escrowed English auction for a single non-fungible asset.

Each auction holds one collectible and one bidding state machine:

    PENDING --acknowledge_custody--> ACTIVE --window closes--> ENDABLE
    ACTIVE/ENDABLE --end()--> SETTLED (had bids) | UNSOLD (no bids)
    ACTIVE/ENDABLE --cancel()--> CANCELLED (seller, no bids only)

Bidding:
--------
A bid must strictly exceed max(highest_bid, start_price). Accepting it runs,
in order and inside one atomic transaction:

1. Pull the new bidder's funds into escrow
2. Refund the previous highest bidder in full
3. Record the new highest bid
4. Read the oracle for an informational USD figure (0 when unavailable)

If any transfer fails the whole bid is rolled back, including the new
bidder's payment.

Settlement:
-----------
`end()` flips `ended` before any transfer, then pays

    fee = highest_bid * fee_rate_bps // 10000
    seller receives highest_bid - fee, the registry receives fee

and hands the asset to the winner. A failing transfer (fee included)
rolls back the entire settlement.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional

from nftauction.core.chain import Contract, non_reentrant
from nftauction.core.errors import (
    AlreadyInitialized,
    AuctionAlreadyEnded,
    AuctionNotEndable,
    AuctionNotStarted,
    BidTooLow,
    CannotCancelWithBids,
    InvalidParameter,
    TransferFailed,
    Unauthorized,
    WrongPaymentAsset,
)
from nftauction.core.oracle import NATIVE_CURRENCY, PriceOracle
from nftauction.crypto import short
from nftauction.utils.logger import get_logger
from nftauction.utils.units import NATIVE_DECIMALS
from nftauction.utils.validation import (
    NULL_ADDRESS,
    validate_amount,
    validate_basis_points,
    validate_duration,
)

logger = get_logger("auction")


# =============================================================================
# Constants
# =============================================================================

# 100% expressed in basis points
BASIS_POINTS = 10_000


# =============================================================================
# Enums
# =============================================================================


class AuctionState(IntEnum):
    """Lifecycle state of an auction."""
    PENDING = 0     # Deployed, asset not yet in custody
    ACTIVE = 1      # Accepting bids
    ENDABLE = 2     # Window closed, awaiting end()
    SETTLED = 3     # Sold to the highest bidder
    CANCELLED = 4   # Withdrawn by the seller before any bid
    UNSOLD = 5      # Ended without bids, asset returned


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class AuctionRecord:
    """
    Persistent state of one auction.

    Attributes:
        seller: Receives the sale proceeds
        asset_contract: Collectible contract address
        asset_id: Token id within the collectible
        payment_asset: NATIVE_CURRENCY or a token address
        start_price: Every bid must exceed this
        start_time: Creation time; bidding window is [start, start + duration)
        duration: Window length in seconds
        fee_rate_bps: Platform fee, fixed at creation
        highest_bid: Leading bid (0 until the first bid)
        highest_bidder: Leading bidder (null until the first bid)
        ended: Terminal flag, never reset
    """
    seller: bytes
    asset_contract: bytes
    asset_id: int
    payment_asset: bytes
    start_price: int
    start_time: int
    duration: int
    fee_rate_bps: int
    highest_bid: int = 0
    highest_bidder: bytes = NULL_ADDRESS
    ended: bool = False

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration

    @property
    def is_native(self) -> bool:
        return self.payment_asset == NATIVE_CURRENCY

    @property
    def has_bids(self) -> bool:
        return self.highest_bidder != NULL_ADDRESS

    @property
    def minimum_bid(self) -> int:
        """A bid must strictly exceed this amount."""
        return max(self.highest_bid, self.start_price)


# =============================================================================
# Auction
# =============================================================================


class Auction(Contract):
    """
    A single escrow auction deployed by the registry.

    The deployer is the registry: it alone may acknowledge custody, and it
    receives the platform fee on settlement.
    """

    _state_fields = ("record", "initialized", "outcome")

    def __init__(
        self,
        chain,
        registry: bytes,
        seller: bytes,
        asset_contract: bytes,
        asset_id: int,
        payment_asset: bytes,
        start_price: int,
        duration: int,
        fee_rate_bps: int,
        oracle: bytes = NULL_ADDRESS,
        native_decimals: int = NATIVE_DECIMALS,
    ):
        for valid, err in (
            validate_amount(start_price, "start_price"),
            validate_duration(duration),
            validate_basis_points(fee_rate_bps),
        ):
            if not valid:
                raise InvalidParameter(err)

        super().__init__(chain, registry)
        self.registry = registry
        self.oracle = oracle

        self.record = AuctionRecord(
            seller=seller,
            asset_contract=asset_contract,
            asset_id=asset_id,
            payment_asset=payment_asset,
            start_price=start_price,
            start_time=self.now,
            duration=duration,
            fee_rate_bps=fee_rate_bps,
        )
        self.initialized = False
        self.outcome: Optional[AuctionState] = None

        if self.record.is_native:
            self._token = None
            self.decimals = native_decimals
        else:
            self._token = chain.contract_at(payment_asset)
            self.decimals = self._token.decimals

    # =========================================================================
    # Custody
    # =========================================================================

    @non_reentrant
    def acknowledge_custody(self, caller: bytes) -> None:
        """
        Pull the asset from the registry into this auction.

        The registry must have approved this auction for the asset.
        Exactly once, registry only.
        """
        if caller != self.registry:
            raise Unauthorized(caller, "registry")
        if self.initialized:
            raise AlreadyInitialized(f"Auction {short(self.address)} already holds its asset")

        with self.chain.atomic():
            self._touch()
            self.initialized = True
            self._collectible().transfer_from(
                self.address, self.registry, self.address, self.record.asset_id
            )
            self.emit(
                "AuctionInitialized",
                seller=self.record.seller,
                asset_contract=self.record.asset_contract,
                asset_id=self.record.asset_id,
            )

        logger.debug(f"Auction {short(self.address)} took custody of asset #{self.record.asset_id}")

    # =========================================================================
    # Bidding
    # =========================================================================

    @non_reentrant
    def bid(self, caller: bytes, amount: int) -> int:
        """
        Place a native currency bid of `amount` wei.

        Returns:
            Informational USD value of the bid (0 if the oracle is unavailable)
        """
        if not self.record.is_native:
            raise WrongPaymentAsset("Auction is token-denominated; use bid_with_token")
        self._check_biddable(amount)

        with self.chain.atomic():
            self.chain.transfer_native(caller, self.address, amount)
            return self._accept_bid(caller, amount)

    @non_reentrant
    def bid_with_token(self, caller: bytes, amount: int) -> int:
        """
        Place a token bid. The bidder must have approved this auction.

        Returns:
            Informational USD value of the bid (0 if the oracle is unavailable)
        """
        if self.record.is_native:
            raise WrongPaymentAsset("Auction is native-denominated; use bid")
        self._check_biddable(amount)

        with self.chain.atomic():
            if not self._token.transfer_from(self.address, caller, self.address, amount):
                raise TransferFailed(f"Token transfer of {amount} from {short(caller)} failed")
            return self._accept_bid(caller, amount)

    def _check_biddable(self, amount: int) -> None:
        valid, err = validate_amount(amount)
        if not valid:
            raise InvalidParameter(err)
        if not self.initialized or self.now < self.record.start_time:
            raise AuctionNotStarted(f"Auction {short(self.address)} has not started")
        if self.record.ended:
            raise AuctionAlreadyEnded(f"Auction {short(self.address)} already ended")
        if self.now >= self.record.end_time:
            raise AuctionAlreadyEnded(f"Bidding closed at {self.record.end_time}")

        minimum = self.record.minimum_bid
        if amount <= minimum:
            raise BidTooLow(minimum, amount)

    def _accept_bid(self, bidder: bytes, amount: int) -> int:
        self._touch()
        previous_bidder = self.record.highest_bidder
        previous_bid = self.record.highest_bid

        if previous_bidder != NULL_ADDRESS:
            self._pay(previous_bidder, previous_bid)
            self.emit("BidRefunded", bidder=previous_bidder, amount=previous_bid)

        self.record.highest_bid = amount
        self.record.highest_bidder = bidder

        usd_value = self._usd_value(amount)
        self.emit("BidPlaced", bidder=bidder, amount=amount, usd_value=usd_value)

        logger.info(f"Bid {amount} by {short(bidder)} on {short(self.address)} (${usd_value / 1e8:,.2f})")
        return usd_value

    # =========================================================================
    # Settlement
    # =========================================================================

    @non_reentrant
    def end(self, caller: bytes) -> AuctionState:
        """
        Settle the auction once the window has closed. Anyone may call.

        Returns:
            SETTLED or UNSOLD
        """
        if not self.initialized:
            raise AuctionNotStarted(f"Auction {short(self.address)} has not started")
        if self.record.ended:
            raise AuctionAlreadyEnded(f"Auction {short(self.address)} already ended")
        if self.now < self.record.end_time:
            raise AuctionNotEndable(
                f"AuctionNotEnded: {self.record.end_time - self.now}s remaining"
            )

        record = self.record
        with self.chain.atomic():
            self._touch()
            record.ended = True

            if record.has_bids:
                self.outcome = AuctionState.SETTLED
                fee = self.platform_fee(record.highest_bid)
                proceeds = record.highest_bid - fee

                self._collectible().transfer_from(
                    self.address, self.address, record.highest_bidder, record.asset_id
                )
                self._pay(record.seller, proceeds)
                if fee > 0:
                    self._pay(self.registry, fee)

                usd_value = self._usd_value(record.highest_bid)
                self.emit(
                    "AuctionEnded",
                    winner=record.highest_bidder,
                    amount=record.highest_bid,
                    usd_value=usd_value,
                    platform_fee=fee,
                )
                logger.info(
                    f"Auction {short(self.address)} settled: winner={short(record.highest_bidder)} "
                    f"amount={record.highest_bid} fee={fee}"
                )
            else:
                self.outcome = AuctionState.UNSOLD
                self._collectible().transfer_from(
                    self.address, self.address, record.seller, record.asset_id
                )
                self.emit(
                    "AuctionEnded",
                    winner=NULL_ADDRESS,
                    amount=0,
                    usd_value=0,
                    platform_fee=0,
                )
                logger.info(f"Auction {short(self.address)} ended unsold")

        return self.outcome

    @non_reentrant
    def cancel(self, caller: bytes) -> None:
        """Withdraw the auction and return the asset. Seller only, before any bid."""
        if caller != self.record.seller:
            raise Unauthorized(caller, "seller")
        if not self.initialized:
            raise AuctionNotStarted(f"Auction {short(self.address)} has not started")
        if self.record.ended:
            raise AuctionAlreadyEnded(f"Auction {short(self.address)} already ended")
        if self.record.has_bids:
            raise CannotCancelWithBids("Cannot cancel with bids")

        with self.chain.atomic():
            self._touch()
            self.record.ended = True
            self.outcome = AuctionState.CANCELLED
            self._collectible().transfer_from(
                self.address, self.address, self.record.seller, self.record.asset_id
            )
            self.emit("AuctionCancelled", seller=self.record.seller)

        logger.info(f"Auction {short(self.address)} cancelled by seller")

    def platform_fee(self, amount: int) -> int:
        """Fee charged on a sale of `amount`, rounded down."""
        return amount * self.record.fee_rate_bps // BASIS_POINTS

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def state(self) -> AuctionState:
        if self.outcome is not None:
            return self.outcome
        if not self.initialized:
            return AuctionState.PENDING
        if self.now >= self.record.end_time:
            return AuctionState.ENDABLE
        return AuctionState.ACTIVE

    def info(self) -> AuctionRecord:
        """Copy of the auction record."""
        return replace(self.record)

    def highest_bid_usd(self) -> int:
        """USD value of the leading bid; 0 without bids or price."""
        if not self.record.has_bids:
            return 0
        return self._usd_value(self.record.highest_bid)

    def can_end(self) -> bool:
        return self.initialized and not self.record.ended and self.now >= self.record.end_time

    def time_remaining(self) -> int:
        if self.record.ended or self.now >= self.record.end_time:
            return 0
        return self.record.end_time - self.now

    # =========================================================================
    # Internals
    # =========================================================================

    def _collectible(self):
        return self.chain.contract_at(self.record.asset_contract)

    def _pay(self, to: bytes, amount: int) -> None:
        if self._token is None:
            self.chain.transfer_native(self.address, to, amount)
        elif not self._token.transfer(self.address, to, amount):
            raise TransferFailed(f"Token transfer of {amount} to {short(to)} failed")

    def _usd_value(self, amount: int) -> int:
        if not self.chain.is_contract(self.oracle):
            return 0
        oracle = self.chain.contract_at(self.oracle)
        if not isinstance(oracle, PriceOracle):
            return 0
        return oracle.current_price(self.record.payment_asset).convert(amount, self.decimals)
