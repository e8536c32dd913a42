"""
Error taxonomy for the auction marketplace.

Three families, matching how a caller should react:
- ValidationError: the call was malformed; fix the arguments.
- StateError: the call is well-formed but not allowed right now.
- CollaboratorError: an external transfer failed; the whole operation
  was rolled back.

PriceUnavailable stands apart: it is raised only by the explicit USD
conversion query, never by bidding or settlement.
"""

from typing import Optional


class MarketError(Exception):
    """Base class for all marketplace errors."""


# =============================================================================
# Validation
# =============================================================================


class ValidationError(MarketError):
    """Caller supplied invalid arguments."""


class InvalidParameter(ValidationError):
    """A parameter is out of range, null or otherwise malformed."""


class WrongPaymentAsset(ValidationError):
    """Native bid on a token auction, or token bid on a native auction."""


class LengthMismatch(ValidationError):
    """Parallel input arrays differ in length."""


# =============================================================================
# State preconditions
# =============================================================================


class StateError(MarketError):
    """Operation not permitted in the current state."""


class AuctionNotStarted(StateError):
    """Auction has no custody of its asset yet."""


class AuctionAlreadyEnded(StateError):
    """Auction reached a terminal state or its bidding window closed."""


class AuctionNotEndable(StateError):
    """Bidding window is still open."""


class BidTooLow(StateError):
    """Bid does not strictly exceed the current minimum."""

    def __init__(self, minimum: int, provided: int):
        self.minimum = minimum
        self.provided = provided
        super().__init__(f"BidTooLow: must exceed {minimum}, got {provided}")


class CannotCancelWithBids(StateError):
    """Seller tried to cancel after a bid was placed."""


class AlreadyInitialized(StateError):
    """Custody was already acknowledged."""


class Unauthorized(StateError):
    """Caller lacks the capability required by the operation."""

    def __init__(self, caller: bytes, role: str):
        self.caller = caller
        self.role = role
        super().__init__(f"Unauthorized: 0x{caller.hex()} lacks {role}")


class AuctionNotFound(StateError):
    """No auction at the given index or address."""


class NoFeesToWithdraw(StateError):
    """Registry holds no balance of the requested asset."""


class ReentrantCall(StateError):
    """Guarded entry point was re-entered before it completed."""


# =============================================================================
# External collaborators
# =============================================================================


class CollaboratorError(MarketError):
    """An external transfer failed and the operation was aborted."""


class TransferFailed(CollaboratorError):
    """Native or token transfer rejected (including falsy token returns)."""


class InsufficientFunds(TransferFailed):
    """Sender balance does not cover the transfer."""


class AssetTransferError(CollaboratorError):
    """Non-fungible asset transfer rejected or asset missing."""


# =============================================================================
# Oracle
# =============================================================================


class PriceUnavailable(MarketError):
    """No usable price for the asset (missing, non-positive, stale or erroring feed)."""

    def __init__(self, asset: bytes, status: Optional[object] = None):
        self.asset = asset
        self.status = status
        label = getattr(status, "name", status)
        super().__init__(f"Price unavailable for 0x{asset.hex()}: {label}")


__all__ = [
    "MarketError",
    "ValidationError",
    "InvalidParameter",
    "WrongPaymentAsset",
    "LengthMismatch",
    "StateError",
    "AuctionNotStarted",
    "AuctionAlreadyEnded",
    "AuctionNotEndable",
    "BidTooLow",
    "CannotCancelWithBids",
    "AlreadyInitialized",
    "Unauthorized",
    "AuctionNotFound",
    "NoFeesToWithdraw",
    "ReentrantCall",
    "CollaboratorError",
    "TransferFailed",
    "InsufficientFunds",
    "AssetTransferError",
    "PriceUnavailable",
]
