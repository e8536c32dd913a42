"""
PriceFeed - Aggregator-style price source.

Reports (price, updated_at) with 8 decimals. The feed is a third-party
collaborator from the marketplace's point of view: the oracle adapter
treats whatever it returns (or raises) as untrusted.
"""

from typing import Tuple

from nftauction.core.chain import Contract
from nftauction.core.errors import Unauthorized
from nftauction.utils.logger import get_logger

logger = get_logger("oracle")

# Aggregator precision
FEED_DECIMALS = 8


class PriceFeed(Contract):
    """Settable price feed, owned by its deployer."""

    _state_fields = ("_answer", "_updated_at")

    def __init__(self, chain, deployer: bytes, description: str = ""):
        super().__init__(chain, deployer)
        self.owner = deployer
        self.description = description
        self.decimals = FEED_DECIMALS
        self._answer = 0
        self._updated_at = 0

    def set_latest_answer(self, caller: bytes, answer: int) -> None:
        """Publish a new price stamped with the current chain time."""
        if caller != self.owner:
            raise Unauthorized(caller, "feed owner")
        self._touch()
        self._answer = answer
        self._updated_at = self.now
        logger.debug(f"Feed {self.description or self.address.hex()[:8]} answer={answer}")

    def set_updated_at(self, caller: bytes, updated_at: int) -> None:
        """Override the update time of the current answer."""
        if caller != self.owner:
            raise Unauthorized(caller, "feed owner")
        self._touch()
        self._updated_at = updated_at

    def latest_round_data(self) -> Tuple[int, int]:
        """Return (price, updated_at)."""
        return self._answer, self._updated_at
