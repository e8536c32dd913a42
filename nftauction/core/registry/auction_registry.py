"""
Auction Registry - Factory, index and fee collector for auctions.

This module provides:
- Auction creation (native or token denominated) with atomic custody hand-off
- Indices by creation order, by seller and by asset
- Tiered fee lookup by USD amount
- Administration of fee policy and price oracle
- Withdrawal of accumulated platform fees

Creation Flow:
--------------
1. Pull the asset from the seller into the registry
2. Deploy a new Auction with the current default fee rate snapshotted
3. Approve the auction for the asset and let it acknowledge custody
4. Record the auction in every index

All four steps run in one atomic transaction: if any fails, nothing is
recorded and the asset stays with the seller.

Fee Tiers:
----------
Tiers are (usd_threshold, fee_rate_bps) pairs with strictly ascending
thresholds. The first tier whose threshold strictly exceeds the amount
wins; with no match the default fee rate applies.

    [(1000e8, 250), (10000e8, 200), (MAX, 150)]
    $500 -> 250   $1000 -> 200   $10000 -> 150
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from nftauction.core.access import AccessControlled, ADMIN_ROLE
from nftauction.core.assets import Collectible, FungibleToken
from nftauction.core.auction import Auction, AuctionState
from nftauction.core.chain import non_reentrant
from nftauction.core.errors import (
    AuctionNotFound,
    InvalidParameter,
    NoFeesToWithdraw,
    TransferFailed,
)
from nftauction.core.oracle import NATIVE_CURRENCY
from nftauction.crypto import short
from nftauction.utils.logger import get_logger
from nftauction.utils.units import NATIVE_DECIMALS, usd
from nftauction.utils.validation import (
    MAX_AMOUNT,
    validate_address,
    validate_amount,
    validate_ascending,
    validate_basis_points,
    validate_duration,
    validate_integer,
)

logger = get_logger("registry")


# =============================================================================
# Constants
# =============================================================================

# Flat fee applied when no tier matches (2.5%)
DEFAULT_FEE_RATE = 250

# Last tier threshold; no USD amount reaches it
UNREACHABLE_THRESHOLD = MAX_AMOUNT

# (usd_threshold with 8 decimals, fee_rate_bps)
DEFAULT_FEE_TIERS: Tuple[Tuple[int, int], ...] = (
    (usd(1000), 250),
    (usd(10000), 200),
    (UNREACHABLE_THRESHOLD, 150),
)


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class FeeTier:
    """A USD threshold and the fee rate for amounts below it."""
    usd_threshold: int
    fee_rate_bps: int


# =============================================================================
# Auction Registry
# =============================================================================


class AuctionRegistry(AccessControlled):
    """
    Factory and index of auctions.

    The registry's own native and token balances are the accumulated
    platform fees.
    """

    _state_fields = AccessControlled._state_fields + (
        "default_fee_rate",
        "fee_tiers",
        "price_oracle",
        "_auctions",
        "_by_seller",
        "_by_asset",
        "_known",
    )

    def __init__(
        self,
        chain,
        deployer: bytes,
        admin: bytes,
        price_oracle: bytes,
        default_fee_rate: int = DEFAULT_FEE_RATE,
        fee_tiers: Optional[Iterable[Tuple[int, int]]] = None,
        native_decimals: int = NATIVE_DECIMALS,
    ):
        """
        Initialize the registry.

        Args:
            chain: Chain to deploy on
            deployer: Deploying account
            admin: Initial administrator
            price_oracle: PriceOracle address handed to new auctions
            default_fee_rate: Fee rate (bps) snapshotted into new auctions
            fee_tiers: (usd_threshold, fee_rate_bps) pairs, ascending
            native_decimals: Precision of the native currency
        """
        valid, err = validate_address(price_oracle, "price_oracle")
        if not valid:
            raise InvalidParameter(err)
        valid, err = validate_basis_points(default_fee_rate, "default_fee_rate")
        if not valid:
            raise InvalidParameter(err)

        tiers = [FeeTier(t, r) for t, r in (fee_tiers or DEFAULT_FEE_TIERS)]
        self._validate_tiers(tiers)

        super().__init__(chain, deployer, admin=admin)
        self.price_oracle = price_oracle
        self.default_fee_rate = default_fee_rate
        self.fee_tiers: List[FeeTier] = tiers
        self.native_decimals = native_decimals

        # Creation order
        self._auctions: List[bytes] = []
        # seller -> auction addresses
        self._by_seller: Dict[bytes, List[bytes]] = {}
        # (asset_contract, asset_id) -> auction addresses
        self._by_asset: Dict[Tuple[bytes, int], List[bytes]] = {}
        self._known: Set[bytes] = set()

        self.emit(
            "RegistryInitialized",
            admin=admin,
            price_oracle=price_oracle,
            default_fee_rate=default_fee_rate,
        )
        logger.info(
            f"AuctionRegistry deployed at {short(self.address)} "
            f"with default_fee_rate={default_fee_rate}, {len(tiers)} tiers"
        )

    @classmethod
    def from_config(cls, chain, deployer: bytes, price_oracle: bytes, config) -> "AuctionRegistry":
        """Build a registry administered by `deployer` from a MarketConfig."""
        return cls(
            chain,
            deployer,
            admin=deployer,
            price_oracle=price_oracle,
            default_fee_rate=config.default_fee_rate,
            fee_tiers=config.fee_tiers,
            native_decimals=config.native_decimals,
        )

    # =========================================================================
    # Auction Creation
    # =========================================================================

    @non_reentrant
    def create_auction(
        self,
        caller: bytes,
        duration: int,
        start_price: int,
        asset_contract: bytes,
        asset_id: int,
    ) -> bytes:
        """
        Create a native currency auction for the caller's asset.

        The caller must have approved the registry for the asset.

        Returns:
            Address of the new auction
        """
        return self._create(caller, duration, start_price, asset_contract, asset_id, NATIVE_CURRENCY)

    @non_reentrant
    def create_auction_with_token(
        self,
        caller: bytes,
        duration: int,
        start_price: int,
        asset_contract: bytes,
        asset_id: int,
        payment_token: bytes,
    ) -> bytes:
        """
        Create an auction denominated in `payment_token`.

        Returns:
            Address of the new auction
        """
        valid, err = validate_address(payment_token, "payment_token")
        if not valid:
            raise InvalidParameter(err)
        if not isinstance(self._contract_or_none(payment_token), FungibleToken):
            raise InvalidParameter(f"{short(payment_token)} is not a token")

        return self._create(caller, duration, start_price, asset_contract, asset_id, payment_token)

    def _create(
        self,
        seller: bytes,
        duration: int,
        start_price: int,
        asset_contract: bytes,
        asset_id: int,
        payment_asset: bytes,
    ) -> bytes:
        for valid, err in (
            validate_address(asset_contract, "asset_contract"),
            validate_amount(start_price, "start_price"),
            validate_duration(duration),
        ):
            if not valid:
                raise InvalidParameter(err)

        collectible = self._contract_or_none(asset_contract)
        if not isinstance(collectible, Collectible):
            raise InvalidParameter(f"{short(asset_contract)} is not a collectible")

        with self.chain.atomic():
            collectible.transfer_from(self.address, seller, self.address, asset_id)

            auction = Auction(
                self.chain,
                self.address,
                seller=seller,
                asset_contract=asset_contract,
                asset_id=asset_id,
                payment_asset=payment_asset,
                start_price=start_price,
                duration=duration,
                fee_rate_bps=self.default_fee_rate,
                oracle=self.price_oracle,
                native_decimals=self.native_decimals,
            )
            collectible.approve(self.address, auction.address, asset_id)
            auction.acknowledge_custody(self.address)

            self._touch()
            index = len(self._auctions)
            self._auctions.append(auction.address)
            self._by_seller.setdefault(seller, []).append(auction.address)
            self._by_asset.setdefault((asset_contract, asset_id), []).append(auction.address)
            self._known.add(auction.address)

            self.emit(
                "AuctionCreated",
                auction=auction.address,
                seller=seller,
                asset_contract=asset_contract,
                asset_id=asset_id,
                payment_asset=payment_asset,
                start_price=start_price,
                duration=duration,
                index=index,
            )

        logger.info(
            f"Auction #{index} created at {short(auction.address)} by {short(seller)} "
            f"for asset #{asset_id}, start_price={start_price}"
        )
        return auction.address

    def end_auction(self, caller: bytes, index: int) -> AuctionState:
        """Settle the auction at `index`. Anyone may call."""
        return self.get_auction(index).end(caller)

    # =========================================================================
    # Fee Policy
    # =========================================================================

    def calculate_fee_rate(self, usd_amount: int) -> int:
        """
        Fee rate (bps) for a USD amount with 8 decimals.

        First tier whose threshold strictly exceeds the amount wins.
        """
        for tier in self.fee_tiers:
            if usd_amount < tier.usd_threshold:
                return tier.fee_rate_bps
        return self.default_fee_rate

    def set_default_fee_rate(self, caller: bytes, fee_rate: int) -> None:
        """Change the rate snapshotted into future auctions. Admin only."""
        self._check_role(ADMIN_ROLE, caller)
        valid, err = validate_basis_points(fee_rate)
        if not valid:
            raise InvalidParameter(err)

        self._touch()
        old = self.default_fee_rate
        self.default_fee_rate = fee_rate
        self.emit("DefaultFeeRateUpdated", old_rate=old, new_rate=fee_rate)
        logger.info(f"Default fee rate {old} -> {fee_rate}")

    def set_fee_structure(self, caller: bytes, index: int, usd_threshold: int, fee_rate: int) -> int:
        """
        Overwrite the tier at `index`, or append when `index` is past the end.

        Thresholds must remain strictly ascending; tiers are never re-sorted.

        Returns:
            Position of the written tier
        """
        self._check_role(ADMIN_ROLE, caller)
        for valid, err in (
            validate_integer(index, "index"),
            validate_integer(usd_threshold, "usd_threshold"),
            validate_basis_points(fee_rate),
        ):
            if not valid:
                raise InvalidParameter(err)

        tiers = list(self.fee_tiers)
        tier = FeeTier(usd_threshold, fee_rate)
        if index < len(tiers):
            tiers[index] = tier
            position = index
        else:
            tiers.append(tier)
            position = len(tiers) - 1
        self._validate_tiers(tiers)

        self._touch()
        self.fee_tiers = tiers
        self.emit("FeeStructureUpdated", index=position, usd_threshold=usd_threshold, fee_rate=fee_rate)
        logger.info(f"Fee tier {position} set to (<{usd_threshold}, {fee_rate}bps)")
        return position

    def fee_structure(self, index: int) -> FeeTier:
        if not 0 <= index < len(self.fee_tiers):
            raise InvalidParameter(f"No fee tier at index {index}")
        return self.fee_tiers[index]

    def fee_structures(self) -> List[FeeTier]:
        return list(self.fee_tiers)

    @staticmethod
    def _validate_tiers(tiers: List[FeeTier]) -> None:
        for tier in tiers:
            valid, err = validate_basis_points(tier.fee_rate_bps)
            if not valid:
                raise InvalidParameter(err)
        valid, err = validate_ascending([t.usd_threshold for t in tiers])
        if not valid:
            raise InvalidParameter(err)

    def set_price_oracle(self, caller: bytes, price_oracle: bytes) -> None:
        """Change the oracle handed to future auctions. Admin only."""
        self._check_role(ADMIN_ROLE, caller)
        valid, err = validate_address(price_oracle, "price_oracle")
        if not valid:
            raise InvalidParameter(err)

        self._touch()
        old = self.price_oracle
        self.price_oracle = price_oracle
        self.emit("PriceOracleUpdated", old_oracle=old, new_oracle=price_oracle)
        logger.info(f"Price oracle {short(old)} -> {short(price_oracle)}")

    # =========================================================================
    # Fee Withdrawal
    # =========================================================================

    def fee_balance(self) -> int:
        """Native currency fees held."""
        return self.chain.balance_of(self.address)

    def token_fee_balance(self, token: bytes) -> int:
        contract = self._contract_or_none(token)
        if not isinstance(contract, FungibleToken):
            raise InvalidParameter(f"{short(token)} is not a token")
        return contract.balance_of(self.address)

    @non_reentrant
    def withdraw_fees(self, caller: bytes, to: bytes) -> int:
        """
        Send all native currency fees to `to`. Admin only.

        Returns:
            Amount withdrawn
        """
        self._check_role(ADMIN_ROLE, caller)
        valid, err = validate_address(to, "to")
        if not valid:
            raise InvalidParameter(err)

        amount = self.fee_balance()
        if amount == 0:
            raise NoFeesToWithdraw("No native fees to withdraw")

        with self.chain.atomic():
            self.chain.transfer_native(self.address, to, amount)
            self.emit("FeesWithdrawn", asset=NATIVE_CURRENCY, to=to, amount=amount)

        logger.info(f"Withdrew {amount} native fees to {short(to)}")
        return amount

    @non_reentrant
    def withdraw_token_fees(self, caller: bytes, token: bytes, to: bytes) -> int:
        """
        Send all fees held in `token` to `to`. Admin only.

        Returns:
            Amount withdrawn
        """
        self._check_role(ADMIN_ROLE, caller)
        for valid, err in (validate_address(token, "token"), validate_address(to, "to")):
            if not valid:
                raise InvalidParameter(err)

        amount = self.token_fee_balance(token)
        if amount == 0:
            raise NoFeesToWithdraw(f"No fees held in {short(token)}")

        with self.chain.atomic():
            if not self.chain.contract_at(token).transfer(self.address, to, amount):
                raise TransferFailed(f"Token fee transfer of {amount} to {short(to)} failed")
            self.emit("FeesWithdrawn", asset=token, to=to, amount=amount)

        logger.info(f"Withdrew {amount} of {short(token)} fees to {short(to)}")
        return amount

    # =========================================================================
    # Queries
    # =========================================================================

    def auction_count(self) -> int:
        return len(self._auctions)

    def get_auction_address(self, index: int) -> bytes:
        if not 0 <= index < len(self._auctions):
            raise AuctionNotFound(f"No auction at index {index}")
        return self._auctions[index]

    def get_auction(self, index: int) -> Auction:
        return self.chain.contract_at(self.get_auction_address(index))

    def all_auctions(self) -> List[bytes]:
        return list(self._auctions)

    def auctions_by_seller(self, seller: bytes) -> List[bytes]:
        return list(self._by_seller.get(seller, []))

    def auctions_by_asset(self, asset_contract: bytes, asset_id: int) -> List[bytes]:
        return list(self._by_asset.get((asset_contract, asset_id), []))

    def is_auction(self, address: bytes) -> bool:
        return address in self._known

    def _contract_or_none(self, address: bytes):
        if not self.chain.is_contract(address):
            return None
        return self.chain.contract_at(address)

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> dict:
        """Get registry statistics."""
        auctions = [self.chain.contract_at(a) for a in self._auctions]
        by_state: Dict[str, int] = {}
        for auction in auctions:
            by_state[auction.state.name] = by_state.get(auction.state.name, 0) + 1

        return {
            "total_auctions": len(auctions),
            "sellers": len(self._by_seller),
            "by_state": by_state,
            "default_fee_rate": self.default_fee_rate,
            "fee_tiers": len(self.fee_tiers),
            "native_fee_balance": self.fee_balance(),
        }
