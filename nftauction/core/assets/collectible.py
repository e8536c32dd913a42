"""
Collectible - Non-fungible asset registry (ERC-721 style).

Provides the custody primitives the auction core relies on:
- owner_of(token_id): current owner, fails for unknown ids
- transfer_from(operator, from, to, token_id): fails loudly when the
  operator is not authorized or `from` is not the owner

Minting is restricted to accounts holding OPERATOR_ROLE.
"""

from typing import Dict, Set, Tuple

from nftauction.core.access import AccessControlled, OPERATOR_ROLE
from nftauction.core.errors import AssetTransferError, InvalidParameter
from nftauction.crypto import short
from nftauction.utils.logger import get_logger
from nftauction.utils.validation import NULL_ADDRESS

logger = get_logger("assets")


class Collectible(AccessControlled):
    """
    Non-fungible token contract.

    Token ids are sequential, starting at 1.
    """

    _state_fields = AccessControlled._state_fields + (
        "_owners",
        "_approvals",
        "_operators",
        "token_counter",
    )

    def __init__(self, chain, deployer: bytes, name: str, symbol: str):
        super().__init__(chain, deployer, admin=deployer)
        self.name = name
        self.symbol = symbol

        # token_id -> owner
        self._owners: Dict[int, bytes] = {}
        # token_id -> approved address
        self._approvals: Dict[int, bytes] = {}
        # (owner, operator) pairs approved for all tokens
        self._operators: Set[Tuple[bytes, bytes]] = set()

        self.token_counter = 0

        # Deployer mints by default
        self._roles[OPERATOR_ROLE] = {deployer}

        logger.info(f"Collectible {name} ({symbol}) deployed at {short(self.address)}")

    # =========================================================================
    # Minting
    # =========================================================================

    def mint(self, caller: bytes, to: bytes) -> int:
        """
        Mint the next token id to `to`.

        Returns:
            The new token id
        """
        self._check_role(OPERATOR_ROLE, caller)
        if to == NULL_ADDRESS:
            raise InvalidParameter("Cannot mint to the null address")

        with self.chain.atomic():
            self._touch()
            self.token_counter += 1
            token_id = self.token_counter
            self._owners[token_id] = to
            self.emit("Transfer", sender=NULL_ADDRESS, to=to, token_id=token_id)
            self.emit("TokenMinted", to=to, token_id=token_id)

        logger.debug(f"{self.symbol} #{token_id} minted to {short(to)}")
        return token_id

    # =========================================================================
    # Queries
    # =========================================================================

    def owner_of(self, token_id: int) -> bytes:
        owner = self._owners.get(token_id)
        if owner is None:
            raise AssetTransferError(f"{self.symbol} #{token_id} does not exist")
        return owner

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def balance_of(self, owner: bytes) -> int:
        return sum(1 for o in self._owners.values() if o == owner)

    def get_approved(self, token_id: int) -> bytes:
        self.owner_of(token_id)
        return self._approvals.get(token_id, NULL_ADDRESS)

    def is_approved_for_all(self, owner: bytes, operator: bytes) -> bool:
        return (owner, operator) in self._operators

    # =========================================================================
    # Approvals
    # =========================================================================

    def approve(self, caller: bytes, spender: bytes, token_id: int) -> None:
        """Allow `spender` to transfer one token."""
        owner = self.owner_of(token_id)
        if caller != owner and not self.is_approved_for_all(owner, caller):
            raise AssetTransferError(
                f"{short(caller)} cannot approve {self.symbol} #{token_id}"
            )
        self._touch()
        self._approvals[token_id] = spender
        self.emit("Approval", owner=owner, spender=spender, token_id=token_id)

    def set_approval_for_all(self, caller: bytes, operator: bytes, approved: bool) -> None:
        """Allow or disallow `operator` to transfer all of the caller's tokens."""
        self._touch()
        if approved:
            self._operators.add((caller, operator))
        else:
            self._operators.discard((caller, operator))
        self.emit("ApprovalForAll", owner=caller, operator=operator, approved=approved)

    # =========================================================================
    # Transfers
    # =========================================================================

    def transfer_from(self, operator: bytes, sender: bytes, to: bytes, token_id: int) -> None:
        """
        Move `token_id` from `sender` to `to` on behalf of `operator`.

        Raises:
            AssetTransferError: unknown token, wrong owner, unauthorized
                operator or null recipient
        """
        owner = self.owner_of(token_id)
        if owner != sender:
            raise AssetTransferError(
                f"{self.symbol} #{token_id} is owned by {short(owner)}, not {short(sender)}"
            )
        if to == NULL_ADDRESS:
            raise AssetTransferError("Transfer to the null address")

        authorized = (
            operator == owner
            or self._approvals.get(token_id) == operator
            or self.is_approved_for_all(owner, operator)
        )
        if not authorized:
            raise AssetTransferError(
                f"{short(operator)} not approved for {self.symbol} #{token_id}"
            )

        self._touch()
        self._approvals.pop(token_id, None)
        self._owners[token_id] = to
        self.emit("Transfer", sender=sender, to=to, token_id=token_id)
