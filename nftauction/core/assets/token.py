"""
FungibleToken - ERC-20 style payment token.

Transfers report failure by returning False rather than raising, the way
many deployed tokens behave. Callers must check the return value.
"""

from typing import Dict, Tuple

from nftauction.core.chain import Contract
from nftauction.core.errors import InvalidParameter, Unauthorized
from nftauction.crypto import short
from nftauction.utils.logger import get_logger
from nftauction.utils.validation import NULL_ADDRESS

logger = get_logger("assets")


class FungibleToken(Contract):
    """
    Fungible token with owner-only minting.

    Attributes:
        name: Token name
        symbol: Token symbol
        decimals: Native decimal precision of amounts
    """

    _state_fields = ("_balances", "_allowances", "total_supply")

    def __init__(
        self,
        chain,
        deployer: bytes,
        name: str,
        symbol: str,
        decimals: int = 18,
    ):
        super().__init__(chain, deployer)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = deployer

        self._balances: Dict[bytes, int] = {}
        # (owner, spender) -> remaining allowance
        self._allowances: Dict[Tuple[bytes, bytes], int] = {}
        self.total_supply = 0

        logger.info(f"Token {name} ({symbol}, {decimals} decimals) deployed at {short(self.address)}")

    def mint(self, caller: bytes, to: bytes, amount: int) -> None:
        """Create `amount` new tokens for `to`. Owner only."""
        if caller != self.owner:
            raise Unauthorized(caller, "token owner")
        if to == NULL_ADDRESS or amount < 0:
            raise InvalidParameter("Invalid mint")
        self._touch()
        self._balances[to] = self._balances.get(to, 0) + amount
        self.total_supply += amount
        self.emit("Transfer", sender=NULL_ADDRESS, to=to, amount=amount)

    def balance_of(self, account: bytes) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: bytes, spender: bytes) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, caller: bytes, spender: bytes, amount: int) -> bool:
        """Set `spender`'s allowance over the caller's tokens."""
        if amount < 0:
            return False
        self._touch()
        self._allowances[(caller, spender)] = amount
        self.emit("Approval", owner=caller, spender=spender, amount=amount)
        return True

    def transfer(self, caller: bytes, to: bytes, amount: int) -> bool:
        """Move the caller's tokens. Returns False on failure."""
        return self._move(caller, to, amount)

    def transfer_from(self, spender: bytes, owner: bytes, to: bytes, amount: int) -> bool:
        """
        Move `owner`'s tokens using `spender`'s allowance.

        Returns:
            False if the allowance or balance is insufficient
        """
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            logger.debug(f"{self.symbol}: allowance {allowed} < {amount} for {short(spender)}")
            return False
        if not self._move(owner, to, amount):
            return False
        self._touch()
        self._allowances[(owner, spender)] = allowed - amount
        return True

    def _move(self, sender: bytes, to: bytes, amount: int) -> bool:
        if to == NULL_ADDRESS or amount < 0:
            return False
        balance = self._balances.get(sender, 0)
        if balance < amount:
            logger.debug(f"{self.symbol}: {short(sender)} balance {balance} < {amount}")
            return False
        self._touch()
        self._balances[sender] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self.emit("Transfer", sender=sender, to=to, amount=amount)
        return True
