"""
Chain - Simulated execution environment for marketplace contracts.

Conceptual Background:
---------------------
Every auction, token, collectible and price feed is a `Contract` living at
a 20-byte address on a single `Chain`. The chain provides what a real
execution environment would:

1. **Native currency**: balances per address, with optional receive hooks
   that let a recipient accept, reject or call back during a transfer.
2. **Atomic transactions**: `with chain.atomic():` opens a savepoint. A
   contract records its state into the innermost savepoint the first time it
   is written there (`Contract._touch()`); balances and deployments are
   journaled the same way. An exception escaping a block restores exactly
   what that block changed, at any depth, so a caller that catches a failed
   nested operation never sees its partial effects. A committed inner block
   hands its journal to the enclosing one, so an outer failure still undoes
   it.
3. **Events**: an append-only log of structured notifications, truncated
   back on rollback together with the state that produced them.
4. **Clock**: an explicit timestamp advanced by the caller; operations never
   wait for time to pass.

Operations execute one at a time to completion. Nothing here prevents a
collaborator from calling back into a contract mid-operation; contracts that
need protection use the `non_reentrant` decorator.
"""

import copy
import functools
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from nftauction.core.errors import (
    InsufficientFunds,
    InvalidParameter,
    ReentrantCall,
    TransferFailed,
)
from nftauction.crypto import derive_contract_address, short
from nftauction.utils.logger import get_logger
from nftauction.utils.validation import NULL_ADDRESS

logger = get_logger("chain")


# =============================================================================
# Constants
# =============================================================================

# Genesis timestamp (seconds since epoch)
DEFAULT_GENESIS_TIME = 1_700_000_000

# Receive hook: (sender, amount) -> False to reject; raising also rejects
ReceiveHook = Callable[[bytes, int], Optional[bool]]

# Journal marker for a key that did not exist before the write
_ABSENT = object()


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class Event:
    """A structured notification emitted by a contract."""
    emitter: bytes
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    block_number: int = 0
    timestamp: int = 0

    def __getitem__(self, key: str) -> Any:
        return self.args[key]


@dataclass
class Savepoint:
    """
    Undo journal of one atomic block.

    Holds the value each balance, nonce and contract state had when the
    block first wrote it, plus the contracts deployed inside the block.
    """
    event_count: int
    balances: Dict[bytes, Any] = field(default_factory=dict)
    nonces: Dict[bytes, Any] = field(default_factory=dict)
    states: Dict[bytes, Dict[str, Any]] = field(default_factory=dict)
    deployed: Set[bytes] = field(default_factory=set)

    def absorb(self, inner: "Savepoint") -> None:
        """Take over a committed inner block's journal, keeping older entries."""
        for key, value in inner.balances.items():
            self.balances.setdefault(key, value)
        for key, value in inner.nonces.items():
            self.nonces.setdefault(key, value)
        for address, state in inner.states.items():
            if address not in self.deployed:
                self.states.setdefault(address, state)
        self.deployed |= inner.deployed


# =============================================================================
# Reentrancy Guard
# =============================================================================


def non_reentrant(method):
    """
    Reject re-entry into any guarded method of the same contract.

    One lock per contract instance: while one guarded entry point runs,
    every other guarded entry point of that instance raises ReentrantCall.
    The lock is released on exit, including on failure.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._entered:
            raise ReentrantCall(f"{type(self).__name__}.{method.__name__}: reentrant call")
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False
    return wrapper


# =============================================================================
# Contract Base
# =============================================================================


class Contract:
    """
    A component deployed at an address on a Chain.

    Subclasses list their mutable attributes in `_state_fields` and call
    `_touch()` before writing any of them; the fields are then deep-copied
    into the open savepoint. References to other contracts are kept as-is,
    since a contract is an identity rather than a value.
    """

    _state_fields: Tuple[str, ...] = ()

    def __init__(self, chain: "Chain", deployer: bytes):
        self.chain = chain
        self.deployer = deployer
        self._entered = False
        self.address = chain.deploy(self, deployer)

    def __deepcopy__(self, memo):
        return self

    def snapshot(self) -> Dict[str, Any]:
        """Copy of this contract's mutable state."""
        return {name: copy.deepcopy(getattr(self, name)) for name in self._state_fields}

    def restore(self, state: Dict[str, Any]) -> None:
        """Reinstate a snapshot taken by `snapshot()`."""
        for name, value in state.items():
            setattr(self, name, value)

    def _touch(self) -> None:
        """Declare that this contract's state is about to change."""
        self.chain.touch(self)

    def emit(self, name: str, **args: Any) -> Event:
        """Emit an event from this contract."""
        return self.chain.emit(self.address, name, **args)

    @property
    def now(self) -> int:
        return self.chain.timestamp

    def __repr__(self) -> str:
        return f"{type(self).__name__}({short(self.address)})"


# =============================================================================
# Chain
# =============================================================================


class Chain:
    """
    Single-threaded execution environment.

    Attributes:
        timestamp: Current time in seconds
        block_number: Count of committed top-level transactions
    """

    def __init__(self, genesis_time: int = DEFAULT_GENESIS_TIME):
        self.timestamp = genesis_time
        self.block_number = 0

        self._balances: Dict[bytes, int] = {}
        self._contracts: Dict[bytes, Contract] = {}
        self._nonces: Dict[bytes, int] = {}
        self._events: List[Event] = []
        self._receive_hooks: Dict[bytes, ReceiveHook] = {}

        # Open atomic blocks, innermost last
        self._savepoints: List[Savepoint] = []

    # =========================================================================
    # Clock
    # =========================================================================

    def advance_time(self, seconds: int) -> int:
        """Move the clock forward and return the new timestamp."""
        if seconds < 0:
            raise InvalidParameter("Cannot move the clock backwards")
        self.timestamp += seconds
        return self.timestamp

    # =========================================================================
    # Contracts
    # =========================================================================

    def deploy(self, contract: Contract, deployer: bytes) -> bytes:
        """Assign an address to a contract and register it."""
        nonce = self._nonces.get(deployer, 0)
        if self._savepoints:
            self._savepoints[-1].nonces.setdefault(deployer, self._nonces.get(deployer, _ABSENT))
        self._nonces[deployer] = nonce + 1
        address = derive_contract_address(deployer, nonce)
        self._contracts[address] = contract
        if self._savepoints:
            self._savepoints[-1].deployed.add(address)
        logger.debug(f"Deployed {type(contract).__name__} at {short(address)}")
        return address

    def contract_at(self, address: bytes) -> Contract:
        """Resolve the contract deployed at an address."""
        contract = self._contracts.get(address)
        if contract is None:
            raise InvalidParameter(f"No contract at {short(address)}")
        return contract

    def is_contract(self, address: bytes) -> bool:
        return address in self._contracts

    # =========================================================================
    # Native Currency
    # =========================================================================

    def balance_of(self, address: bytes) -> int:
        """Native currency balance of an address."""
        return self._balances.get(address, 0)

    def mint_native(self, to: bytes, amount: int) -> None:
        """Credit native currency out of thin air (genesis/faucet)."""
        if amount < 0:
            raise InvalidParameter("Mint amount must be non-negative")
        self._set_balance(to, self.balance_of(to) + amount)

    def _set_balance(self, address: bytes, value: int) -> None:
        if self._savepoints:
            self._savepoints[-1].balances.setdefault(address, self._balances.get(address, _ABSENT))
        self._balances[address] = value

    def set_receive_hook(self, address: bytes, hook: Optional[ReceiveHook]) -> None:
        """Install (or clear with None) the callback run when `address` receives native currency."""
        if hook is None:
            self._receive_hooks.pop(address, None)
        else:
            self._receive_hooks[address] = hook

    def transfer_native(self, sender: bytes, to: bytes, amount: int) -> None:
        """
        Move native currency, then run the recipient's receive hook.

        Raises:
            InsufficientFunds: sender balance too low
            TransferFailed: null recipient, or the hook raised or returned False
        """
        if amount < 0:
            raise InvalidParameter("Transfer amount must be non-negative")
        if to == NULL_ADDRESS:
            raise TransferFailed("Transfer to the null address")

        with self.atomic():
            balance = self._balances.get(sender, 0)
            if balance < amount:
                raise InsufficientFunds(
                    f"{short(sender)} has {balance}, needs {amount}"
                )
            self._set_balance(sender, balance - amount)
            self._set_balance(to, self.balance_of(to) + amount)

            hook = self._receive_hooks.get(to)
            if hook is None:
                return
            try:
                accepted = hook(sender, amount)
            except Exception as e:
                raise TransferFailed(f"{short(to)} rejected {amount}: {e}") from e
            if accepted is False:
                raise TransferFailed(f"{short(to)} rejected {amount}")

    # =========================================================================
    # Events
    # =========================================================================

    def emit(self, emitter: bytes, name: str, **args: Any) -> Event:
        """Append an event to the log."""
        event = Event(
            emitter=emitter,
            name=name,
            args=dict(args),
            block_number=self.block_number,
            timestamp=self.timestamp,
        )
        self._events.append(event)
        logger.debug(f"{name} from {short(emitter)}: {args}")
        return event

    def events(self, name: Optional[str] = None, emitter: Optional[bytes] = None) -> List[Event]:
        """Events in emission order, optionally filtered by name and emitter."""
        return [
            e for e in self._events
            if (name is None or e.name == name)
            and (emitter is None or e.emitter == emitter)
        ]

    # =========================================================================
    # Atomic Transactions
    # =========================================================================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run a block as one all-or-nothing transaction.

        Every block is its own savepoint: an exception leaving it undoes
        the block's writes and propagates. Committing an inner block folds
        its journal into the enclosing one; committing the outermost block
        closes a chain block.
        """
        savepoint = Savepoint(event_count=len(self._events))
        self._savepoints.append(savepoint)
        try:
            yield
        except BaseException:
            self._savepoints.pop()
            self._rollback(savepoint)
            logger.debug(
                f"Rolled back {len(self._savepoints) + 1}-deep block at block {self.block_number}"
            )
            raise

        self._savepoints.pop()
        if self._savepoints:
            self._savepoints[-1].absorb(savepoint)
        else:
            self.block_number += 1

    def touch(self, contract: Contract) -> None:
        """Record a contract's state in the innermost block before its first write there."""
        if not self._savepoints:
            return
        savepoint = self._savepoints[-1]
        address = contract.address
        if address in savepoint.states or address in savepoint.deployed:
            return
        savepoint.states[address] = contract.snapshot()

    def _rollback(self, savepoint: Savepoint) -> None:
        del self._events[savepoint.event_count:]
        for address in savepoint.deployed:
            self._contracts.pop(address, None)
        for journal, live in ((savepoint.balances, self._balances), (savepoint.nonces, self._nonces)):
            for key, value in journal.items():
                if value is _ABSENT:
                    live.pop(key, None)
                else:
                    live[key] = value
        for address, state in savepoint.states.items():
            self._contracts[address].restore(state)

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"Chain(block={self.block_number}, time={self.timestamp}, contracts={len(self._contracts)})"

    def stats(self) -> dict:
        """Get chain statistics."""
        return {
            "block_number": self.block_number,
            "timestamp": self.timestamp,
            "contracts": len(self._contracts),
            "events": len(self._events),
            "native_supply": sum(self._balances.values()),
        }
