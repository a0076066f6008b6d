"""Collaborator contracts — asset ledgers, access control, and the clock.

The accrual core never moves assets, decides permissions, or reads the
wall clock itself. It talks to these Protocols, and any implementation
satisfying them can be plugged in without changes to the engine, the
stake ledger, or the settlement layer.

In-memory reference implementations are provided for local runs,
simulations, and tests:
    InMemoryAssetLedger  — balances keyed by holder, one custody account
    SingleOwner          — exactly one administrator
    SystemClock          — wall clock, whole seconds, never goes backwards
    ManualClock          — explicitly advanced time
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class AssetLedger(Protocol):
    """Abstract contract for a fungible asset the pool holds in custody.

    transfer_in moves `amount` from `source` into the pool's custody;
    transfer_out moves `amount` from custody to `destination`. Both
    return False when the transfer cannot happen. The pool treats
    False as a fatal abort of the enclosing operation.
    """

    @property
    def symbol(self) -> str:
        """Short asset identifier (e.g., 'STK', 'RWD')."""
        ...

    def transfer_in(self, source: str, amount: int) -> bool:
        ...

    def transfer_out(self, destination: str, amount: int) -> bool:
        ...

    def balance_of(self, holder: str) -> int:
        ...


@runtime_checkable
class AccessControl(Protocol):
    """Answers whether a caller may perform administrator operations."""

    def is_administrator(self, caller: str) -> bool:
        ...


@runtime_checkable
class Clock(Protocol):
    """Monotonic, non-decreasing source of integer timestamps (seconds)."""

    def now(self) -> int:
        ...


class InMemoryAssetLedger:
    """Asset ledger backed by a dict of integer balances.

    Usage:
        stake_asset = InMemoryAssetLedger("STK", custodian="pool")
        stake_asset.mint("alice", 100)
        stake_asset.transfer_in("alice", 40)    # alice → pool
        stake_asset.transfer_out("alice", 10)   # pool → alice

    An optional on_transfer hook is invoked after every successful
    transfer with (direction, counterparty, amount). It exists so a
    caller can observe, or attempt to re-enter, the pool mid-operation.
    """

    def __init__(
        self,
        symbol: str,
        custodian: str,
        on_transfer: Optional[Callable[[str, str, int], None]] = None,
    ) -> None:
        if not symbol:
            raise ValueError("Asset symbol must be non-empty")
        if not custodian:
            raise ValueError("Custodian address must be non-empty")
        self._symbol = symbol
        self._custodian = custodian
        self._balances: Dict[str, int] = {}
        self._supply = 0
        self.on_transfer = on_transfer

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def custodian(self) -> str:
        return self._custodian

    @property
    def total_supply(self) -> int:
        return self._supply

    def mint(self, holder: str, amount: int) -> None:
        """Create `amount` new units for `holder`."""
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValueError(f"Mint amount must be a positive integer, got {amount!r}")
        self._balances[holder] = self._balances.get(holder, 0) + amount
        self._supply += amount

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def transfer_in(self, source: str, amount: int) -> bool:
        if not self._move(source, self._custodian, amount):
            return False
        if self.on_transfer is not None:
            self.on_transfer("in", source, amount)
        return True

    def transfer_out(self, destination: str, amount: int) -> bool:
        if not self._move(self._custodian, destination, amount):
            return False
        if self.on_transfer is not None:
            self.on_transfer("out", destination, amount)
        return True

    def _move(self, source: str, destination: str, amount: int) -> bool:
        if amount <= 0:
            return False
        available = self._balances.get(source, 0)
        if amount > available:
            return False
        self._balances[source] = available - amount
        self._balances[destination] = self._balances.get(destination, 0) + amount
        return True


class SingleOwner:
    """Access control with exactly one administrator.

    Ownership can be handed over, but only by the current owner.
    """

    def __init__(self, owner: str) -> None:
        if not owner:
            raise ValueError("Owner must be non-empty")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_administrator(self, caller: str) -> bool:
        return caller == self._owner

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if caller != self._owner:
            raise PermissionError(f"Only the owner can transfer ownership, not {caller}")
        if not new_owner:
            raise ValueError("New owner must be non-empty")
        self._owner = new_owner


class SystemClock:
    """Wall clock in whole seconds.

    time.time() can step backwards (NTP adjustments); this clock holds
    its last reading instead of going back.
    """

    def __init__(self, source: Callable[[], float] = time.time) -> None:
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = int(self._source())
            if current > self._last:
                self._last = current
            return self._last


class ManualClock:
    """Clock that only moves when told to.

    Usage:
        clock = ManualClock(start=1_700_000_000)
        clock.advance(3 * 86_400)
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError(f"Clock cannot start before zero, got {start}")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by `seconds` and return the new time."""
        if seconds < 0:
            raise ValueError(f"Clock cannot move backwards (advance by {seconds})")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(
                f"Clock cannot move backwards: {timestamp} < {self._now}"
            )
        self._now = int(timestamp)
