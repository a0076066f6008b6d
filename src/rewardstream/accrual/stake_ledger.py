"""Stake ledger — per-account staked balances and the pool total.

The ledger is pure bookkeeping. It does not move assets and it does not
know about rewards: the pool refreshes the accumulator and settles the
account before calling credit() or debit(), so the interval up to "now"
is always priced at the pre-mutation balance and total.

Invariant: total_stake == sum(balance_of(a) for a in accounts()), exactly,
after every call.
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from rewardstream.errors import InsufficientBalance, InvalidAmount


def require_positive_amount(amount: object, action: str) -> int:
    """Validate a transfer amount. Returns it unchanged when valid."""
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(
            f"Cannot {action}: amount must be an integer, got {type(amount).__name__}",
            {"amount": repr(amount)},
        )
    if amount <= 0:
        raise InvalidAmount(
            f"Cannot {action} {amount}: amount must be greater than zero",
            {"amount": amount},
        )
    return amount


class StakeLedger:
    """In-memory ledger of staked balances.

    Usage:
        ledger = StakeLedger()
        ledger.credit("alice", 5)
        ledger.debit("alice", 2)
        ledger.balance_of("alice")   # 3
        ledger.total_stake           # 3
    """

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}
        self._total = 0

    @property
    def total_stake(self) -> int:
        return self._total

    @property
    def holder_count(self) -> int:
        """Number of accounts currently holding a non-zero stake."""
        return sum(1 for b in self._balances.values() if b > 0)

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def credit(self, account: str, amount: int) -> int:
        """Add `amount` to the account's stake. Returns the new balance."""
        require_positive_amount(amount, "stake")
        balance = self._balances.get(account, 0) + amount
        self._balances[account] = balance
        self._total += amount
        return balance

    def debit(self, account: str, amount: int) -> int:
        """Remove `amount` from the account's stake. Returns the new balance."""
        require_positive_amount(amount, "withdraw")
        current = self._balances.get(account, 0)
        if amount > current:
            raise InsufficientBalance(
                f"Cannot withdraw {amount}: {account} has {current} staked",
                {"account": account, "amount": amount, "balance": current},
            )
        # Zero balances stay in the mapping; the account keeps its history.
        self._balances[account] = current - amount
        self._total -= amount
        return current - amount

    def accounts(self) -> Iterator[Tuple[str, int]]:
        """Iterate (account, balance) for every account ever credited."""
        return iter(list(self._balances.items()))

    def entry(self, account: str) -> Optional[int]:
        """Raw balance entry, or None if the account was never credited."""
        return self._balances.get(account)

    def restore(self, account: str, entry: Optional[int], total: int) -> None:
        """Reset one account entry and the total to previously observed values.

        Used only by the pool to undo an aborted operation.
        """
        if entry is None:
            self._balances.pop(account, None)
        else:
            self._balances[account] = entry
        self._total = total
