"""Settlement layer — per-account reward checkpoints.

Each account carries the accumulator value it was last settled at and
the reward owed but not yet claimed. Settling credits the account for
everything the accumulator gained since its checkpoint, at its current
balance:

    owed += balance × (reward_per_share_stored - checkpoint) // SCALE
    checkpoint = reward_per_share_stored

Because the pool settles before every balance change, the balance used
here is always the one the account actually held over that interval.
"""

from __future__ import annotations

from typing import Dict, Optional

from rewardstream.accrual.engine import RewardAccrualEngine
from rewardstream.accrual.stake_ledger import StakeLedger
from rewardstream.models.rewards import SCALE, SettlementRecord


class SettlementLayer:
    """Lazily created settlement records, keyed by account."""

    def __init__(self, engine: RewardAccrualEngine, ledger: StakeLedger) -> None:
        self._engine = engine
        self._ledger = ledger
        self._records: Dict[str, SettlementRecord] = {}

    @property
    def record_count(self) -> int:
        return len(self._records)

    def record_for(self, account: str) -> Optional[SettlementRecord]:
        """Copy of the account's record, or None if it has none yet."""
        record = self._records.get(account)
        return record.copy() if record is not None else None

    def settle(self, account: str) -> int:
        """Credit accrued reward to the account. Returns the amount added.

        Does not refresh the accumulator; callers refresh first.
        """
        record = self._records.get(account)
        if record is None:
            record = SettlementRecord()
            self._records[account] = record
        stored = self._engine.reward_per_share_stored
        accrued = self._accrued(account, record, stored)
        record.owed_unclaimed += accrued
        record.reward_per_share_checkpoint = stored
        return accrued

    def earned(self, account: str) -> int:
        """Reward the account could claim right now. Read-only."""
        record = self._records.get(account)
        if record is None:
            record = SettlementRecord()
        return record.owed_unclaimed + self._accrued(
            account, record, self._engine.reward_per_share(),
        )

    def take_owed(self, account: str) -> int:
        """Refresh, settle, then zero and return the account's owed reward."""
        self._engine.refresh()
        self.settle(account)
        record = self._records[account]
        owed = record.owed_unclaimed
        if owed > 0:
            record.owed_unclaimed = 0
        return owed

    def restore(self, account: str, record: Optional[SettlementRecord]) -> None:
        """Put back a previously copied record. Used to undo an aborted call."""
        if record is None:
            self._records.pop(account, None)
        else:
            self._records[account] = record.copy()

    def _accrued(self, account: str, record: SettlementRecord, reward_per_share: int) -> int:
        balance = self._ledger.balance_of(account)
        delta = reward_per_share - record.reward_per_share_checkpoint
        return balance * delta // SCALE

    def checkpoints(self) -> Dict[str, int]:
        """Checkpoint of every account, for invariant checks."""
        return {a: r.reward_per_share_checkpoint for a, r in self._records.items()}

    def total_owed(self) -> int:
        """Sum of settled-but-unclaimed reward across all accounts."""
        return sum(r.owed_unclaimed for r in self._records.values())
