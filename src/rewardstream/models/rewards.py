"""Reward models — period state, settlement records, and pool snapshots.

All amounts and timestamps are integers. The reward-per-share accumulator
is fixed-point, scaled by SCALE. Every division in the accrual path is
floor division, so rounding always favours the pool over the claimant.

Invariants enforced by the accrual engine over these models:
- reward_per_share_stored never decreases
- last_update <= period_finish
- reward_rate * rewards_duration never exceeds the reward reserve
  at the moment a period is started or topped up
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional


SCALE = 10**18


class PeriodStatus(str, enum.Enum):
    """Lifecycle of the reward period.

    State machine:
        IDLE → ACTIVE           (first notify_reward_amount)
        ACTIVE → ACTIVE         (top-up restarts the window)
        ACTIVE → ENDED          (clock passes period_finish)
        ENDED → ACTIVE          (next notify_reward_amount)
    """
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class PeriodState:
    """Global reward period state. One per pool.

    Mutable — refreshed on every state-changing pool operation and
    reconfigured only through the administrator-gated operations.
    """
    reward_rate: int = 0
    period_finish: int = 0
    last_update: int = 0
    reward_per_share_stored: int = 0
    rewards_duration: int = 0

    def copy(self) -> PeriodState:
        return PeriodState(
            reward_rate=self.reward_rate,
            period_finish=self.period_finish,
            last_update=self.last_update,
            reward_per_share_stored=self.reward_per_share_stored,
            rewards_duration=self.rewards_duration,
        )

    def restore(self, other: PeriodState) -> None:
        """Overwrite every field in place from another state."""
        self.reward_rate = other.reward_rate
        self.period_finish = other.period_finish
        self.last_update = other.last_update
        self.reward_per_share_stored = other.reward_per_share_stored
        self.rewards_duration = other.rewards_duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reward_rate": self.reward_rate,
            "period_finish": self.period_finish,
            "last_update": self.last_update,
            "reward_per_share_stored": self.reward_per_share_stored,
            "rewards_duration": self.rewards_duration,
        }


@dataclass
class SettlementRecord:
    """Per-account checkpoint of reward already accounted for.

    Created lazily on the account's first stake, withdraw or claim.
    Never deleted: a zero balance still keeps its checkpoint.
    """
    reward_per_share_checkpoint: int = 0
    owed_unclaimed: int = 0

    def copy(self) -> SettlementRecord:
        return SettlementRecord(
            reward_per_share_checkpoint=self.reward_per_share_checkpoint,
            owed_unclaimed=self.owed_unclaimed,
        )


@dataclass(frozen=True)
class RewardNotification:
    """Outcome of starting or topping up a reward period."""
    amount: int
    leftover: int
    reward_rate: int
    period_finish: int
    rewards_duration: int
    was_active: bool


@dataclass(frozen=True)
class ExitResult:
    """Outcome of exiting the pool: full stake returned plus reward paid."""
    withdrawn: int
    reward_paid: int


@dataclass(frozen=True)
class PoolSnapshot:
    """Observable, read-only view of the pool at a point in time."""
    now: int
    status: PeriodStatus
    period: PeriodState
    total_stake: int
    holder_count: int
    reward_per_share: int
    reward_for_duration: int
    reward_reserve: int
    paused: bool
    account: Optional[str] = None
    account_balance: Optional[int] = None
    account_earned: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "now": self.now,
            "status": self.status.value,
            "period": self.period.to_dict(),
            "total_stake": self.total_stake,
            "holder_count": self.holder_count,
            "reward_per_share": self.reward_per_share,
            "reward_for_duration": self.reward_for_duration,
            "reward_reserve": self.reward_reserve,
            "paused": self.paused,
        }
        if self.account is not None:
            data["account"] = {
                "id": self.account,
                "balance": self.account_balance,
                "earned": self.account_earned,
            }
        return data
