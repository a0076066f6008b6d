"""Reward accrual engine — the reward-per-share accumulator and period state.

The accumulator measures cumulative reward emitted per unit of stake.
It advances lazily, only when refreshed, and is fully deterministic:

    effective = min(now, period_finish)
    reward_per_share += (effective - last_update) × reward_rate × SCALE // total_stake
    last_update = effective

When nobody is staked the interval is skipped (last_update still moves),
so reward is only ever paid over staked supply.

Period reconfiguration:
    no active period:  reward_rate = amount // rewards_duration
    active period:     leftover = (period_finish - now) × reward_rate
                       reward_rate = (amount + leftover) // rewards_duration
    then:              last_update = now, period_finish = now + rewards_duration

Invariants:
- reward_per_share_stored never decreases
- reward_rate × rewards_duration <= reward reserve whenever a period starts
- rewards_duration cannot change while a period is active
- a top-up never discards the active period's unpaid commitment

Administrator checks are the caller's responsibility; the engine only
enforces arithmetic and period rules.
"""

from __future__ import annotations

from typing import Optional

from rewardstream.accrual.collaborators import Clock
from rewardstream.accrual.stake_ledger import StakeLedger
from rewardstream.errors import (
    InsufficientReserve,
    InvalidAmount,
    PeriodActive,
    ZeroRate,
)
from rewardstream.models.rewards import (
    SCALE,
    PeriodState,
    PeriodStatus,
    RewardNotification,
)


class RewardAccrualEngine:
    """Owns the period state and keeps the accumulator up to date.

    Usage:
        engine = RewardAccrualEngine(clock, ledger)
        engine.set_rewards_duration(7 * 86_400)
        engine.notify_reward_amount(100 * 10**18, reserve=reward_balance)
        engine.refresh()
        engine.reward_per_share_stored
    """

    def __init__(
        self,
        clock: Clock,
        ledger: StakeLedger,
        state: Optional[PeriodState] = None,
    ) -> None:
        self._clock = clock
        self._ledger = ledger
        self._state = state if state is not None else PeriodState()

    @property
    def state(self) -> PeriodState:
        """The live period state. Mutate only through engine methods."""
        return self._state

    @property
    def reward_per_share_stored(self) -> int:
        return self._state.reward_per_share_stored

    def now(self) -> int:
        return self._clock.now()

    def last_time_reward_applicable(self) -> int:
        """Latest timestamp at which reward is still being emitted."""
        return min(self._clock.now(), self._state.period_finish)

    def reward_per_share(self) -> int:
        """Accumulator value a refresh would commit now. Read-only."""
        total = self._ledger.total_stake
        if total == 0:
            return self._state.reward_per_share_stored
        elapsed = self.last_time_reward_applicable() - self._state.last_update
        return (
            self._state.reward_per_share_stored
            + elapsed * self._state.reward_rate * SCALE // total
        )

    def refresh(self) -> int:
        """Bring the accumulator up to date. Returns the stored value.

        Must run before any change to total stake or a balance, so that
        the interval since last_update is priced at the old total.
        """
        effective = self.last_time_reward_applicable()
        if self._ledger.total_stake != 0:
            self._state.reward_per_share_stored = self.reward_per_share()
        self._state.last_update = effective
        return self._state.reward_per_share_stored

    def is_active(self) -> bool:
        return self._clock.now() < self._state.period_finish

    def period_status(self) -> PeriodStatus:
        if self._state.period_finish == 0:
            return PeriodStatus.IDLE
        if self.is_active():
            return PeriodStatus.ACTIVE
        return PeriodStatus.ENDED

    def reward_for_duration(self) -> int:
        """Total reward the current rate emits over one full duration."""
        return self._state.reward_rate * self._state.rewards_duration

    def set_rewards_duration(self, duration: int) -> None:
        """Set the length of the next period. Rejected mid-period."""
        if not isinstance(duration, int) or isinstance(duration, bool) or duration < 0:
            raise InvalidAmount(
                f"Rewards duration must be a non-negative integer, got {duration!r}",
                {"duration": repr(duration)},
            )
        now = self._clock.now()
        if now < self._state.period_finish:
            raise PeriodActive(
                f"Cannot change rewards duration until the current period "
                f"finishes at {self._state.period_finish} (now {now})",
                {"period_finish": self._state.period_finish, "now": now},
            )
        self._state.rewards_duration = duration

    def notify_reward_amount(self, amount: int, reserve: int) -> RewardNotification:
        """Start a new period, or top up the active one, with `amount`.

        Args:
            amount: Newly committed reward units.
            reserve: Reward asset currently held by the pool.

        Returns:
            A RewardNotification describing the committed period.
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise InvalidAmount(
                f"Reward amount must be a non-negative integer, got {amount!r}",
                {"amount": repr(amount)},
            )

        self.refresh()

        now = self._clock.now()
        state = self._state
        duration = state.rewards_duration
        was_active = now < state.period_finish
        leftover = (state.period_finish - now) * state.reward_rate if was_active else 0

        if duration == 0:
            raise ZeroRate(
                "Rewards duration is zero; no rate can be derived",
                {"amount": amount},
            )
        rate = (amount + leftover) // duration
        if rate == 0:
            raise ZeroRate(
                f"Reward rate rounds to zero: ({amount} + {leftover}) // {duration}",
                {"amount": amount, "leftover": leftover, "duration": duration},
            )
        if rate * duration > reserve:
            raise InsufficientReserve(
                f"Committing {rate * duration} over {duration}s exceeds "
                f"reward reserve {reserve}",
                {"committed": rate * duration, "reserve": reserve},
            )

        state.reward_rate = rate
        state.last_update = now
        state.period_finish = now + duration

        return RewardNotification(
            amount=amount,
            leftover=leftover,
            reward_rate=rate,
            period_finish=state.period_finish,
            rewards_duration=duration,
            was_active=was_active,
        )
