"""Staking rewards pool — the public surface of the accrual core.

Every mutating operation follows the same order:
    1. refresh the global accumulator (engine)
    2. settle the calling account (settlement layer)
    3. apply its own effect (stake ledger, period state)
    4. move assets (asset ledgers), always after internal bookkeeping

Operations are atomic. A journal of the O(1) state an operation can touch
(period state, the caller's balance entry and settlement record, total
stake, pause flag) is taken on entry and restored if anything raises, so a
failed call leaves no observable trace.

Bookkeeping is never rolled back past an asset movement. Once custody
has changed, the journal is re-taken, so a later failure in the same
operation only undoes what came after the move. A collaborator that
raises after moving assets counts as having moved them.

Operations are serialized by a lock, and a call that re-enters the pool
while another operation is still running (for example from an asset
ledger during a transfer) is rejected with ReentrantCall.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from rewardstream.accrual.collaborators import AccessControl, AssetLedger, Clock
from rewardstream.accrual.engine import RewardAccrualEngine
from rewardstream.accrual.settlement import SettlementLayer
from rewardstream.accrual.stake_ledger import StakeLedger, require_positive_amount
from rewardstream.errors import (
    InsufficientReserve,
    NotAuthorized,
    PoolPaused,
    ReentrantCall,
    RewardStreamError,
    TransferFailed,
)
from rewardstream.models.rewards import (
    ExitResult,
    PeriodState,
    PeriodStatus,
    PoolSnapshot,
    RewardNotification,
    SettlementRecord,
)
from rewardstream.structured_logging import log_event

logger = logging.getLogger("rewardstream.pool")


@dataclass(frozen=True)
class _Journal:
    """State captured on entry to an operation, for rollback."""
    period: PeriodState
    paused: bool
    total_stake: int
    account: Optional[str]
    balance_entry: Optional[int]
    record: Optional[SettlementRecord]


class StakingRewardsPool:
    """Stake one asset, earn another, proportionally over time.

    Usage:
        pool = StakingRewardsPool.create(
            stake_asset=stake_asset,
            reward_asset=reward_asset,
            access=SingleOwner("owner"),
            clock=clock,
            address="pool",
        )
        pool.set_rewards_duration("owner", 7 * 86_400)
        pool.fund_rewards("owner", 100)
        pool.notify_reward_amount("owner", 100)
        pool.stake("alice", 5)
        pool.earned("alice")
        pool.claim("alice")
    """

    def __init__(
        self,
        engine: RewardAccrualEngine,
        ledger: StakeLedger,
        settlement: SettlementLayer,
        stake_asset: AssetLedger,
        reward_asset: AssetLedger,
        access: AccessControl,
        address: str,
    ) -> None:
        if stake_asset is reward_asset:
            raise ValueError("Stake and reward assets must be separate ledgers")
        self._engine = engine
        self._ledger = ledger
        self._settlement = settlement
        self._stake_asset = stake_asset
        self._reward_asset = reward_asset
        self._access = access
        self._address = address
        self._paused = False
        self._lock = threading.RLock()
        self._entered = False
        self._journal: Optional[_Journal] = None

    @classmethod
    def create(
        cls,
        stake_asset: AssetLedger,
        reward_asset: AssetLedger,
        access: AccessControl,
        clock: Clock,
        address: str,
        rewards_duration: int = 0,
    ) -> StakingRewardsPool:
        """Wire engine, ledger and settlement layer around the collaborators."""
        ledger = StakeLedger()
        engine = RewardAccrualEngine(
            clock, ledger, PeriodState(rewards_duration=rewards_duration),
        )
        settlement = SettlementLayer(engine, ledger)
        return cls(
            engine=engine,
            ledger=ledger,
            settlement=settlement,
            stake_asset=stake_asset,
            reward_asset=reward_asset,
            access=access,
            address=address,
        )

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def engine(self) -> RewardAccrualEngine:
        return self._engine

    @property
    def ledger(self) -> StakeLedger:
        return self._ledger

    @property
    def settlement(self) -> SettlementLayer:
        return self._settlement

    @property
    def stake_asset(self) -> AssetLedger:
        return self._stake_asset

    @property
    def reward_asset(self) -> AssetLedger:
        return self._reward_asset

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def paused(self) -> bool:
        return self._paused

    def now(self) -> int:
        return self._engine.now()

    def total_stake(self) -> int:
        return self._ledger.total_stake

    def balance_of(self, account: str) -> int:
        return self._ledger.balance_of(account)

    def earned(self, account: str) -> int:
        return self._settlement.earned(account)

    def reward_per_share(self) -> int:
        return self._engine.reward_per_share()

    def last_time_reward_applicable(self) -> int:
        return self._engine.last_time_reward_applicable()

    def reward_for_duration(self) -> int:
        return self._engine.reward_for_duration()

    def reward_reserve(self) -> int:
        """Reward asset currently held in the pool's custody."""
        return self._reward_asset.balance_of(self._address)

    def period(self) -> PeriodState:
        return self._engine.state.copy()

    def period_status(self) -> PeriodStatus:
        return self._engine.period_status()

    def snapshot(self, account: Optional[str] = None) -> PoolSnapshot:
        return PoolSnapshot(
            now=self._engine.now(),
            status=self._engine.period_status(),
            period=self._engine.state.copy(),
            total_stake=self._ledger.total_stake,
            holder_count=self._ledger.holder_count,
            reward_per_share=self._engine.reward_per_share(),
            reward_for_duration=self._engine.reward_for_duration(),
            reward_reserve=self.reward_reserve(),
            paused=self._paused,
            account=account,
            account_balance=self._ledger.balance_of(account) if account else None,
            account_earned=self._settlement.earned(account) if account else None,
        )

    # ------------------------------------------------------------------
    # Staker operations
    # ------------------------------------------------------------------

    def stake(self, account: str, amount: int) -> int:
        """Deposit `amount` of the stake asset. Returns the new balance."""
        with self._operation(account):
            if self._paused:
                raise PoolPaused(
                    f"Pool is paused; cannot stake {amount} for {account}",
                    {"account": account},
                )
            require_positive_amount(amount, "stake")
            self._engine.refresh()
            self._settlement.settle(account)
            balance = self._ledger.credit(account, amount)
            self._transfer(self._stake_asset, "in", account, amount)
        log_event(
            logger, "pool.staked", logging.DEBUG,
            account=account, amount=amount, balance=balance,
            total_stake=self._ledger.total_stake,
        )
        return balance

    def withdraw(self, account: str, amount: int) -> int:
        """Return `amount` of staked asset to the account. Returns the new balance."""
        with self._operation(account):
            balance = self._withdraw(account, amount)
        log_event(
            logger, "pool.withdrawn", logging.DEBUG,
            account=account, amount=amount, balance=balance,
            total_stake=self._ledger.total_stake,
        )
        return balance

    def claim(self, account: str) -> int:
        """Pay out all accrued reward. Returns the amount paid (0 is a no-op)."""
        with self._operation(account):
            paid = self._claim(account)
        log_event(logger, "pool.reward_paid", logging.DEBUG, account=account, amount=paid)
        return paid

    get_reward = claim

    def exit(self, account: str) -> ExitResult:
        """Withdraw the full balance and claim all reward in one operation."""
        with self._operation(account):
            withdrawn = self._ledger.balance_of(account)
            self._engine.refresh()
            self._require_reserve(account, self._settlement.earned(account))
            if withdrawn > 0:
                self._withdraw(account, withdrawn)
            try:
                paid = self._claim(account)
            except RewardStreamError as e:
                # The stake leg has already moved and stays withdrawn.
                e.details["withdrawn"] = withdrawn
                raise
        log_event(
            logger, "pool.exited", logging.DEBUG,
            account=account, withdrawn=withdrawn, reward_paid=paid,
        )
        return ExitResult(withdrawn=withdrawn, reward_paid=paid)

    def fund_rewards(self, funder: str, amount: int) -> int:
        """Move reward asset from `funder` into custody. Returns the new reserve."""
        with self._operation(None):
            require_positive_amount(amount, "fund")
            self._transfer(self._reward_asset, "in", funder, amount)
        return self.reward_reserve()

    # ------------------------------------------------------------------
    # Administrator operations
    # ------------------------------------------------------------------

    def set_rewards_duration(self, caller: str, duration: int) -> None:
        with self._operation(None):
            self._require_administrator(caller, "set rewards duration")
            self._engine.set_rewards_duration(duration)
        log_event(logger, "pool.rewards_duration_updated", logging.DEBUG, duration=duration)

    def notify_reward_amount(self, caller: str, amount: int) -> RewardNotification:
        """Start a reward period, or top up the active one, with `amount`."""
        with self._operation(None):
            self._require_administrator(caller, "notify reward amount")
            notification = self._engine.notify_reward_amount(amount, self.reward_reserve())
        log_event(
            logger, "pool.reward_added", logging.DEBUG,
            amount=amount, leftover=notification.leftover,
            reward_rate=notification.reward_rate,
            period_finish=notification.period_finish,
        )
        return notification

    def set_paused(self, caller: str, paused: bool) -> None:
        with self._operation(None):
            self._require_administrator(caller, "pause" if paused else "unpause")
            self._paused = bool(paused)
        log_event(logger, "pool.paused_changed", logging.DEBUG, paused=self._paused)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _withdraw(self, account: str, amount: int) -> int:
        require_positive_amount(amount, "withdraw")
        self._engine.refresh()
        self._settlement.settle(account)
        balance = self._ledger.debit(account, amount)
        self._transfer(self._stake_asset, "out", account, amount)
        return balance

    def _claim(self, account: str) -> int:
        owed = self._settlement.take_owed(account)
        if owed > 0:
            self._require_reserve(account, owed)
            self._transfer(self._reward_asset, "out", account, owed)
        return owed

    def _require_reserve(self, account: str, owed: int) -> None:
        reserve = self.reward_reserve()
        if owed > reserve:
            raise InsufficientReserve(
                f"Reward of {owed} owed to {account} exceeds reward reserve {reserve}",
                {"account": account, "owed": owed, "reserve": reserve},
            )

    def _transfer(self, asset: AssetLedger, direction: str, account: str, amount: int) -> None:
        """Move `amount` in or out of custody, re-taking the journal once it moves.

        False means nothing moved and the operation rolls back. If the
        ledger raises, custody is compared with its prior balance to tell
        whether the move happened before the error.
        """
        custody = asset.balance_of(self._address)
        try:
            if direction == "in":
                moved = asset.transfer_in(account, amount)
            else:
                moved = asset.transfer_out(account, amount)
        except Exception:
            if asset.balance_of(self._address) != custody:
                self._checkpoint()
            raise
        if not moved:
            preposition = "from" if direction == "in" else "to"
            raise TransferFailed(
                f"{asset.symbol} transfer of {amount} {preposition} {account} failed",
                {"account": account, "amount": amount},
            )
        self._checkpoint()

    def _require_administrator(self, caller: str, action: str) -> None:
        if not self._access.is_administrator(caller):
            raise NotAuthorized(
                f"{caller} is not allowed to {action}",
                {"caller": caller},
            )

    @contextmanager
    def _operation(self, account: Optional[str]) -> Iterator[None]:
        with self._lock:
            if self._entered:
                raise ReentrantCall(
                    "Pool operation already in progress",
                    {"account": account},
                )
            self._entered = True
            self._journal = self._capture(account)
            try:
                yield
            except Exception:
                self._rollback(self._journal)
                raise
            finally:
                self._journal = None
                self._entered = False

    def _checkpoint(self) -> None:
        if self._journal is not None:
            self._journal = self._capture(self._journal.account)

    def _capture(self, account: Optional[str]) -> _Journal:
        return _Journal(
            period=self._engine.state.copy(),
            paused=self._paused,
            total_stake=self._ledger.total_stake,
            account=account,
            balance_entry=self._ledger.entry(account) if account is not None else None,
            record=self._settlement.record_for(account) if account is not None else None,
        )

    def _rollback(self, journal: _Journal) -> None:
        self._engine.state.restore(journal.period)
        self._paused = journal.paused
        if journal.account is not None:
            self._ledger.restore(journal.account, journal.balance_entry, journal.total_stake)
            self._settlement.restore(journal.account, journal.record)
        log_event(logger, "pool.rolled_back", logging.DEBUG, account=journal.account)
