"""Reward stream service — facade over a staking rewards pool.

This is the primary interface for programmatic access. It:
- forwards every public operation to the pool
- converts rejected operations into typed ServiceResult failures
- records an audit event for every committed mutating operation
- emits structured log lines for committed and rejected operations

The pool itself has no side effects beyond its own state and the asset
ledgers it instructs. Audit logging lives here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from rewardstream.accrual.collaborators import (
    Clock,
    InMemoryAssetLedger,
    ManualClock,
    SingleOwner,
)
from rewardstream.accrual.pool import StakingRewardsPool
from rewardstream.config import RewardStreamConfig
from rewardstream.errors import RewardStreamError
from rewardstream.invariants import check_pool
from rewardstream.persistence.event_log import EventKind, EventLog, EventRecord
from rewardstream.structured_logging import log_event

logger = logging.getLogger("rewardstream.service")


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class RewardStreamService:
    """Pool facade with audit trail.

    Usage:
        service = build_in_memory(config)
        service.notify_reward_amount("owner", 100)
        result = service.stake("alice", 5)
        if not result.success:
            print(result.errors)

    Persistence (optional):
        service = RewardStreamService(pool, event_log=EventLog(path))
    """

    def __init__(
        self,
        pool: StakingRewardsPool,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._pool = pool
        self._event_log = event_log
        self._event_counter = event_log.count if event_log is not None else 0
        self._last_reward_per_share = pool.period().reward_per_share_stored

    @property
    def pool(self) -> StakingRewardsPool:
        return self._pool

    @property
    def event_log(self) -> Optional[EventLog]:
        return self._event_log

    # ------------------------------------------------------------------
    # Staker operations
    # ------------------------------------------------------------------

    def stake(self, account: str, amount: int) -> ServiceResult:
        try:
            balance = self._pool.stake(account, amount)
        except RewardStreamError as e:
            return self._rejected("stake", account, e)
        return self._committed(EventKind.STAKED, account, {
            "account": account,
            "amount": amount,
            "balance": balance,
            "total_stake": self._pool.total_stake(),
        })

    def withdraw(self, account: str, amount: int) -> ServiceResult:
        try:
            balance = self._pool.withdraw(account, amount)
        except RewardStreamError as e:
            return self._rejected("withdraw", account, e)
        return self._committed(EventKind.WITHDRAWN, account, {
            "account": account,
            "amount": amount,
            "balance": balance,
            "total_stake": self._pool.total_stake(),
        })

    def claim(self, account: str) -> ServiceResult:
        """Pay accrued reward. Nothing owed is a successful no-op with no event."""
        try:
            paid = self._pool.claim(account)
        except RewardStreamError as e:
            return self._rejected("claim", account, e)
        data = {"account": account, "paid": paid}
        if paid == 0:
            return ServiceResult(success=True, data=data)
        return self._committed(EventKind.REWARD_PAID, account, data)

    def exit(self, account: str) -> ServiceResult:
        try:
            result = self._pool.exit(account)
        except RewardStreamError as e:
            withdrawn = e.details.get("withdrawn", 0)
            if withdrawn > 0:
                # The stake leg committed before the payout failed.
                self._record(EventKind.WITHDRAWN, account, {
                    "account": account,
                    "amount": withdrawn,
                    "balance": 0,
                    "total_stake": self._pool.total_stake(),
                })
            return self._rejected("exit", account, e)
        data = {
            "account": account,
            "withdrawn": result.withdrawn,
            "paid": result.reward_paid,
        }
        warnings: list[str] = []
        if result.withdrawn > 0:
            warning = self._record(EventKind.WITHDRAWN, account, {
                "account": account,
                "amount": result.withdrawn,
                "balance": 0,
                "total_stake": self._pool.total_stake(),
            })
            if warning:
                warnings.append(warning)
        if result.reward_paid > 0:
            warning = self._record(EventKind.REWARD_PAID, account, {
                "account": account,
                "paid": result.reward_paid,
            })
            if warning:
                warnings.append(warning)
        if warnings:
            data["warning"] = "; ".join(warnings)
        log_event(logger, "service.exit", **data)
        return ServiceResult(success=True, data=data)

    def earned(self, account: str) -> ServiceResult:
        return ServiceResult(success=True, data={
            "account": account,
            "earned": self._pool.earned(account),
            "balance": self._pool.balance_of(account),
        })

    def fund_rewards(self, funder: str, amount: int) -> ServiceResult:
        try:
            reserve = self._pool.fund_rewards(funder, amount)
        except RewardStreamError as e:
            return self._rejected("fund_rewards", funder, e)
        return self._committed(EventKind.REWARDS_FUNDED, funder, {
            "funder": funder,
            "amount": amount,
            "reward_reserve": reserve,
        })

    # ------------------------------------------------------------------
    # Administrator operations
    # ------------------------------------------------------------------

    def set_rewards_duration(self, caller: str, duration: int) -> ServiceResult:
        try:
            self._pool.set_rewards_duration(caller, duration)
        except RewardStreamError as e:
            return self._rejected("set_rewards_duration", caller, e)
        return self._committed(EventKind.REWARDS_DURATION_UPDATED, caller, {
            "rewards_duration": duration,
        })

    def notify_reward_amount(self, caller: str, amount: int) -> ServiceResult:
        try:
            notification = self._pool.notify_reward_amount(caller, amount)
        except RewardStreamError as e:
            return self._rejected("notify_reward_amount", caller, e)
        return self._committed(EventKind.REWARD_ADDED, caller, {
            "amount": notification.amount,
            "leftover": notification.leftover,
            "reward_rate": notification.reward_rate,
            "period_finish": notification.period_finish,
            "rewards_duration": notification.rewards_duration,
            "top_up": notification.was_active,
        })

    def pause(self, caller: str) -> ServiceResult:
        try:
            self._pool.set_paused(caller, True)
        except RewardStreamError as e:
            return self._rejected("pause", caller, e)
        return self._committed(EventKind.POOL_PAUSED, caller, {"paused": True})

    def unpause(self, caller: str) -> ServiceResult:
        try:
            self._pool.set_paused(caller, False)
        except RewardStreamError as e:
            return self._rejected("unpause", caller, e)
        return self._committed(EventKind.POOL_UNPAUSED, caller, {"paused": False})

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def status(self, account: Optional[str] = None) -> dict[str, Any]:
        """Return a pool-wide status summary."""
        data = self._pool.snapshot(account).to_dict()
        data["events"] = self._event_log.count if self._event_log is not None else 0
        return data

    def check_invariants(self) -> list[str]:
        """Run pool invariant checks, including accumulator monotonicity."""
        errors = check_pool(self._pool, self._last_reward_per_share)
        self._last_reward_per_share = max(
            self._last_reward_per_share,
            self._pool.period().reward_per_share_stored,
        )
        return errors

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> Optional[str]:
        """Append an audit event. Returns a warning string on failure.

        The pool operation has already committed; an audit failure is
        surfaced to the caller rather than undoing it.
        """
        if self._event_log is None:
            return None
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=datetime.fromtimestamp(self._pool.now(), tz=timezone.utc),
                previous_hash=self._event_log.head_hash,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            log_event(logger, "service.audit_failed", logging.ERROR, kind=kind.value, error=str(e))
            return f"Event log failure: {e}"
        return None

    def _committed(self, kind: EventKind, actor_id: str, data: dict[str, Any]) -> ServiceResult:
        warning = self._record(kind, actor_id, dict(data))
        log_event(logger, f"service.{kind.value}", **data)
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def _rejected(self, action: str, actor_id: str, error: RewardStreamError) -> ServiceResult:
        log_event(
            logger, "service.rejected", logging.WARNING,
            action=action, actor=actor_id, code=error.code, reason=error.message,
        )
        return ServiceResult(
            success=False,
            errors=[str(error)],
            data={"code": error.code, **error.details},
        )


def build_in_memory(
    config: RewardStreamConfig,
    clock: Optional[Clock] = None,
    event_log: Optional[EventLog] = None,
) -> RewardStreamService:
    """Wire a complete service over in-memory collaborators.

    The asset ledgers are reachable as service.pool.stake_asset and
    service.pool.reward_asset (InMemoryAssetLedger, with mint()).
    """
    if clock is None:
        clock = ManualClock()
    if event_log is None and config.event_log_path is not None:
        event_log = EventLog(storage_path=config.event_log_path)
    pool = StakingRewardsPool.create(
        stake_asset=InMemoryAssetLedger(config.stake_symbol, custodian=config.pool_address),
        reward_asset=InMemoryAssetLedger(config.reward_symbol, custodian=config.pool_address),
        access=SingleOwner(config.administrator),
        clock=clock,
        address=config.pool_address,
        rewards_duration=config.rewards_duration,
    )
    return RewardStreamService(pool, event_log=event_log)
