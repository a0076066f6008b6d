"""Typed failures for pool operations.

Every failure aborts the triggering operation as a whole: the pool
restores its pre-call state before the error leaves it. Claiming when
nothing is owed is not a failure and has no error type.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RewardStreamError(Exception):
    """Base class for all rejected pool operations."""

    code = "reward_stream_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidAmount(RewardStreamError, ValueError):
    """Amount is zero, negative, or not an integer."""

    code = "invalid_amount"


class InsufficientBalance(RewardStreamError):
    """Withdrawal exceeds the account's staked balance."""

    code = "insufficient_balance"


class NotAuthorized(RewardStreamError):
    """Caller is not the pool administrator."""

    code = "not_authorized"


class PeriodActive(RewardStreamError):
    """Reward period is still running."""

    code = "period_active"


class ZeroRate(RewardStreamError):
    """Reward rate would round down to zero."""

    code = "zero_rate"


class InsufficientReserve(RewardStreamError):
    """Committed reward exceeds the reward asset held by the pool."""

    code = "insufficient_reserve"


class PoolPaused(RewardStreamError):
    """New stakes are not accepted while the pool is paused."""

    code = "pool_paused"


class ReentrantCall(RewardStreamError):
    """A pool operation was invoked while another was still in progress."""

    code = "reentrant_call"


class TransferFailed(RewardStreamError):
    """An asset ledger refused a transfer."""

    code = "transfer_failed"
