"""Data models for the reward pool."""

from rewardstream.models.rewards import (
    SCALE,
    ExitResult,
    PeriodState,
    PeriodStatus,
    PoolSnapshot,
    RewardNotification,
    SettlementRecord,
)

__all__ = [
    "SCALE",
    "ExitResult",
    "PeriodState",
    "PeriodStatus",
    "PoolSnapshot",
    "RewardNotification",
    "SettlementRecord",
]
