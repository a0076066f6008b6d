"""Accrual subsystem — accumulator engine, stake ledger, settlement, pool.

Components are wired leaf-first: the engine reads total stake from the
ledger, the settlement layer reads the engine and the ledger, and the
pool orchestrates all three around the external collaborators.
"""

from rewardstream.accrual.collaborators import (
    AccessControl,
    AssetLedger,
    Clock,
    InMemoryAssetLedger,
    ManualClock,
    SingleOwner,
    SystemClock,
)
from rewardstream.accrual.engine import RewardAccrualEngine
from rewardstream.accrual.pool import StakingRewardsPool
from rewardstream.accrual.settlement import SettlementLayer
from rewardstream.accrual.stake_ledger import StakeLedger

__all__ = [
    "AccessControl",
    "AssetLedger",
    "Clock",
    "InMemoryAssetLedger",
    "ManualClock",
    "RewardAccrualEngine",
    "SettlementLayer",
    "SingleOwner",
    "StakeLedger",
    "StakingRewardsPool",
    "SystemClock",
]
