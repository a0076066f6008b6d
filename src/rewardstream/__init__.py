"""rewardstream — proportional, time-weighted staking rewards.

Participants stake one asset and accrue another in proportion to their
share of total stake and the time elapsed in the current reward period.
Accounting is lazy and O(1) per call: a global reward-per-share
accumulator plus a checkpoint per account.
"""

from rewardstream.accrual.pool import StakingRewardsPool
from rewardstream.errors import RewardStreamError
from rewardstream.models.rewards import SCALE
from rewardstream.service import RewardStreamService, ServiceResult, build_in_memory

__version__ = "0.1.0"

__all__ = [
    "SCALE",
    "RewardStreamError",
    "RewardStreamService",
    "ServiceResult",
    "StakingRewardsPool",
    "build_in_memory",
]
