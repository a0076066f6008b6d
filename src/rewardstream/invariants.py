"""Pool invariant checks.

Each check returns a list of human-readable violations; an empty list
means the pool is consistent. These walk every account, so they are for
audits, simulations and tests, never for the hot path.
"""

from __future__ import annotations

from typing import List, Optional

from rewardstream.accrual.pool import StakingRewardsPool


def check_stake_totals(pool: StakingRewardsPool, errors: List[str]) -> None:
    """Total stake equals the exact sum of balances; no balance is negative."""
    total = 0
    for account, balance in pool.ledger.accounts():
        if balance < 0:
            errors.append(f"Negative stake balance for {account}: {balance}")
        total += balance
    if total != pool.total_stake():
        errors.append(
            f"Total stake {pool.total_stake()} != sum of balances {total}"
        )


def check_period(pool: StakingRewardsPool, errors: List[str]) -> None:
    """Period bookkeeping is internally consistent."""
    period = pool.period()
    if period.last_update > period.period_finish:
        errors.append(
            f"last_update {period.last_update} is after period_finish "
            f"{period.period_finish}"
        )
    if period.reward_rate < 0:
        errors.append(f"Negative reward rate: {period.reward_rate}")
    if period.reward_per_share_stored < 0:
        errors.append(
            f"Negative reward_per_share_stored: {period.reward_per_share_stored}"
        )


def check_checkpoints(pool: StakingRewardsPool, errors: List[str]) -> None:
    """No account is checkpointed ahead of the global accumulator."""
    stored = pool.period().reward_per_share_stored
    for account, checkpoint in pool.settlement.checkpoints().items():
        if checkpoint > stored:
            errors.append(
                f"Checkpoint for {account} ({checkpoint}) is ahead of "
                f"reward_per_share_stored ({stored})"
            )


def check_monotonic(
    pool: StakingRewardsPool,
    previous_reward_per_share: Optional[int],
    errors: List[str],
) -> None:
    """The accumulator has not gone backwards since a prior observation."""
    if previous_reward_per_share is None:
        return
    stored = pool.period().reward_per_share_stored
    if stored < previous_reward_per_share:
        errors.append(
            f"reward_per_share_stored decreased: {previous_reward_per_share} → {stored}"
        )


def check_solvency(pool: StakingRewardsPool, errors: List[str]) -> None:
    """Rewards already settled to accounts are covered by the reserve."""
    owed = pool.settlement.total_owed()
    reserve = pool.reward_reserve()
    if owed > reserve:
        errors.append(f"Settled rewards {owed} exceed reward reserve {reserve}")


def check_stake_custody(pool: StakingRewardsPool, errors: List[str]) -> None:
    """Stake asset held in custody covers every recorded stake."""
    custody = pool.stake_asset.balance_of(pool.address)
    if custody < pool.total_stake():
        errors.append(
            f"Stake custody {custody} is below total stake {pool.total_stake()}"
        )


def check_pool(
    pool: StakingRewardsPool,
    previous_reward_per_share: Optional[int] = None,
) -> List[str]:
    """Run every check. Returns an empty list if the pool is consistent."""
    errors: List[str] = []
    check_stake_totals(pool, errors)
    check_period(pool, errors)
    check_checkpoints(pool, errors)
    check_monotonic(pool, previous_reward_per_share, errors)
    check_solvency(pool, errors)
    check_stake_custody(pool, errors)
    return errors
