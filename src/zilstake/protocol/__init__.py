"""
zilstake/protocol - Staking accounting.

- rewards: cycle-prorated reward accrual for legacy SSN delegations
- positions: merging, statistics and ordering of positions across pool models
"""

from .rewards import (
    CycleTotal,
    CycleBookkeeping,
    CycleDeltas,
    compute_reward,
    compute_position_reward,
    effective_stake_by_cycle,
    needed_cycles,
)
from .positions import (
    PendingClaim,
    PoolStatistics,
    StakePosition,
    StakeSummary,
    aggregate,
    attach_statistics,
    estimate_apr,
    format_amount,
    format_duration,
    sort_positions,
    summarize,
    vote_power,
)

__all__ = [
    # Rewards
    "CycleTotal",
    "CycleBookkeeping",
    "CycleDeltas",
    "compute_reward",
    "compute_position_reward",
    "effective_stake_by_cycle",
    "needed_cycles",
    # Positions
    "PendingClaim",
    "PoolStatistics",
    "StakePosition",
    "StakeSummary",
    "aggregate",
    "attach_statistics",
    "estimate_apr",
    "format_amount",
    "format_duration",
    "sort_positions",
    "summarize",
    "vote_power",
]
