"""
zilstake/protocol/rewards.py

Cycle-prorated reward accrual for the legacy SSN staking model.

Each reward cycle the SSN's reward is split among delegators in proportion
to their effective stake at that cycle:

    reward(c) = effective(c) * total_reward(c) // total_stake(c)

Effective stake is cumulative. A direct deposit made during cycle c-1
becomes effective at cycle c; a buffered deposit takes one more cycle
(counted from c-2):

    effective(0) = 0
    effective(c) = effective(c-1) + direct(c-1) + buffered(c-2)

All arithmetic is on Python ints with floor division, matching the
contract's truncating Uint128 division exactly. No floats.

Usage:
    from zilstake.protocol.rewards import compute_reward, CycleTotal

    reward = compute_reward(
        last_withdraw_cycle=5,
        last_reward_cycle=7,
        direct_deltas={5: 3000},
        buffered_deltas={4: 500},
        historical_stake={},
        cycle_totals={6: CycleTotal(100000, 1000), 7: CycleTotal(100000, 2000)},
    )
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger("zilstake.protocol.rewards")


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class CycleTotal:
    """SSN-wide totals for one reward cycle."""
    total_stake: int
    total_reward: int


@dataclass(frozen=True)
class CycleBookkeeping:
    """Cycle counters for one (account, SSN) pair."""
    last_reward_cycle: int = 0     # network-wide
    last_withdraw_cycle: int = 0   # last cycle the account claimed at

    @property
    def has_unclaimed_cycles(self) -> bool:
        return self.last_reward_cycle > self.last_withdraw_cycle


@dataclass
class CycleDeltas:
    """Per-cycle deposits for one (account, SSN) pair, keyed by cycle number."""
    direct: Dict[int, int] = field(default_factory=dict)
    buffered: Dict[int, int] = field(default_factory=dict)


# ============================================================================
# CALCULATION
# ============================================================================

def needed_cycles(last_withdraw_cycle: int, last_reward_cycle: int) -> List[int]:
    """Cycles in (last_withdraw_cycle, last_reward_cycle], ascending."""
    if last_reward_cycle <= last_withdraw_cycle:
        return []
    return list(range(last_withdraw_cycle + 1, last_reward_cycle + 1))


def effective_stake_by_cycle(
    last_reward_cycle: int,
    direct_deltas: Mapping[int, int],
    buffered_deltas: Mapping[int, int],
) -> Dict[int, int]:
    """
    Effective delegated stake for every cycle 0..last_reward_cycle.

    Starts from cycle 1 regardless of which cycles are unclaimed, since
    deposits from earlier cycles carry forward. Offsets that fall below
    cycle 0 read as zero, whatever the maps hold at negative keys.
    """
    effective = {0: 0}
    for cycle in range(1, last_reward_cycle + 1):
        effective[cycle] = (
            effective[cycle - 1]
            + _delta_at(direct_deltas, cycle - 1)
            + _delta_at(buffered_deltas, cycle - 2)
        )
    return effective


def _delta_at(deltas: Mapping[int, int], cycle: int) -> int:
    if cycle < 0:
        return 0
    return deltas.get(cycle, 0)


def cycle_reward(stake: int, totals: Optional[CycleTotal]) -> int:
    """Delegator's share of one cycle; 0 when the cycle paid nothing."""
    if totals is None or totals.total_stake == 0:
        return 0
    return stake * totals.total_reward // totals.total_stake


def compute_reward(
    last_withdraw_cycle: int,
    last_reward_cycle: int,
    direct_deltas: Mapping[int, int],
    buffered_deltas: Mapping[int, int],
    historical_stake: Optional[Mapping[int, int]],
    cycle_totals: Mapping[int, CycleTotal],
) -> int:
    """
    Unclaimed reward for one delegation.

    Args:
        last_withdraw_cycle: Cycle of the account's last reward withdrawal
        last_reward_cycle: Latest cycle the network has paid out
        direct_deltas: cycle -> direct deposit made in that cycle
        buffered_deltas: cycle -> buffered deposit made in that cycle
        historical_stake: cycle -> recorded stake snapshot; informational,
                          effective stake is rebuilt from the deltas
        cycle_totals: cycle -> SSN totals for that cycle

    Returns:
        Reward in the pool's smallest unit
    """
    cycles = needed_cycles(last_withdraw_cycle, last_reward_cycle)
    if not cycles:
        return 0

    effective = effective_stake_by_cycle(last_reward_cycle, direct_deltas, buffered_deltas)

    total = 0
    for cycle in cycles:
        total += cycle_reward(effective[cycle], cycle_totals.get(cycle))

    if historical_stake:
        recorded = historical_stake.get(last_reward_cycle)
        if recorded is not None and recorded != effective[last_reward_cycle]:
            logger.debug(
                f"Stake snapshot at cycle {last_reward_cycle} ({recorded}) differs "
                f"from rebuilt effective stake ({effective[last_reward_cycle]})"
            )
    return total


def compute_position_reward(
    bookkeeping: CycleBookkeeping,
    deltas: CycleDeltas,
    cycle_totals: Mapping[int, CycleTotal],
    historical_stake: Optional[Mapping[int, int]] = None,
) -> int:
    """compute_reward() over the bookkeeping/deltas records."""
    return compute_reward(
        bookkeeping.last_withdraw_cycle,
        bookkeeping.last_reward_cycle,
        deltas.direct,
        deltas.buffered,
        historical_stake,
        cycle_totals,
    )
