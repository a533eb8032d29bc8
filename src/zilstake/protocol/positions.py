"""
zilstake/protocol/positions.py

Position aggregation.

Merges positions from the three accounting variants into one list:
- cycle-based (legacy SSN) positions, with rewards from rewards.compute_reward
- pool-contract (ZQ2 delegation) positions, decoded from view calls
- liquid positions: a token balance, zero reward by convention

Attaches derived pool statistics (vote power, APR estimate), drops empty
positions and sorts by stake descending, then name ascending.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, localcontext
from fractions import Fraction
from typing import Dict, Iterable, List, Optional

from ..config import Pool

logger = logging.getLogger("zilstake.protocol.positions")

# Significant digits for token-unit arithmetic: a uint256 amount has up to
# 78 digits plus 18 decimals, with room left for sums
DECIMAL_PRECISION = 120


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class PendingClaim:
    """An unbonding withdrawal that becomes claimable at a future block."""
    block_number: int
    amount: int

    def blocks_remaining(self, current_block: Optional[int]) -> Optional[int]:
        if current_block is None:
            return None
        return max(0, self.block_number - current_block)

    def eta(self, current_block: Optional[int], block_time: Optional[float]) -> Optional[timedelta]:
        """Estimated wait until the claim unlocks, from the remaining block count."""
        remaining = self.blocks_remaining(current_block)
        if remaining is None or block_time is None:
            return None
        return timedelta(seconds=remaining * block_time)


@dataclass
class PoolStatistics:
    """Pool-level figures used to derive vote power and APR; any may be missing."""
    pool_stake: Optional[int] = None
    network_stake: Optional[int] = None
    commission: Optional[float] = None  # fraction


@dataclass
class StakePosition:
    """
    One (account, pool) delegation.

    `reward` stays None for cycle-based positions until the detail phase
    computes it; aggregate() refuses to emit such a position.
    """
    pool: Pool
    stake: int = 0
    reward: Optional[int] = 0
    claimable: int = 0
    pending_claims: List[PendingClaim] = field(default_factory=list)
    commission: Optional[float] = None
    pool_stake: Optional[int] = None
    vote_power: Optional[float] = None
    apr: Optional[float] = None
    active: Optional[bool] = None

    @property
    def name(self) -> str:
        return self.pool.name

    @property
    def pending_total(self) -> int:
        return sum(claim.amount for claim in self.pending_claims)

    def has_value(self) -> bool:
        """True if any balance-like figure is nonzero."""
        return bool(self.stake or self.reward or self.claimable or self.pending_total)

    def to_dict(self, current_block: Optional[int] = None, block_time: Optional[float] = None) -> dict:
        return {
            "pool": self.pool.name,
            "address": self.pool.address,
            "model": self.pool.model.value,
            "liquid": self.pool.is_liquid,
            "symbol": self.pool.symbol,
            "decimals": self.pool.decimals,
            "stake": str(self.stake),
            "reward": str(self.reward or 0),
            "claimable": str(self.claimable),
            "pending_claims": [
                {
                    "block_number": claim.block_number,
                    "amount": str(claim.amount),
                    "eta_seconds": _seconds(claim.eta(current_block, block_time)),
                }
                for claim in self.pending_claims
            ],
            "commission": self.commission,
            "pool_stake": str(self.pool_stake) if self.pool_stake is not None else None,
            "vote_power": self.vote_power,
            "apr": self.apr,
            "active": self.active,
        }


@dataclass
class StakeSummary:
    """Totals in whole tokens, per symbol (liquid tokens are not ZIL)."""
    stake: Dict[str, Decimal] = field(default_factory=dict)
    reward: Dict[str, Decimal] = field(default_factory=dict)
    position_count: int = 0

    def to_dict(self) -> dict:
        return {
            "stake": {symbol: _plain(amount) for symbol, amount in self.stake.items()},
            "reward": {symbol: _plain(amount) for symbol, amount in self.reward.items()},
            "position_count": self.position_count,
        }


def _to_tokens(amount: int, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(amount).scaleb(-decimals)


def _seconds(delta: Optional[timedelta]) -> Optional[float]:
    return delta.total_seconds() if delta is not None else None


def _plain(amount: Decimal) -> str:
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return format(amount.normalize(), "f")


# ============================================================================
# DERIVED STATISTICS
# ============================================================================

def vote_power(pool_stake: Optional[int], network_stake: Optional[int]) -> Optional[float]:
    """Pool's share of network-wide stake."""
    if pool_stake is None or not network_stake:
        return None
    return pool_stake / network_stake


def estimate_apr(
    pool_stake: Optional[int],
    network_stake: Optional[int],
    commission: Optional[float],
    annual_emission: int,
    decimals: int,
) -> Optional[float]:
    """
    Best-effort APR estimate for delegators of one pool.

    apr = vote_power * annual_emission * (1 - commission) / pool_stake_in_tokens

    Not exact: assumes emission is split purely by stake share.
    """
    if pool_stake is None or commission is None:
        return None
    power = vote_power(pool_stake, network_stake)
    if power is None:
        return None
    stake_tokens = pool_stake / 10 ** decimals
    if stake_tokens <= 0:
        return None
    return power * annual_emission * (1 - commission) / stake_tokens


def attach_statistics(
    position: StakePosition,
    stats: PoolStatistics,
    annual_emission: int,
) -> StakePosition:
    """Copy pool statistics onto a position and derive what they allow."""
    position.pool_stake = stats.pool_stake
    position.commission = stats.commission
    position.vote_power = vote_power(stats.pool_stake, stats.network_stake)
    position.apr = estimate_apr(
        stats.pool_stake,
        stats.network_stake,
        stats.commission,
        annual_emission,
        position.pool.decimals,
    )
    return position


# ============================================================================
# AGGREGATION
# ============================================================================

def sort_positions(positions: Iterable[StakePosition]) -> List[StakePosition]:
    """Stake (in whole tokens) descending, ties by name ascending."""
    return sorted(positions, key=lambda p: (-Fraction(p.stake, 10 ** p.pool.decimals), p.name))


def aggregate(
    cycle_positions: Iterable[StakePosition] = (),
    contract_positions: Iterable[StakePosition] = (),
    liquid_positions: Iterable[StakePosition] = (),
) -> List[StakePosition]:
    """
    Merge positions from all accounting variants.

    Raises:
        ValueError: If a cycle-based position with stake has no computed reward
    """
    merged: List[StakePosition] = []
    emitted = set()

    for group in (cycle_positions, contract_positions, liquid_positions):
        for position in group:
            key = position.pool.address.lower()
            if key in emitted:
                logger.warning(f"Duplicate position for {position.name}, keeping the first")
                continue
            if position.pool.is_cycle_based and position.stake and position.reward is None:
                raise ValueError(f"Reward not computed for cycle-based pool {position.name}")
            if not position.has_value():
                logger.debug(f"Dropping empty position for {position.name}")
                continue
            emitted.add(key)
            merged.append(position)

    return sort_positions(merged)


def summarize(positions: Iterable[StakePosition]) -> StakeSummary:
    """Total stake and reward per token symbol."""
    summary = StakeSummary()
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        for position in positions:
            symbol = position.pool.symbol
            decimals = position.pool.decimals
            summary.stake[symbol] = summary.stake.get(symbol, Decimal(0)) + _to_tokens(position.stake, decimals)
            summary.reward[symbol] = summary.reward.get(symbol, Decimal(0)) + _to_tokens(position.reward or 0, decimals)
            summary.position_count += 1
    return summary


# ============================================================================
# FORMATTING
# ============================================================================

def format_amount(amount: int, decimals: int, places: int = 3) -> str:
    """
    Smallest-unit amount as grouped whole tokens.

    Example:
        format_amount(1234567890000000000000, 18) -> "1,234.568"
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        quantum = Decimal(1).scaleb(-places)
        tokens = _to_tokens(amount, decimals).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{tokens:,.{places}f}"


def format_duration(delta: timedelta) -> str:
    """
    Coarse human form of a wait, largest two units.

    Example:
        format_duration(timedelta(seconds=7500)) -> "2h 5m"
    """
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    parts = [(days, "d"), (hours, "h"), (minutes, "m"), (seconds, "s")]
    while parts[0][0] == 0:
        parts.pop(0)
    return " ".join(f"{value}{unit}" for value, unit in parts[:2])
