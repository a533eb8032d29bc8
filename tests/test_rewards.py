"""
Tests for zilstake/protocol/rewards.py

Tests the cycle-prorated reward accrual for legacy SSN delegations.
"""

import pytest

from zilstake.protocol.rewards import (
    CycleBookkeeping,
    CycleDeltas,
    CycleTotal,
    compute_position_reward,
    compute_reward,
    cycle_reward,
    effective_stake_by_cycle,
    needed_cycles,
)


# ============================================================================
# TEST DATA
# ============================================================================

TOTALS_6_7 = {
    6: CycleTotal(total_stake=100000, total_reward=1000),
    7: CycleTotal(total_stake=100000, total_reward=2000),
}


# ============================================================================
# NEEDED CYCLES TESTS
# ============================================================================

class TestNeededCycles:
    """Tests for the unclaimed cycle range."""

    def test_range_is_half_open(self):
        assert needed_cycles(5, 7) == [6, 7]

    def test_nothing_unclaimed(self):
        assert needed_cycles(7, 7) == []

    def test_withdraw_ahead_of_reward(self):
        assert needed_cycles(9, 7) == []


# ============================================================================
# EFFECTIVE STAKE TESTS
# ============================================================================

class TestEffectiveStake:
    """Tests for cumulative effective stake reconstruction."""

    def test_direct_deposit_effective_next_cycle(self):
        effective = effective_stake_by_cycle(4, {2: 100}, {})
        assert effective[2] == 0
        assert effective[3] == 100
        assert effective[4] == 100

    def test_buffered_deposit_takes_two_cycles(self):
        effective = effective_stake_by_cycle(5, {}, {2: 50})
        assert effective[3] == 0
        assert effective[4] == 50
        assert effective[5] == 50

    def test_cumulative(self):
        effective = effective_stake_by_cycle(4, {0: 10, 1: 20}, {1: 5})
        assert effective[1] == 10
        assert effective[2] == 30
        assert effective[3] == 35
        assert effective[4] == 35

    def test_cycle_zero_is_empty(self):
        assert effective_stake_by_cycle(0, {0: 100}, {}) == {0: 0}

    def test_negative_keys_are_ignored(self):
        effective = effective_stake_by_cycle(3, {-1: 999}, {-1: 999, -2: 999})
        assert effective == {0: 0, 1: 0, 2: 0, 3: 0}

    def test_buffered_at_minus_one_never_reaches_cycle_one(self):
        effective = effective_stake_by_cycle(2, {}, {-1: 1000, 0: 7})
        assert effective[1] == 0
        assert effective[2] == 7


# ============================================================================
# CYCLE REWARD TESTS
# ============================================================================

class TestCycleReward:
    """Tests for one cycle's share."""

    def test_proportional_share(self):
        assert cycle_reward(1500, CycleTotal(100000, 1000)) == 15

    def test_truncates(self):
        # 333 * 10 / 1000 = 3.33
        assert cycle_reward(333, CycleTotal(1000, 10)) == 3

    def test_missing_totals(self):
        assert cycle_reward(1500, None) == 0

    def test_zero_total_stake(self):
        assert cycle_reward(1500, CycleTotal(0, 1000)) == 0


# ============================================================================
# COMPUTE REWARD TESTS
# ============================================================================

class TestComputeReward:
    """Tests for the full reward calculation."""

    def test_two_unclaimed_cycles(self):
        """Direct 1000 at cycle 5 and buffered 500 at cycle 4 both land at cycle 6."""
        reward = compute_reward(5, 7, {5: 1000}, {4: 500}, {}, TOTALS_6_7)
        # effective[6] = effective[7] = 1500 -> 15 + 30
        assert reward == 45

    def test_two_unclaimed_cycles_larger_direct(self):
        reward = compute_reward(5, 7, {5: 3000}, {4: 500}, {}, TOTALS_6_7)
        # effective 3500 -> 35 + 70
        assert reward == 105

    def test_negative_buffered_key_earns_nothing(self):
        totals = {1: CycleTotal(1000, 1000)}
        assert compute_reward(0, 1, {}, {-1: 1000}, {}, totals) == 0

    def test_already_claimed(self):
        totals = {7: CycleTotal(100000, 2000)}
        assert compute_reward(7, 7, {1: 10 ** 12}, {}, {}, totals) == 0

    def test_withdraw_ahead_of_reward(self):
        assert compute_reward(8, 7, {5: 1000}, {}, {}, TOTALS_6_7) == 0

    def test_missing_cycle_totals_contribute_zero(self):
        totals = {7: CycleTotal(100000, 2000)}
        assert compute_reward(5, 7, {5: 1000}, {}, {}, totals) == 20

    def test_zero_total_stake_contributes_zero(self):
        totals = {
            6: CycleTotal(0, 1000),
            7: CycleTotal(100000, 2000),
        }
        assert compute_reward(5, 7, {5: 1000}, {}, {}, totals) == 20

    def test_deposits_before_withdraw_count(self):
        """Stake deposited long before the last withdrawal still earns."""
        totals = {10: CycleTotal(10000, 100)}
        assert compute_reward(9, 10, {1: 1000}, {}, {}, totals) == 10

    def test_buffered_latency(self):
        totals = {
            6: CycleTotal(1000, 1000),
            7: CycleTotal(1000, 1000),
        }
        # effective[6] = 100 (direct at 5), effective[7] = 200 (buffered at 5)
        assert compute_reward(5, 7, {5: 100}, {5: 100}, {}, totals) == 300

    def test_truncation_per_cycle(self):
        totals = {
            2: CycleTotal(1000, 10),
            3: CycleTotal(1000, 10),
        }
        # 3.33 truncated twice, not 6.66 truncated once
        assert compute_reward(1, 3, {0: 333}, {}, {}, totals) == 6

    def test_large_values_stay_exact(self):
        stake = 10 ** 30 + 7
        totals = {2: CycleTotal(10 ** 31, 10 ** 25)}
        expected = stake * 10 ** 25 // 10 ** 31
        assert compute_reward(1, 2, {1: stake}, {}, {}, totals) == expected

    def test_historical_stake_does_not_change_result(self):
        with_snapshot = compute_reward(5, 7, {5: 1000}, {4: 500}, {7: 42}, TOTALS_6_7)
        without = compute_reward(5, 7, {5: 1000}, {4: 500}, None, TOTALS_6_7)
        assert with_snapshot == without == 45

    def test_deterministic(self):
        args = (5, 7, {5: 3000}, {4: 500}, {}, TOTALS_6_7)
        assert compute_reward(*args) == compute_reward(*args)

    def test_inputs_not_mutated(self):
        direct = {5: 3000}
        buffered = {4: 500}
        compute_reward(5, 7, direct, buffered, {}, TOTALS_6_7)
        assert direct == {5: 3000}
        assert buffered == {4: 500}


# ============================================================================
# POSITION REWARD TESTS
# ============================================================================

class TestComputePositionReward:
    """Tests for the record-based wrapper."""

    def test_matches_compute_reward(self):
        bookkeeping = CycleBookkeeping(last_reward_cycle=7, last_withdraw_cycle=5)
        deltas = CycleDeltas(direct={5: 3000}, buffered={4: 500})
        assert compute_position_reward(bookkeeping, deltas, TOTALS_6_7) == 105

    def test_has_unclaimed_cycles(self):
        assert CycleBookkeeping(7, 5).has_unclaimed_cycles
        assert not CycleBookkeeping(7, 7).has_unclaimed_cycles

    def test_empty_deltas(self):
        bookkeeping = CycleBookkeeping(last_reward_cycle=7, last_withdraw_cycle=5)
        assert compute_position_reward(bookkeeping, CycleDeltas(), TOTALS_6_7) == 0
