# [TESTER] v1

from __future__ import annotations

import random

import pytest

from rewardflow.core.accrual import (
    checkpoint,
    checkpoint_account,
    earned,
    last_time_applicable,
    notify_reward,
    record_payment,
    reward_for_duration,
    reward_per_unit,
    update_rewards_duration,
)
from rewardflow.core.errors import InsufficientFunding, InvalidAmount, RewardPeriodActive
from rewardflow.core.fixed_point import SCALE, SECONDS_PER_DAY, to_units
from rewardflow.core.types import AccountSnapshot, RewardState

DAY = SECONDS_PER_DAY
WEEK = 7 * DAY


def _funded(amount: int, *, total: int = 0, now: int = 0) -> RewardState:
    return notify_reward(RewardState(), amount, total, now, amount)


def test_notify_from_idle_sets_rate_and_period() -> None:
    s = _funded(10 * WEEK, now=500)
    assert s.reward_rate == 10
    assert s.last_update_time == 500
    assert s.period_finish == 500 + WEEK
    assert reward_for_duration(s) == 10 * WEEK


def test_last_time_applicable_clamps_to_period_finish() -> None:
    s = _funded(10 * WEEK)
    assert last_time_applicable(s, DAY) == DAY
    assert last_time_applicable(s, 2 * WEEK) == WEEK


def test_reward_per_unit_accumulates_and_stops_at_finish() -> None:
    s = _funded(10 * WEEK)
    assert reward_per_unit(s, 100, 0) == 0
    assert reward_per_unit(s, 100, DAY) == 10 * DAY * SCALE // 100
    assert reward_per_unit(s, 100, 2 * WEEK) == reward_per_unit(s, 100, WEEK)


def test_reward_per_unit_with_empty_pool_is_frozen() -> None:
    s = _funded(10 * WEEK)
    assert reward_per_unit(s, 0, DAY) == s.reward_per_unit_stored == 0
    # Released reward is not counted as owed while nobody is staked.
    assert checkpoint(s, 0, DAY).unclaimed_released == 0


def test_reward_per_unit_rejects_clock_regression() -> None:
    s = checkpoint(_funded(10 * WEEK), 100, DAY)
    with pytest.raises(ValueError):
        reward_per_unit(s, 100, DAY - 1)


def test_checkpoint_is_idempotent_at_fixed_time() -> None:
    s = _funded(10 * WEEK)
    once = checkpoint(s, 100, DAY)
    assert once.last_update_time == DAY
    assert once.unclaimed_released == 10 * DAY
    assert checkpoint(once, 100, DAY) == once


def test_earned_and_checkpoint_account() -> None:
    s = _funded(10 * WEEK)
    snap = AccountSnapshot()
    assert earned(s, snap, 40, 100, DAY) == 4 * DAY

    s2, snap2 = checkpoint_account(s, snap, 40, 100, DAY)
    assert snap2.reward_per_unit_paid == s2.reward_per_unit_stored
    assert snap2.accrued_rewards == 4 * DAY
    # Nothing new accrues at the same instant.
    assert earned(s2, snap2, 40, 100, DAY) == 4 * DAY


def test_earned_rejects_snapshot_ahead_of_accumulator() -> None:
    s = _funded(10 * WEEK)
    with pytest.raises(ValueError):
        earned(s, AccountSnapshot(reward_per_unit_paid=1), 1, 1, 0)


def test_concrete_week_budget_one_day() -> None:
    stake = to_units(100)
    budget = to_units(5000)
    s = notify_reward(RewardState(), budget, stake, 0, budget)
    assert s.reward_rate == budget // WEEK

    got = earned(s, AccountSnapshot(), stake, stake, DAY)
    assert got == stake * (DAY * s.reward_rate * SCALE // stake) // SCALE
    # ~714.2857 tokens, under-credited by rounding only.
    assert got <= budget // 7
    assert budget // 7 - got < 10**6


def test_mid_period_top_up_rolls_over_leftover() -> None:
    s = _funded(10 * WEEK, total=100)
    half = WEEK // 2
    # Custody holds both budgets; half of the first has been released.
    custody = 20 * WEEK
    s2 = notify_reward(s, 10 * WEEK, 100, half, custody)

    assert s2.reward_rate == (10 * WEEK + (WEEK - half) * 10) // WEEK == 15
    assert s2.period_finish == half + WEEK
    assert s2.unclaimed_released == 10 * half
    # Released so far + the new period's full release == both budgets.
    assert s2.unclaimed_released + reward_for_duration(s2) == custody


def test_mid_period_top_up_rejects_one_unit_short() -> None:
    s = _funded(10 * WEEK, total=100)
    with pytest.raises(InsufficientFunding) as ei:
        notify_reward(s, 10 * WEEK, 100, WEEK // 2, 20 * WEEK - 1)
    assert ei.value.details["unclaimed_released"] == 10 * (WEEK // 2)


def test_notify_rejects_rate_exceeding_custody() -> None:
    with pytest.raises(InsufficientFunding):
        notify_reward(RewardState(), 10 * WEEK, 0, 0, 10 * WEEK - 1)


def test_notify_rejects_negative_amount() -> None:
    with pytest.raises(InvalidAmount):
        notify_reward(RewardState(), -1, 0, 0, 0)


def test_notify_zero_amount_opens_empty_period() -> None:
    s = notify_reward(RewardState(), 0, 0, 10, 0)
    assert s.reward_rate == 0
    assert s.period_finish == 10 + WEEK


def test_notify_leaves_input_state_untouched() -> None:
    s = _funded(10 * WEEK, total=100)
    before = s
    notify_reward(s, 10 * WEEK, 100, DAY, 20 * WEEK)
    assert s == before


def test_record_payment_bounds() -> None:
    s = checkpoint(_funded(10 * WEEK), 100, DAY)
    paid = record_payment(s, 10 * DAY)
    assert paid.unclaimed_released == 0
    with pytest.raises(ValueError):
        record_payment(s, 10 * DAY + 1)
    with pytest.raises(ValueError):
        record_payment(s, -1)


def test_update_rewards_duration() -> None:
    s = _funded(10 * WEEK)
    with pytest.raises(RewardPeriodActive):
        update_rewards_duration(s, DAY, WEEK - 1)
    assert update_rewards_duration(s, DAY, WEEK).rewards_duration == DAY
    with pytest.raises(InvalidAmount):
        update_rewards_duration(s, 0, WEEK)


def test_full_period_converges_to_budget() -> None:
    rng = random.Random(1337)
    for _ in range(25):
        balances = [rng.randint(1, 10**21) for _ in range(rng.randint(1, 6))]
        total = sum(balances)
        budget = rng.randint(WEEK, 10**24)
        s = notify_reward(RewardState(), budget, total, 0, budget)
        released = reward_for_duration(s)

        paid = sum(earned(s, AccountSnapshot(), b, total, WEEK + rng.randint(0, DAY)) for b in balances)

        assert paid <= released <= budget
        assert released - paid <= total // SCALE + len(balances)
