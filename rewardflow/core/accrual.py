"""
Reward-accrual kernel (functional core).

Time-weighted reward distribution in O(1) per operation:
- a global accumulator `reward_per_unit_stored` tracks cumulative reward per
  staked unit (scaled by `SCALE`) up to `last_update_time`,
- each account remembers the accumulator value it last observed, so its
  earnings since then are `balance * (now_value - paid_value) / SCALE`.

Every function is pure: it takes a `RewardState` (plus the stake figures the
caller owns) and returns new immutable values. The imperative shell
(`rewardflow.integration.staking_rewards`) is responsible for ordering:
checkpoint with the pre-mutation stake total, then mutate.
"""

from __future__ import annotations

from dataclasses import replace

from .errors import InsufficientFunding, InvalidAmount, RewardPeriodActive
from .fixed_point import SCALE, mul_div_floor, require_int
from .types import AccountSnapshot, RewardState


def last_time_applicable(state: RewardState, now: int) -> int:
    """Reward stops accruing at `period_finish`."""
    return min(now, state.period_finish)


def reward_per_unit(state: RewardState, total_staked: int, now: int) -> int:
    """Accumulator value at `now` given the current stake total.

    With nothing staked there is nobody to credit, so the stored value is
    returned unchanged (reward released while the pool is empty is not
    redistributed later).
    """
    applicable = last_time_applicable(state, now)
    if applicable < state.last_update_time:
        raise ValueError(
            f"clock moved backwards: applicable={applicable} < last_update_time={state.last_update_time}"
        )
    if total_staked == 0:
        return state.reward_per_unit_stored
    elapsed = applicable - state.last_update_time
    return state.reward_per_unit_stored + mul_div_floor(elapsed * state.reward_rate, SCALE, total_staked)


def _earned_with(reward_per_unit_now: int, snapshot: AccountSnapshot, balance: int) -> int:
    delta = reward_per_unit_now - snapshot.reward_per_unit_paid
    if delta < 0:
        raise ValueError("account snapshot is ahead of the global accumulator")
    return mul_div_floor(balance, delta, SCALE) + snapshot.accrued_rewards


def earned(
    state: RewardState,
    snapshot: AccountSnapshot,
    balance: int,
    total_staked: int,
    now: int,
) -> int:
    """Reward owed to one account at `now` (accrued + not yet checkpointed)."""
    return _earned_with(reward_per_unit(state, total_staked, now), snapshot, balance)


def checkpoint(state: RewardState, total_staked: int, now: int) -> RewardState:
    """Fold elapsed reward growth into the stored accumulator.

    Idempotent at a fixed timestamp: a second call sees zero elapsed time.
    """
    applicable = last_time_applicable(state, now)
    stored = reward_per_unit(state, total_staked, now)
    released = 0
    if total_staked > 0:
        released = (applicable - state.last_update_time) * state.reward_rate
    return replace(
        state,
        reward_per_unit_stored=stored,
        last_update_time=applicable,
        unclaimed_released=state.unclaimed_released + released,
    )


def checkpoint_account(
    state: RewardState,
    snapshot: AccountSnapshot,
    balance: int,
    total_staked: int,
    now: int,
) -> tuple[RewardState, AccountSnapshot]:
    """Global checkpoint followed by the account's snapshot update."""
    next_state = checkpoint(state, total_staked, now)
    stored = next_state.reward_per_unit_stored
    next_snapshot = AccountSnapshot(
        reward_per_unit_paid=stored,
        accrued_rewards=_earned_with(stored, snapshot, balance),
    )
    return next_state, next_snapshot


def notify_reward(
    state: RewardState,
    amount: int,
    total_staked: int,
    now: int,
    custody_balance: int,
) -> RewardState:
    """
    Open a new release period funded by `amount`.

    Mid-period, the unreleased remainder of the running period is rolled into
    the new rate instead of being discarded.

    `custody_balance` is the reward asset held by the ledger. Reward already
    released to stakers but not yet claimed is owed out of that balance, so
    only the rest is available to back the new period.

    Raises:
        InvalidAmount: `amount` is negative.
        InsufficientFunding: `reward_rate * rewards_duration` would exceed the
            reward asset available in custody.
    """
    if require_int(amount, name="amount", non_negative=False) < 0:
        raise InvalidAmount("negative_reward", {"amount": amount})
    require_int(custody_balance, name="custody_balance")

    base = checkpoint(state, total_staked, now)
    duration = base.rewards_duration

    if now >= base.period_finish:
        rate = amount // duration
    else:
        remaining = base.period_finish - now
        leftover = remaining * base.reward_rate
        rate = (amount + leftover) // duration

    available = custody_balance - base.unclaimed_released
    # Exact in Python ints; equivalent to `rate <= available // duration`.
    if rate * duration > available:
        raise InsufficientFunding(
            "reward_rate_exceeds_custody",
            {
                "reward_rate": rate,
                "rewards_duration": duration,
                "custody_balance": custody_balance,
                "unclaimed_released": base.unclaimed_released,
            },
        )

    return replace(
        base,
        reward_rate=rate,
        last_update_time=now,
        period_finish=now + duration,
    )


def record_payment(state: RewardState, amount: int) -> RewardState:
    """Account for `amount` of released reward leaving custody."""
    if amount < 0:
        raise ValueError(f"payment must be non-negative: {amount}")
    if amount > state.unclaimed_released:
        raise ValueError(
            f"payment {amount} exceeds released-but-unclaimed reward {state.unclaimed_released}"
        )
    return replace(state, unclaimed_released=state.unclaimed_released - amount)


def reward_for_duration(state: RewardState) -> int:
    """Total reward released over one full period at the current rate."""
    return state.reward_rate * state.rewards_duration


def update_rewards_duration(state: RewardState, rewards_duration: int, now: int) -> RewardState:
    if now < state.period_finish:
        raise RewardPeriodActive(
            "period_not_finished",
            {"now": now, "period_finish": state.period_finish},
        )
    if require_int(rewards_duration, name="rewards_duration", non_negative=False) <= 0:
        raise InvalidAmount("rewards_duration_must_be_positive", {"rewards_duration": rewards_duration})
    return replace(state, rewards_duration=rewards_duration)
