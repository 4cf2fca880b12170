"""Invariant checkers for the reward-accrual ledger.

Each function returns True when the invariant holds. `check_all()` returns the
list of violated invariant IDs for a `RewardState` (empty = all pass);
`check_stakes()` covers the stake table. The O(n) solvency audit lives in the
shell because it needs the reward custody balance.
"""

from __future__ import annotations

from typing import Callable, Iterable

from .types import RewardState


def inv_duration_positive(s: RewardState) -> bool:
    return s.rewards_duration > 0


def inv_rate_non_negative(s: RewardState) -> bool:
    return s.reward_rate >= 0


def inv_update_not_after_finish(s: RewardState) -> bool:
    # Checkpoints clamp to period_finish; notify sets last_update < finish.
    return s.last_update_time <= s.period_finish


def inv_idle_state_zeroed(s: RewardState) -> bool:
    if s.period_finish != 0:
        return True
    return s.reward_rate == 0 and s.reward_per_unit_stored == 0


INVARIANT_REGISTRY: dict[str, Callable[[RewardState], bool]] = {
    "inv_duration_positive": inv_duration_positive,
    "inv_rate_non_negative": inv_rate_non_negative,
    "inv_update_not_after_finish": inv_update_not_after_finish,
    "inv_idle_state_zeroed": inv_idle_state_zeroed,
}


def check_all(state: RewardState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]


def inv_total_matches_balances(total_staked: int, balances: Iterable[int]) -> bool:
    return total_staked == sum(balances)


def check_stakes(total_staked: int, balances: Iterable[int]) -> list[str]:
    values = list(balances)
    violations = []
    if any(b < 0 for b in values):
        violations.append("inv_balances_non_negative")
    if not inv_total_matches_balances(total_staked, values):
        violations.append("inv_total_matches_balances")
    return violations


def inv_claims_covered(total_earned: int, custody_balance: int) -> bool:
    """Everything claimable right now can be paid from custody."""
    return total_earned <= custody_balance
