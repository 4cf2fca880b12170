"""Data types for the reward-accrual kernel.

All state types are frozen dataclasses. Units/conventions:
- amounts are integer base units of the relevant asset,
- timestamps and durations are integer seconds,
- `reward_per_unit_*` values are scaled by `fixed_point.SCALE`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Mapping

from .fixed_point import DEFAULT_REWARDS_DURATION


@unique
class Event(Enum):
    """One member per observable ledger/distributor event."""

    REWARD_ADDED = "RewardAdded"
    STAKED = "Staked"
    WITHDRAWN = "Withdrawn"
    REWARD_PAID = "RewardPaid"
    REWARDS_DURATION_UPDATED = "RewardsDurationUpdated"
    REWARDS_DISTRIBUTION_UPDATED = "RewardsDistributionUpdated"
    DISTRIBUTION_ADDED = "RewardDistributionAdded"
    DISTRIBUTION_REMOVED = "RewardDistributionRemoved"
    DISTRIBUTION_EDITED = "RewardDistributionEdited"
    REWARDS_DISTRIBUTED = "RewardsDistributed"
    AUTHORITY_UPDATED = "AuthorityUpdated"


@dataclass(frozen=True)
class RewardState:
    """Global reward-rate state of one ledger."""

    rewards_duration: int = DEFAULT_REWARDS_DURATION
    reward_rate: int = 0
    period_finish: int = 0
    last_update_time: int = 0
    reward_per_unit_stored: int = 0
    # Reward released to stakers so far and not yet paid out. Upper bound on
    # the sum of all claimable rewards (floor rounding only lowers the latter).
    unclaimed_released: int = 0

    def __post_init__(self) -> None:
        if self.rewards_duration <= 0:
            raise ValueError(f"rewards_duration must be positive: {self.rewards_duration}")
        for name in (
            "reward_rate",
            "period_finish",
            "last_update_time",
            "reward_per_unit_stored",
            "unclaimed_released",
        ):
            v = getattr(self, name)
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")


@dataclass(frozen=True)
class AccountSnapshot:
    """Per-account accrual snapshot, updated only by a checkpoint or a claim."""

    reward_per_unit_paid: int = 0
    accrued_rewards: int = 0

    def __post_init__(self) -> None:
        if self.reward_per_unit_paid < 0:
            raise ValueError("reward_per_unit_paid must be non-negative")
        if self.accrued_rewards < 0:
            raise ValueError("accrued_rewards must be non-negative")


@dataclass(frozen=True)
class LedgerEvent:
    event: Event
    timestamp: int
    fields: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event.value, "timestamp": self.timestamp, **dict(self.fields)}
