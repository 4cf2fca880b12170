"""
Core reward-accrual algorithms (pure, integer-only).
"""

from .accrual import (
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
from .errors import (
    AmountMismatch,
    InsufficientBalance,
    InsufficientFunding,
    InvalidAmount,
    LedgerError,
    Reentrant,
    RewardPeriodActive,
    TransferRejected,
    Unauthorized,
)
from .fixed_point import DEFAULT_REWARDS_DURATION, SCALE, SECONDS_PER_DAY, UNIT, to_units
from .types import AccountSnapshot, Event, LedgerEvent, RewardState

__all__ = [
    "checkpoint",
    "checkpoint_account",
    "earned",
    "last_time_applicable",
    "notify_reward",
    "record_payment",
    "reward_for_duration",
    "reward_per_unit",
    "update_rewards_duration",
    "AmountMismatch",
    "InsufficientBalance",
    "InsufficientFunding",
    "InvalidAmount",
    "LedgerError",
    "Reentrant",
    "RewardPeriodActive",
    "TransferRejected",
    "Unauthorized",
    "DEFAULT_REWARDS_DURATION",
    "SCALE",
    "SECONDS_PER_DAY",
    "UNIT",
    "to_units",
    "AccountSnapshot",
    "Event",
    "LedgerEvent",
    "RewardState",
]
