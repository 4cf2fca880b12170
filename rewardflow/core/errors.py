"""Error kinds raised by the staking ledger and the rewards distributor.

Every failure carries a stable ``code`` so shells (CLI, logs, snapshots of
receipts) can report it without matching on message text.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


class LedgerError(Exception):
    """Base class for all ledger failures. A failed operation is a no-op."""

    code = "ledger_error"

    def __init__(self, reason: str = "", details: Optional[Mapping[str, Any]] = None) -> None:
        self.reason = reason
        self.details = dict(details or {})
        super().__init__(f"{self.code}:{reason}" if reason else self.code)


class Unauthorized(LedgerError):
    """Caller lacks the role required by the entry point."""

    code = "unauthorized"


class InvalidAmount(LedgerError):
    """Zero or negative amount (or duration) where a positive one is required."""

    code = "invalid_amount"


class InsufficientBalance(LedgerError):
    """Withdraw exceeds the account's staked balance."""

    code = "insufficient_balance"


class InsufficientFunding(LedgerError):
    """A reward rate (or a distribution batch) exceeds the custodied asset."""

    code = "insufficient_funding"


class TransferRejected(LedgerError):
    """The value-transfer port refused to move the asset."""

    code = "transfer_rejected"


class AmountMismatch(LedgerError):
    """Distribution total disagrees with the sum of pending entries."""

    code = "amount_mismatch"


class Reentrant(LedgerError):
    """Nested call into a guarded entry point while another one is in progress."""

    code = "reentrant"


class RewardPeriodActive(LedgerError):
    """Reward duration cannot change before the current period finishes."""

    code = "reward_period_active"


ERROR_KINDS: tuple[type[LedgerError], ...] = (
    Unauthorized,
    InvalidAmount,
    InsufficientBalance,
    InsufficientFunding,
    TransferRejected,
    AmountMismatch,
    Reentrant,
    RewardPeriodActive,
)
