"""
Rewards distributor: authority-gated fan-out of a reward budget.

The owner queues `(recipient, amount)` entries; the authority later calls
`distribute(total)` on the distributor's cadence. For each entry, in insertion
order, the reward asset is moved from the distributor's custody into the
recipient ledger's custody and the recipient is told to open a new release
period for that amount.

Failure policy: sequential per-entry commit, no rollback (asset transfers are
externally irreversible).
- An entry leaves the pending list only once its transfer *and* its
  notification have succeeded.
- An entry whose transfer went through but whose notification failed is kept
  and marked `funded`; a retry re-notifies it without moving funds again.
- The failing error propagates; entries after it are left pending untouched.

`distribute` and the owner edits of the pending list share one non-reentrant
guard, so a recipient callback cannot reorder the list mid-iteration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional

from ..core.errors import AmountMismatch, InsufficientFunding, InvalidAmount, TransferRejected, Unauthorized
from ..core.fixed_point import is_int
from ..core.types import Event, LedgerEvent
from .clock import SystemClock
from .config import RewardflowConfig
from .guard import NonReentrantGuard
from .logging_utils import log_event
from .ports import Authorization, Clock, RewardRecipient, ValueTransferPort

logger = logging.getLogger(__name__)


@dataclass
class Distribution:
    recipient: RewardRecipient
    amount: int
    funded: bool = False

    @property
    def destination(self) -> str:
        return self.recipient.address


def _require_amount(amount: Any, *, name: str = "amount") -> int:
    if not is_int(amount):
        raise TypeError(f"{name} must be an int")
    if amount <= 0:
        raise InvalidAmount(f"{name}_must_be_positive", {name: amount})
    return int(amount)


class RewardsDistributor:
    def __init__(
        self,
        *,
        address: str,
        reward_port: ValueTransferPort,
        roles: Authorization,
        clock: Optional[Clock] = None,
        config: Optional[RewardflowConfig] = None,
    ) -> None:
        if not isinstance(address, str) or not address:
            raise ValueError("address must be a non-empty str")
        self._address = address
        self._reward_port = reward_port
        self._roles = roles
        self._clock = clock or SystemClock()
        self._max_distributions = (config or RewardflowConfig()).max_distributions
        self._pending: List[Distribution] = []
        self._guard = NonReentrantGuard(name=address)
        self._events: list[LedgerEvent] = []

    @property
    def address(self) -> str:
        return self._address

    @property
    def authority(self) -> Optional[str]:
        return getattr(self._roles, "authority", None)

    @property
    def distributions_length(self) -> int:
        return len(self._pending)

    @property
    def distributions(self) -> tuple[Distribution, ...]:
        return tuple(replace(d) for d in self._pending)

    @property
    def pending_total(self) -> int:
        return sum(d.amount for d in self._pending)

    @property
    def events(self) -> tuple[LedgerEvent, ...]:
        return tuple(self._events)

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def set_authority(self, caller: str, authority: str) -> None:
        self._require_owner(caller)
        self._roles.set_authority(authority)
        self._emit(Event.AUTHORITY_UPDATED, authority=authority)

    def add_distribution(self, caller: str, recipient: RewardRecipient, amount: int) -> int:
        """Queue an entry; returns the new number of pending entries."""
        self._require_owner(caller)
        amount = _require_amount(amount)
        with self._guard.hold("add_distribution"):
            if len(self._pending) >= self._max_distributions:
                raise ValueError(f"too many pending distributions (max {self._max_distributions})")
            self._pending.append(Distribution(recipient=recipient, amount=amount))
        self._emit(Event.DISTRIBUTION_ADDED, index=len(self._pending) - 1,
                   destination=recipient.address, amount=amount)
        return len(self._pending)

    def remove_distribution(self, caller: str, index: int) -> None:
        self._require_owner(caller)
        with self._guard.hold("remove_distribution"):
            entry = self._entry(index)
            del self._pending[index]
        self._emit(Event.DISTRIBUTION_REMOVED, index=index, destination=entry.destination, amount=entry.amount)

    def edit_distribution(self, caller: str, index: int, recipient: RewardRecipient, amount: int) -> None:
        self._require_owner(caller)
        amount = _require_amount(amount)
        with self._guard.hold("edit_distribution"):
            entry = self._entry(index)
            if entry.funded:
                raise ValueError(f"distribution {index} is already funded; remove it instead")
            self._pending[index] = Distribution(recipient=recipient, amount=amount)
        self._emit(Event.DISTRIBUTION_EDITED, index=index, destination=recipient.address, amount=amount)

    # ------------------------------------------------------------------
    # Authority operation
    # ------------------------------------------------------------------

    def distribute(self, caller: str, total_amount: int) -> int:
        """
        Fund and notify every pending entry; returns how many were delivered.

        Raises:
            Unauthorized: caller is not the authority.
            InvalidAmount: `total_amount <= 0`.
            AmountMismatch: `total_amount` differs from the pending sum.
            InsufficientFunding: custody cannot cover the unfunded entries.
            TransferRejected: a transfer to a recipient failed.
        """
        if not self._roles.is_authority(caller):
            raise Unauthorized("not_authority", {"caller": caller})
        total_amount = _require_amount(total_amount, name="total_amount")
        with self._guard.hold("distribute"):
            delivered = self._distribute(total_amount)
        self._emit(Event.REWARDS_DISTRIBUTED, total_amount=total_amount, entries=delivered)
        return delivered

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _distribute(self, total_amount: int) -> int:
        expected = self.pending_total
        if total_amount != expected:
            raise AmountMismatch("total_differs_from_entries", {"total_amount": total_amount, "expected": expected})

        unfunded = sum(d.amount for d in self._pending if not d.funded)
        custody = self._reward_port.custody_balance()
        if custody < unfunded:
            raise InsufficientFunding("distributor_custody_short", {"custody_balance": custody, "required": unfunded})

        delivered = 0
        while self._pending:
            entry = self._pending[0]
            try:
                self._deliver(entry)
            except Exception as exc:
                log_event(
                    logger,
                    "distribution_failed",
                    level=logging.WARNING,
                    distributor=self._address,
                    destination=entry.destination,
                    amount=entry.amount,
                    funded=entry.funded,
                    delivered=delivered,
                    remaining=len(self._pending),
                    error=str(exc),
                )
                raise
            self._pending.pop(0)
            delivered += 1
        return delivered

    def _deliver(self, entry: Distribution) -> None:
        if not entry.funded:
            if not self._reward_port.transfer_out(entry.destination, entry.amount):
                raise TransferRejected(
                    "distribution_transfer_failed",
                    {"destination": entry.destination, "amount": entry.amount},
                )
            entry.funded = True
        entry.recipient.notify_reward_amount(self._address, entry.amount)

    def _entry(self, index: int) -> Distribution:
        if not is_int(index) or not (0 <= index < len(self._pending)):
            raise IndexError(f"distribution index out of range: {index!r}")
        return self._pending[index]

    def _require_owner(self, caller: str) -> None:
        if not self._roles.is_owner(caller):
            raise Unauthorized("not_owner", {"caller": caller})

    def _emit(self, event: Event, **fields: Any) -> None:
        now = self._clock.now()
        self._events.append(LedgerEvent(event=event, timestamp=now, fields=fields))
        log_event(logger, event.value, distributor=self._address, timestamp=now, **fields)
