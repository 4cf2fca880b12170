"""
Per-account accrual snapshots.

Entries are created lazily on an account's first checkpoint and are never
dropped, so unclaimed rewards stay claimable after a full withdrawal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from ..core.types import AccountSnapshot
from .stakes import AccountId

_EMPTY = AccountSnapshot()


@dataclass
class SnapshotTable:
    """Mutable mapping: account -> AccountSnapshot."""

    _snapshots: Dict[AccountId, AccountSnapshot] = field(default_factory=dict)

    def get(self, account: AccountId) -> AccountSnapshot:
        return self._snapshots.get(account, _EMPTY)

    def put(self, account: AccountId, snapshot: AccountSnapshot) -> None:
        if not isinstance(snapshot, AccountSnapshot):
            raise TypeError("snapshot must be an AccountSnapshot")
        self._snapshots[account] = snapshot

    def discard(self, account: AccountId) -> None:
        self._snapshots.pop(account, None)

    def known(self, account: AccountId) -> bool:
        return account in self._snapshots

    def get_all(self) -> Mapping[AccountId, AccountSnapshot]:
        # Shallow copy so callers can iterate while the ledger mutates.
        return dict(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)
