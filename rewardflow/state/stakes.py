"""
Stake balance tracking for one staking ledger.

Keeps per-account staked amounts together with their running total so
`total_staked` is O(1) and always equals the sum of balances.
"""

from __future__ import annotations

from typing import Dict

from ..core.errors import InsufficientBalance

# Type aliases
AccountId = str
Amount = int


class StakeTable:
    """
    Mutable mapping account -> staked amount, plus the total.

    Notes:
    - Balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    - Only `credit` / `debit` change balances; `total_staked` moves with them.
    """

    def __init__(self) -> None:
        self._balances: Dict[AccountId, Amount] = {}
        self._total: Amount = 0

    @property
    def total_staked(self) -> Amount:
        return self._total

    def balance_of(self, account: AccountId) -> Amount:
        """Staked balance of `account`. Returns 0 if not found."""
        return self._balances.get(account, 0)

    def credit(self, account: AccountId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Credit must be non-negative: {amount}")
        self._set(account, self.balance_of(account) + amount)

    def debit(self, account: AccountId, amount: Amount) -> None:
        """
        Subtract a non-negative amount from a balance.

        Raises:
            InsufficientBalance: If `amount` exceeds the staked balance.
        """
        if amount < 0:
            raise ValueError(f"Debit must be non-negative: {amount}")
        current = self.balance_of(account)
        if amount > current:
            raise InsufficientBalance(
                "withdraw_exceeds_stake",
                {"account": account, "balance": current, "amount": amount},
            )
        self._set(account, current - amount)

    def restore(self, account: AccountId, amount: Amount) -> None:
        """Reset one balance to a previously observed value (rollback path)."""
        if amount < 0:
            raise ValueError(f"Stake balance cannot be negative: {amount}")
        self._set(account, amount)

    def _set(self, account: AccountId, amount: Amount) -> None:
        self._total += amount - self.balance_of(account)
        if amount == 0:
            self._balances.pop(account, None)
        else:
            self._balances[account] = amount

    def get_all_balances(self) -> Dict[AccountId, Amount]:
        """Return all non-zero stake balances."""
        return dict(self._balances)

    def verify_total(self) -> bool:
        return self._total == sum(self._balances.values())

    def __len__(self) -> int:
        return len(self._balances)

    def __repr__(self) -> str:
        return f"StakeTable({len(self._balances)} entries, total={self._total})"
