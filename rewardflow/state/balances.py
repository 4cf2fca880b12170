"""
Multi-asset balance tracking with deterministic ordering.

Implements BalanceTable[AccountId, AssetId] -> Amount. Backs the in-memory
asset ledger used as the reference value-transfer collaborator.
"""

from typing import Dict, Tuple

from .stakes import AccountId, Amount

AssetId = str


class BalanceTable:
    """
    Deterministic balance table mapping (account, asset) -> amount.

    Note: this class stores balances in a plain dict. Callers that hash or
    serialize balances must sort keys explicitly.
    """

    def __init__(self):
        self._balances: Dict[Tuple[AccountId, AssetId], Amount] = {}

    def get(self, account: AccountId, asset: AssetId) -> Amount:
        """Get balance for (account, asset). Returns 0 if not found."""
        return self._balances.get((account, asset), 0)

    def set(self, account: AccountId, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (account, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop((account, asset), None)
        else:
            self._balances[(account, asset)] = amount

    def add(self, account: AccountId, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(account, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(account, asset, new_balance)

    def subtract(self, account: AccountId, asset: AssetId, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account, asset, -delta)

    def get_balances_for_asset(self, asset: AssetId) -> Dict[AccountId, Amount]:
        result = {}
        for (account, a), amount in self._balances.items():
            if a == asset:
                result[account] = amount
        return result

    def total_supply(self, asset: AssetId) -> Amount:
        return sum(self.get_balances_for_asset(asset).values())

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
