"""
In-memory fungible-asset ledger and its custody adapter.

`InMemoryAssetLedger` is the reference value-transfer collaborator: balances
per (account, asset), spender allowances, and transfers that either move the
full amount or report failure. `CustodyPort` exposes one custodian's view of
one asset through the `ValueTransferPort` interface the staking ledger
consumes.
"""

from __future__ import annotations

import logging
from typing import Dict, Tuple

from ..core.fixed_point import require_int
from ..state.balances import AssetId, BalanceTable
from .logging_utils import log_event

logger = logging.getLogger(__name__)


class InMemoryAssetLedger:
    def __init__(self) -> None:
        self._balances = BalanceTable()
        self._allowances: Dict[Tuple[str, str, AssetId], int] = {}

    def mint(self, account: str, asset: AssetId, amount: int) -> None:
        self._balances.add(account, asset, require_int(amount, name="amount"))

    def balance_of(self, account: str, asset: AssetId) -> int:
        return self._balances.get(account, asset)

    def total_supply(self, asset: AssetId) -> int:
        return self._balances.total_supply(asset)

    def approve(self, owner: str, spender: str, asset: AssetId, amount: int) -> None:
        self._allowances[(owner, spender, asset)] = require_int(amount, name="amount")

    def allowance(self, owner: str, spender: str, asset: AssetId) -> int:
        return self._allowances.get((owner, spender, asset), 0)

    def transfer(self, sender: str, recipient: str, asset: AssetId, amount: int) -> bool:
        amount = require_int(amount, name="amount")
        if self._balances.get(sender, asset) < amount:
            log_event(logger, "transfer_rejected", reason="balance", sender=sender, asset=asset, amount=amount,
                      level=logging.DEBUG)
            return False
        self._balances.subtract(sender, asset, amount)
        self._balances.add(recipient, asset, amount)
        return True

    def transfer_from(self, spender: str, owner: str, recipient: str, asset: AssetId, amount: int) -> bool:
        """Move `amount` of `owner`'s asset on behalf of `spender` (allowance-checked)."""
        amount = require_int(amount, name="amount")
        allowed = self.allowance(owner, spender, asset)
        if allowed < amount:
            log_event(logger, "transfer_rejected", reason="allowance", owner=owner, spender=spender, asset=asset,
                      amount=amount, level=logging.DEBUG)
            return False
        if not self.transfer(owner, recipient, asset, amount):
            return False
        self._allowances[(owner, spender, asset)] = allowed - amount
        return True


class CustodyPort:
    """`ValueTransferPort` over one custodian account for one asset."""

    def __init__(self, ledger: InMemoryAssetLedger, asset_id: AssetId, custodian: str) -> None:
        if not isinstance(asset_id, str) or not asset_id:
            raise ValueError("asset_id must be a non-empty str")
        if not isinstance(custodian, str) or not custodian:
            raise ValueError("custodian must be a non-empty str")
        self._ledger = ledger
        self._asset_id = asset_id
        self._custodian = custodian

    @property
    def asset_id(self) -> AssetId:
        return self._asset_id

    @property
    def custodian(self) -> str:
        return self._custodian

    def transfer_in(self, account: str, amount: int) -> bool:
        return self._ledger.transfer_from(self._custodian, account, self._custodian, self._asset_id, amount)

    def transfer_out(self, account: str, amount: int) -> bool:
        return self._ledger.transfer(self._custodian, account, self._asset_id, amount)

    def custody_balance(self) -> int:
        return self._ledger.balance_of(self._custodian, self._asset_id)

    def __repr__(self) -> str:
        return f"CustodyPort(asset={self._asset_id!r}, custodian={self._custodian!r})"
