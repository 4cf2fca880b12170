"""
Interfaces of the external collaborators the ledger consumes.

The ledger never moves assets or decides roles itself; it talks to these
ports. In-memory implementations live in `asset_ledger.py`, `roles.py` and
`clock.py`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ValueTransferPort(Protocol):
    """Custody view of one fungible asset for one custodian.

    All amounts are non-negative integers in the asset's smallest unit.
    Transfers report failure by returning False (never by partial movement).
    """

    @property
    def asset_id(self) -> str: ...

    def transfer_in(self, account: str, amount: int) -> bool:
        """Pull `amount` from `account` into custody."""
        ...

    def transfer_out(self, account: str, amount: int) -> bool:
        """Push `amount` from custody to `account`."""
        ...

    def custody_balance(self) -> int: ...


@runtime_checkable
class Authorization(Protocol):
    def is_owner(self, identity: str) -> bool: ...

    def is_distributor(self, identity: str) -> bool: ...

    def is_authority(self, identity: str) -> bool: ...

    def set_distributor(self, identity: str) -> None: ...

    def set_authority(self, identity: str) -> None: ...


@runtime_checkable
class RewardRecipient(Protocol):
    """Anything the distributor can fund: a ledger identity plus its notify hook."""

    @property
    def address(self) -> str: ...

    def notify_reward_amount(self, caller: str, amount: int) -> None: ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        """Current time in integer seconds."""
        ...
