"""
Staking ledger snapshot encoding.

Goals:
- Deterministic JSON serialization for persistence / hashing.
- Round-trippable into a live `StakingRewards` (given its collaborators).
- Explicit versioning.

Asset custody is not part of the snapshot: it lives with the value-transfer
collaborator. The event log is not persisted either.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from ..core.types import AccountSnapshot, RewardState
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.snapshots import SnapshotTable
from ..state.stakes import StakeTable
from .clock import SystemClock
from .ports import Authorization, Clock, ValueTransferPort
from .staking_rewards import StakingRewards


LEDGER_SNAPSHOT_VERSION = 1

_REWARD_STATE_FIELDS = tuple(f.name for f in fields(RewardState))


def _require_str(value: Any, *, name: str, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


@dataclass(frozen=True)
class LedgerSnapshot:
    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)

    def to_json_obj(self) -> Dict[str, Any]:
        return {"version": self.version, "data": self.data}


def snapshot_from_ledger(ledger: StakingRewards, *, version: int = LEDGER_SNAPSHOT_VERSION) -> LedgerSnapshot:
    if version != LEDGER_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported ledger snapshot version: {version}")

    stake_entries = [
        {"account": account, "amount": int(amount)}
        for account, amount in ledger._stakes.get_all_balances().items()
    ]
    stake_entries.sort(key=lambda e: e["account"])

    snapshot_entries = [
        {
            "account": account,
            "reward_per_unit_paid": int(s.reward_per_unit_paid),
            "accrued_rewards": int(s.accrued_rewards),
        }
        for account, s in ledger._snapshots.get_all().items()
    ]
    snapshot_entries.sort(key=lambda e: e["account"])

    state = ledger.reward_state
    data = {
        "address": ledger.address,
        "staking_asset": ledger.staking_asset,
        "reward_asset": ledger.reward_asset,
        "reward_state": {name: int(getattr(state, name)) for name in _REWARD_STATE_FIELDS},
        "stakes": stake_entries,
        "snapshots": snapshot_entries,
    }
    return LedgerSnapshot(version=version, data=data)


def _reward_state_from_obj(obj: Any) -> RewardState:
    if not isinstance(obj, Mapping):
        raise TypeError("reward_state must be an object")
    unknown = sorted(set(obj) - set(_REWARD_STATE_FIELDS))
    if unknown:
        raise ValueError(f"unknown reward_state fields: {unknown}")
    return RewardState(**{name: _require_int(obj[name], name=f"reward_state.{name}") for name in _REWARD_STATE_FIELDS})


def restore_ledger(
    snapshot: LedgerSnapshot | Mapping[str, Any],
    *,
    staking_port: ValueTransferPort,
    reward_port: ValueTransferPort,
    roles: Authorization,
    clock: Optional[Clock] = None,
) -> StakingRewards:
    """Rebuild a ledger from a snapshot (object or its `to_json_obj()` form)."""
    if isinstance(snapshot, LedgerSnapshot):
        version, data = snapshot.version, snapshot.data
    else:
        if not isinstance(snapshot, Mapping):
            raise TypeError("snapshot must be a LedgerSnapshot or a mapping")
        version, data = snapshot.get("version"), snapshot.get("data")
    if version != LEDGER_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported ledger snapshot version: {version!r}")
    if not isinstance(data, Mapping):
        raise TypeError("snapshot data must be an object")

    address = _require_str(data.get("address"), name="address")
    if _require_str(data.get("staking_asset"), name="staking_asset") != staking_port.asset_id:
        raise ValueError("staking_port asset does not match snapshot")
    if _require_str(data.get("reward_asset"), name="reward_asset") != reward_port.asset_id:
        raise ValueError("reward_port asset does not match snapshot")

    stakes = StakeTable()
    for i, entry in enumerate(data.get("stakes") or []):
        if not isinstance(entry, Mapping):
            raise TypeError(f"stakes[{i}] must be an object")
        account = _require_str(entry.get("account"), name=f"stakes[{i}].account")
        if stakes.balance_of(account):
            raise ValueError(f"duplicate stake entry for {account!r}")
        stakes.credit(account, _require_int(entry.get("amount"), name=f"stakes[{i}].amount"))

    snapshots = SnapshotTable()
    for i, entry in enumerate(data.get("snapshots") or []):
        if not isinstance(entry, Mapping):
            raise TypeError(f"snapshots[{i}] must be an object")
        account = _require_str(entry.get("account"), name=f"snapshots[{i}].account")
        if snapshots.known(account):
            raise ValueError(f"duplicate snapshot entry for {account!r}")
        snapshots.put(
            account,
            AccountSnapshot(
                reward_per_unit_paid=_require_int(
                    entry.get("reward_per_unit_paid"), name=f"snapshots[{i}].reward_per_unit_paid"
                ),
                accrued_rewards=_require_int(entry.get("accrued_rewards"), name=f"snapshots[{i}].accrued_rewards"),
            ),
        )

    return StakingRewards(
        address=address,
        staking_port=staking_port,
        reward_port=reward_port,
        roles=roles,
        clock=clock or SystemClock(),
        reward_state=_reward_state_from_obj(data.get("reward_state")),
        stakes=stakes,
        snapshots=snapshots,
    )
