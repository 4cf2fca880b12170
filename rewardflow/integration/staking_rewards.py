"""
Staking ledger with time-weighted reward accrual (imperative shell).

Wires the pure accrual kernel (`rewardflow.core.accrual`) to its state tables
and external collaborators:
- the staking asset and the reward asset are moved through two
  `ValueTransferPort`s (one custody view per asset),
- roles come from an `Authorization` collaborator,
- time comes from an injected `Clock`.

Ordering rule for every mutating entry point: checkpoint the reward state with
the stake total *before* the mutation, then mutate. Any failure restores the
ledger to exactly its pre-call state before the error propagates.

`stake`, `withdraw`, `get_reward` and `exit` call out to a port, so each of
them holds a non-reentrant guard for its whole duration. `notify_reward_amount`
and `set_rewards_duration` take the same guard: a port callback must not change
the reward state that a failing outer call is about to roll back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

from ..core import accrual
from ..core.errors import InsufficientBalance, InvalidAmount, TransferRejected, Unauthorized
from ..core.fixed_point import is_int
from ..core.invariants import check_all, check_stakes, inv_claims_covered
from ..core.types import AccountSnapshot, Event, LedgerEvent, RewardState
from ..state.snapshots import SnapshotTable
from ..state.stakes import StakeTable
from .clock import SystemClock
from .config import RewardflowConfig
from .guard import NonReentrantGuard
from .logging_utils import log_event
from .ports import Authorization, Clock, ValueTransferPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Undo:
    """Pre-call values of everything one account-scoped operation may touch."""

    account: str
    reward_state: RewardState
    snapshot: Optional[AccountSnapshot]
    balance: int


def _require_amount(amount: Any, *, name: str = "amount") -> int:
    if not is_int(amount):
        raise TypeError(f"{name} must be an int")
    if amount <= 0:
        raise InvalidAmount(f"{name}_must_be_positive", {name: amount})
    return int(amount)


class StakingRewards:
    """One staking pool: StakeLedger + RewardAccrualEngine behind one API."""

    def __init__(
        self,
        *,
        address: str,
        staking_port: ValueTransferPort,
        reward_port: ValueTransferPort,
        roles: Authorization,
        clock: Optional[Clock] = None,
        config: Optional[RewardflowConfig] = None,
        reward_state: Optional[RewardState] = None,
        stakes: Optional[StakeTable] = None,
        snapshots: Optional[SnapshotTable] = None,
    ) -> None:
        if not isinstance(address, str) or not address:
            raise ValueError("address must be a non-empty str")
        if staking_port.asset_id == reward_port.asset_id:
            # Stake held in custody would otherwise count as reward funding.
            raise ValueError("staking and reward assets must differ")
        cfg = config or RewardflowConfig()

        self._address = address
        self._staking_port = staking_port
        self._reward_port = reward_port
        self._roles = roles
        self._clock = clock or SystemClock()
        self._state = reward_state or RewardState(rewards_duration=cfg.rewards_duration)
        self._stakes = stakes if stakes is not None else StakeTable()
        self._snapshots = snapshots if snapshots is not None else SnapshotTable()
        self._guard = NonReentrantGuard(name=address)
        self._events: list[LedgerEvent] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def staking_asset(self) -> str:
        return self._staking_port.asset_id

    @property
    def reward_asset(self) -> str:
        return self._reward_port.asset_id

    @property
    def reward_state(self) -> RewardState:
        return self._state

    @property
    def total_staked(self) -> int:
        return self._stakes.total_staked

    @property
    def reward_rate(self) -> int:
        return self._state.reward_rate

    @property
    def period_finish(self) -> int:
        return self._state.period_finish

    @property
    def rewards_duration(self) -> int:
        return self._state.rewards_duration

    @property
    def last_update_time(self) -> int:
        return self._state.last_update_time

    @property
    def rewards_distribution(self) -> Optional[str]:
        return getattr(self._roles, "distributor", None)

    @property
    def events(self) -> tuple[LedgerEvent, ...]:
        return tuple(self._events)

    def balance_of(self, account: str) -> int:
        return self._stakes.balance_of(account)

    def snapshot_of(self, account: str) -> AccountSnapshot:
        return self._snapshots.get(account)

    def last_time_applicable(self) -> int:
        return accrual.last_time_applicable(self._state, self._clock.now())

    def reward_per_unit(self) -> int:
        return accrual.reward_per_unit(self._state, self.total_staked, self._clock.now())

    def earned(self, account: str) -> int:
        return accrual.earned(
            self._state,
            self._snapshots.get(account),
            self._stakes.balance_of(account),
            self.total_staked,
            self._clock.now(),
        )

    def reward_for_duration(self) -> int:
        return accrual.reward_for_duration(self._state)

    # ------------------------------------------------------------------
    # Guarded mutations
    # ------------------------------------------------------------------

    def stake(self, account: str, amount: int) -> None:
        with self._guard.hold("stake"):
            amount = _require_amount(amount)
            now = self._clock.now()
            undo = self._checkpoint_account(account, now)
            try:
                ok = self._staking_port.transfer_in(account, amount)
            except Exception:
                self._rollback(undo)
                raise
            if not ok:
                self._rollback(undo)
                raise TransferRejected("stake_pull_failed", {"account": account, "amount": amount})
            self._stakes.credit(account, amount)
            self._emit(Event.STAKED, now, account=account, amount=amount)

    def withdraw(self, account: str, amount: int) -> None:
        with self._guard.hold("withdraw"):
            self._withdraw(account, _require_amount(amount), self._clock.now())

    def get_reward(self, account: str) -> int:
        """Pay out everything `account` has earned; returns the amount paid."""
        with self._guard.hold("get_reward"):
            return self._get_reward(account, self._clock.now())

    def exit(self, account: str) -> int:
        """Withdraw the whole stake, then claim. Returns the reward paid.

        Not atomic across the two legs: once the stake has been pushed back,
        the withdraw stays committed. If the reward push then fails,
        `TransferRejected` propagates with only the claim rolled back, so the
        accrued reward remains claimable through `get_reward`.
        """
        with self._guard.hold("exit"):
            now = self._clock.now()
            balance = self._stakes.balance_of(account)
            if balance > 0:
                self._withdraw(account, balance, now)
            return self._get_reward(account, now)

    # ------------------------------------------------------------------
    # Role-gated mutations
    # ------------------------------------------------------------------

    def notify_reward_amount(self, caller: str, amount: int) -> None:
        if not self._roles.is_distributor(caller):
            raise Unauthorized("not_rewards_distribution", {"caller": caller})
        with self._guard.hold("notify_reward_amount"):
            now = self._clock.now()
            self._state = accrual.notify_reward(
                self._state,
                amount,
                self.total_staked,
                now,
                self._reward_port.custody_balance(),
            )
        self._emit(
            Event.REWARD_ADDED,
            now,
            amount=amount,
            reward_rate=self._state.reward_rate,
            period_finish=self._state.period_finish,
        )

    def set_rewards_distribution(self, caller: str, distributor: str) -> None:
        self._require_owner(caller)
        self._roles.set_distributor(distributor)
        self._emit(Event.REWARDS_DISTRIBUTION_UPDATED, self._clock.now(), distributor=distributor)

    def set_rewards_duration(self, caller: str, rewards_duration: int) -> None:
        self._require_owner(caller)
        with self._guard.hold("set_rewards_duration"):
            now = self._clock.now()
            self._state = accrual.update_rewards_duration(self._state, rewards_duration, now)
        self._emit(Event.REWARDS_DURATION_UPDATED, now, rewards_duration=rewards_duration)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def check_invariants(self) -> list[str]:
        """Names of violated invariants; O(number of accounts)."""
        violations = check_all(self._state)
        violations.extend(check_stakes(self.total_staked, self._stakes.get_all_balances().values()))
        accounts = set(self._snapshots.get_all()) | set(self._stakes.get_all_balances())
        total_earned = sum(self.earned(a) for a in accounts)
        # Released up to now, including growth not yet folded in by a checkpoint.
        released = accrual.checkpoint(self._state, self.total_staked, self._clock.now()).unclaimed_released
        if total_earned > released:
            violations.append("inv_earned_within_released")
        if not inv_claims_covered(total_earned, self._reward_port.custody_balance()):
            violations.append("inv_claims_covered")
        return violations

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_owner(self, caller: str) -> None:
        if not self._roles.is_owner(caller):
            raise Unauthorized("not_owner", {"caller": caller})

    def _checkpoint_account(self, account: str, now: int) -> _Undo:
        undo = _Undo(
            account=account,
            reward_state=self._state,
            snapshot=self._snapshots.get(account) if self._snapshots.known(account) else None,
            balance=self._stakes.balance_of(account),
        )
        self._state, snapshot = accrual.checkpoint_account(
            self._state,
            self._snapshots.get(account),
            undo.balance,
            self.total_staked,
            now,
        )
        self._snapshots.put(account, snapshot)
        return undo

    def _rollback(self, undo: _Undo) -> None:
        self._state = undo.reward_state
        if undo.snapshot is None:
            self._snapshots.discard(undo.account)
        else:
            self._snapshots.put(undo.account, undo.snapshot)
        self._stakes.restore(undo.account, undo.balance)

    def _push(self, port: ValueTransferPort, account: str, amount: int, undo: _Undo, *, what: str) -> None:
        try:
            ok = port.transfer_out(account, amount)
        except Exception:
            self._rollback(undo)
            raise
        if not ok:
            self._rollback(undo)
            raise TransferRejected(f"{what}_push_failed", {"account": account, "amount": amount})

    def _withdraw(self, account: str, amount: int, now: int) -> None:
        balance = self._stakes.balance_of(account)
        if amount > balance:
            # Checked before the checkpoint so a rejected call touches nothing.
            raise InsufficientBalance(
                "withdraw_exceeds_stake",
                {"account": account, "balance": balance, "amount": amount},
            )
        undo = self._checkpoint_account(account, now)
        self._stakes.debit(account, amount)
        self._push(self._staking_port, account, amount, undo, what="withdraw")
        self._emit(Event.WITHDRAWN, now, account=account, amount=amount)

    def _get_reward(self, account: str, now: int) -> int:
        undo = self._checkpoint_account(account, now)
        snapshot = self._snapshots.get(account)
        reward = snapshot.accrued_rewards
        if reward == 0:
            return 0
        # Zero the record before the external transfer so a retried or
        # re-entered payout cannot pay twice.
        self._snapshots.put(account, replace(snapshot, accrued_rewards=0))
        self._state = accrual.record_payment(self._state, reward)
        self._push(self._reward_port, account, reward, undo, what="reward")
        self._emit(Event.REWARD_PAID, now, account=account, reward=reward)
        return reward

    def _emit(self, event: Event, now: int, **fields: Any) -> None:
        self._events.append(LedgerEvent(event=event, timestamp=now, fields=fields))
        log_event(logger, event.value, ledger=self._address, timestamp=now, **fields)

    def __repr__(self) -> str:
        return (
            f"StakingRewards(address={self._address!r}, total_staked={self.total_staked}, "
            f"reward_rate={self._state.reward_rate}, period_finish={self._state.period_finish})"
        )
