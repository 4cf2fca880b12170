# [TESTER] v1

from __future__ import annotations

import random

import pytest

from rewardflow.core.errors import (
    InsufficientBalance,
    InsufficientFunding,
    InvalidAmount,
    RewardPeriodActive,
    TransferRejected,
    Unauthorized,
)
from rewardflow.core.fixed_point import SCALE, SECONDS_PER_DAY, to_units
from rewardflow.core.types import AccountSnapshot, Event
from rewardflow.integration.asset_ledger import CustodyPort, InMemoryAssetLedger
from rewardflow.integration.clock import ManualClock
from rewardflow.integration.config import RewardflowConfig
from rewardflow.integration.roles import RoleRegistry
from rewardflow.integration.staking_rewards import StakingRewards

DAY = SECONDS_PER_DAY
WEEK = 7 * DAY
STK = "STK"
RWD = "RWD"
OWNER = "owner"
DIST = "distribution"
POOL = "pool"


class FlakyPort(CustodyPort):
    """Custody port whose outbound transfers can be switched off."""

    fail_out = False

    def transfer_out(self, account: str, amount: int) -> bool:
        if self.fail_out:
            return False
        return super().transfer_out(account, amount)


def _world(*, start: int = 1_000, duration: int = WEEK) -> tuple[InMemoryAssetLedger, ManualClock, StakingRewards]:
    assets = InMemoryAssetLedger()
    clock = ManualClock(start)
    ledger = StakingRewards(
        address=POOL,
        staking_port=FlakyPort(assets, STK, POOL),
        reward_port=FlakyPort(assets, RWD, POOL),
        roles=RoleRegistry(owner=OWNER, distributor=DIST),
        clock=clock,
        config=RewardflowConfig(rewards_duration=duration),
    )
    return assets, clock, ledger


def _stake(assets: InMemoryAssetLedger, ledger: StakingRewards, account: str, amount: int) -> None:
    assets.mint(account, STK, amount)
    assets.approve(account, POOL, STK, amount)
    ledger.stake(account, amount)


def _fund_and_notify(assets: InMemoryAssetLedger, ledger: StakingRewards, amount: int) -> None:
    assets.mint(POOL, RWD, amount)
    ledger.notify_reward_amount(DIST, amount)


def test_constructor_requires_distinct_assets() -> None:
    assets = InMemoryAssetLedger()
    with pytest.raises(ValueError):
        StakingRewards(
            address=POOL,
            staking_port=CustodyPort(assets, STK, POOL),
            reward_port=CustodyPort(assets, STK, POOL),
            roles=RoleRegistry(owner=OWNER),
        )


def test_stake_notify_then_withdraw_after_one_day() -> None:
    assets, clock, ledger = _world()
    stake = to_units(100)
    budget = to_units(5000)

    _stake(assets, ledger, "alice", stake)
    _fund_and_notify(assets, ledger, budget)
    assert ledger.reward_rate == budget // WEEK
    assert ledger.period_finish == 1_000 + WEEK
    assert ledger.reward_for_duration() <= budget

    clock.advance(DAY)
    owed = ledger.earned("alice")
    assert budget // 7 - 10**6 < owed <= budget // 7

    ledger.withdraw("alice", stake)
    assert assets.balance_of("alice", STK) == stake
    assert ledger.total_staked == 0
    assert ledger.earned("alice") == owed

    # Nothing accrues with an empty pool; accrued reward stays claimable.
    clock.advance(DAY)
    assert ledger.earned("alice") == owed
    assert ledger.get_reward("alice") == owed
    assert assets.balance_of("alice", RWD) == owed
    assert ledger.earned("alice") == 0

    kinds = [e.event for e in ledger.events]
    assert kinds == [Event.STAKED, Event.REWARD_ADDED, Event.WITHDRAWN, Event.REWARD_PAID]
    assert ledger.events[-1].to_dict() == {
        "event": "RewardPaid",
        "timestamp": 1_000 + 2 * DAY,
        "account": "alice",
        "reward": owed,
    }
    assert ledger.check_invariants() == []


def test_two_stakers_split_pro_rata() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)

    clock.advance(DAY)
    assert ledger.reward_per_unit() == 10 * DAY * SCALE // 100
    _stake(assets, ledger, "bob", 300)

    clock.advance(DAY)
    assert ledger.earned("alice") == 10 * DAY + 10 * DAY // 4
    assert ledger.earned("bob") == 10 * DAY * 3 // 4
    assert ledger.last_time_applicable() == 1_000 + 2 * DAY


def test_accrual_stops_at_period_finish() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)

    clock.advance(2 * WEEK)
    assert ledger.last_time_applicable() == ledger.period_finish
    assert ledger.earned("alice") == 10 * WEEK
    assert ledger.exit("alice") == 10 * WEEK
    assert assets.balance_of(POOL, RWD) == 0


def test_notify_requires_distribution_role() -> None:
    assets, _clock, ledger = _world()
    assets.mint(POOL, RWD, 10 * WEEK)
    with pytest.raises(Unauthorized):
        ledger.notify_reward_amount("mallory", 10 * WEEK)
    assert ledger.reward_rate == 0
    assert ledger.period_finish == 0


def test_notify_rejects_underfunded_rate() -> None:
    assets, _clock, ledger = _world()
    assets.mint(POOL, RWD, 10 * WEEK - 1)
    before = ledger.reward_state
    with pytest.raises(InsufficientFunding):
        ledger.notify_reward_amount(DIST, 10 * WEEK)
    assert ledger.reward_state == before
    assert ledger.events == ()


def test_notify_cannot_reuse_owed_reward_as_funding() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    clock.advance(WEEK)

    # The whole first budget is owed to alice; a second notify must bring
    # its own funds.
    with pytest.raises(InsufficientFunding):
        ledger.notify_reward_amount(DIST, 10 * WEEK)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    assert ledger.reward_rate == 10


def test_withdraw_more_than_staked_changes_nothing() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 10)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    clock.advance(DAY)

    state = ledger.reward_state
    snap = ledger.snapshot_of("alice")
    with pytest.raises(InsufficientBalance):
        ledger.withdraw("alice", 11)
    assert ledger.reward_state == state
    assert ledger.snapshot_of("alice") == snap
    assert ledger.balance_of("alice") == 10


def test_invalid_amounts() -> None:
    _assets, _clock, ledger = _world()
    with pytest.raises(InvalidAmount):
        ledger.stake("alice", 0)
    with pytest.raises(InvalidAmount):
        ledger.withdraw("alice", -1)
    with pytest.raises(TypeError):
        ledger.stake("alice", True)


def test_rejected_stake_pull_rolls_back_checkpoint() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    clock.advance(DAY)

    state = ledger.reward_state
    assets.mint("bob", STK, 50)  # no allowance
    with pytest.raises(TransferRejected):
        ledger.stake("bob", 50)
    assert ledger.reward_state == state
    assert not ledger._snapshots.known("bob")
    assert ledger.total_staked == 100
    assert assets.balance_of("bob", STK) == 50


def test_rejected_reward_push_keeps_claim() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    clock.advance(DAY)

    state = ledger.reward_state
    ledger._reward_port.fail_out = True
    with pytest.raises(TransferRejected):
        ledger.get_reward("alice")
    assert ledger.reward_state == state
    assert ledger.snapshot_of("alice") == AccountSnapshot()
    assert ledger.earned("alice") == 10 * DAY

    ledger._reward_port.fail_out = False
    assert ledger.get_reward("alice") == 10 * DAY


def test_rejected_withdraw_push_restores_stake() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    clock.advance(DAY)
    ledger._staking_port.fail_out = True
    with pytest.raises(TransferRejected):
        ledger.withdraw("alice", 40)
    assert ledger.balance_of("alice") == 100
    assert ledger.total_staked == 100
    assert assets.balance_of(POOL, STK) == 100


def test_get_reward_with_nothing_owed_is_noop() -> None:
    _assets, _clock, ledger = _world()
    assert ledger.get_reward("alice") == 0
    assert ledger.events == ()


def test_exit_returns_stake_and_reward() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    clock.advance(3 * DAY)

    assert ledger.exit("alice") == 30 * DAY
    assert ledger.balance_of("alice") == 0
    assert assets.balance_of("alice", STK) == 100
    assert assets.balance_of("alice", RWD) == 30 * DAY
    assert ledger.exit("alice") == 0


def test_exit_keeps_withdraw_when_reward_push_fails() -> None:
    assets, clock, ledger = _world()
    _stake(assets, ledger, "alice", 100)
    _fund_and_notify(assets, ledger, 10 * WEEK)
    clock.advance(DAY)

    ledger._reward_port.fail_out = True
    with pytest.raises(TransferRejected):
        ledger.exit("alice")
    assert ledger.balance_of("alice") == 0
    assert assets.balance_of("alice", STK) == 100
    assert ledger.earned("alice") == 10 * DAY


def test_set_rewards_duration() -> None:
    assets, clock, ledger = _world()
    with pytest.raises(Unauthorized):
        ledger.set_rewards_duration("mallory", DAY)

    _fund_and_notify(assets, ledger, 10 * WEEK)
    with pytest.raises(RewardPeriodActive):
        ledger.set_rewards_duration(OWNER, DAY)

    clock.set(ledger.period_finish)
    ledger.set_rewards_duration(OWNER, DAY)
    assert ledger.rewards_duration == DAY
    assert ledger.events[-1].event is Event.REWARDS_DURATION_UPDATED


def test_set_rewards_distribution_hands_over_notify_role() -> None:
    assets, _clock, ledger = _world()
    with pytest.raises(Unauthorized):
        ledger.set_rewards_distribution(DIST, "new_dist")
    ledger.set_rewards_distribution(OWNER, "new_dist")
    assert ledger.rewards_distribution == "new_dist"

    assets.mint(POOL, RWD, 10 * WEEK)
    with pytest.raises(Unauthorized):
        ledger.notify_reward_amount(DIST, 10 * WEEK)
    ledger.notify_reward_amount("new_dist", 10 * WEEK)
    assert ledger.reward_rate == 10


def test_random_operation_sequences_hold_invariants() -> None:
    rng = random.Random(20240611)
    accounts = ["alice", "bob", "carol"]

    for _ in range(10):
        assets, clock, ledger = _world(start=rng.randint(0, 10**6), duration=rng.randint(1, 2 * WEEK))
        last_earned = {a: 0 for a in accounts}

        for _ in range(60):
            account = rng.choice(accounts)
            op = rng.choice(["stake", "withdraw", "claim", "notify", "advance", "advance"])
            if op == "stake":
                _stake(assets, ledger, account, rng.randint(1, 10**20))
            elif op == "withdraw" and ledger.balance_of(account) > 0:
                ledger.withdraw(account, rng.randint(1, ledger.balance_of(account)))
            elif op == "claim":
                paid = ledger.get_reward(account)
                assert paid == last_earned[account]
                last_earned[account] = 0
            elif op == "notify":
                _fund_and_notify(assets, ledger, rng.randint(0, 10**22))
            else:
                clock.advance(rng.randint(0, DAY))

            balances = ledger._stakes.get_all_balances()
            assert ledger.total_staked == sum(balances.values())
            for a in accounts:
                now_earned = ledger.earned(a)
                assert now_earned >= last_earned[a]
                last_earned[a] = now_earned
            assert ledger.check_invariants() == []
