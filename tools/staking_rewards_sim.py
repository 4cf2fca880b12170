#!/usr/bin/env python3
"""
Deterministic staking-rewards scenario runner.

Reads a YAML scenario, wires a `StakingRewards` ledger and a
`RewardsDistributor` over one in-memory asset ledger and a manual clock, then
applies the scenario steps in order and prints one JSON observation per step.

Scenario format (amounts in base units, times in seconds):

  rewardflow:            # optional RewardflowConfig overrides
    rewards_duration: 604800
  start_time: 0
  assets: {staking: STK, reward: RWD}
  accounts: {alice: 1000, bob: 500}   # staking asset minted per account
  distributor_funding: 5000           # reward asset minted to the distributor
  steps:
    - {op: stake, account: alice, amount: 100}
    - {op: distribute, amount: 5000}
    - {op: advance, seconds: 86400}
    - {op: withdraw, account: alice, amount: 100}
    - {op: get_reward, account: alice}
    - {op: withdraw, account: bob, amount: 1, expect_error: insufficient_balance}

Ops: stake, withdraw, get_reward, exit, fund, notify, distribute, advance,
set_rewards_duration.

Example:
  python3 tools/staking_rewards_sim.py tools/scenarios/basic.yaml
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rewardflow.core.errors import LedgerError
from rewardflow.integration.asset_ledger import CustodyPort, InMemoryAssetLedger
from rewardflow.integration.clock import ManualClock
from rewardflow.integration.config import config_from_mapping, load_config_from_env
from rewardflow.integration.distributor import RewardsDistributor
from rewardflow.integration.ledger_snapshot import snapshot_from_ledger
from rewardflow.integration.logging_utils import configure_logging
from rewardflow.integration.roles import RoleRegistry
from rewardflow.integration.staking_rewards import StakingRewards

OWNER = "owner"
AUTHORITY = "authority"
LEDGER_ADDRESS = "staking_rewards"
DISTRIBUTOR_ADDRESS = "rewards_distributor"


class ScenarioError(Exception):
    pass


@dataclass
class Simulation:
    assets: InMemoryAssetLedger
    clock: ManualClock
    ledger: StakingRewards
    distributor: RewardsDistributor
    staking_asset: str
    reward_asset: str

    def observe(self, account: str | None = None) -> dict[str, Any]:
        obs: dict[str, Any] = {
            "now": self.clock.now(),
            "total_staked": self.ledger.total_staked,
            "reward_rate": self.ledger.reward_rate,
            "period_finish": self.ledger.period_finish,
            "reward_custody": self.assets.balance_of(LEDGER_ADDRESS, self.reward_asset),
        }
        if account is not None:
            obs["account"] = account
            obs["staked"] = self.ledger.balance_of(account)
            obs["earned"] = self.ledger.earned(account)
            obs["wallet_staking"] = self.assets.balance_of(account, self.staking_asset)
            obs["wallet_reward"] = self.assets.balance_of(account, self.reward_asset)
        return obs


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise ScenarioError(f"{name} must be a mapping")
    return obj


def _require_int(obj: Mapping[str, Any], key: str, *, name: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ScenarioError(f"{name}.{key} must be an int")
    return v


def _require_str(obj: Mapping[str, Any], key: str, *, name: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str) or not v:
        raise ScenarioError(f"{name}.{key} must be a non-empty string")
    return v


def build_simulation(scenario: Mapping[str, Any]) -> Simulation:
    cfg = load_config_from_env(config_from_mapping(scenario.get("rewardflow") or {}))
    configure_logging(cfg.log_level)

    assets_cfg = _require_mapping(scenario.get("assets") or {"staking": "STK", "reward": "RWD"}, name="assets")
    staking_asset = _require_str(assets_cfg, "staking", name="assets")
    reward_asset = _require_str(assets_cfg, "reward", name="assets")

    start = scenario.get("start_time", 0)
    clock = ManualClock(start)
    assets = InMemoryAssetLedger()

    ledger_roles = RoleRegistry(owner=OWNER, distributor=DISTRIBUTOR_ADDRESS)
    ledger = StakingRewards(
        address=LEDGER_ADDRESS,
        staking_port=CustodyPort(assets, staking_asset, LEDGER_ADDRESS),
        reward_port=CustodyPort(assets, reward_asset, LEDGER_ADDRESS),
        roles=ledger_roles,
        clock=clock,
        config=cfg,
    )
    distributor = RewardsDistributor(
        address=DISTRIBUTOR_ADDRESS,
        reward_port=CustodyPort(assets, reward_asset, DISTRIBUTOR_ADDRESS),
        roles=RoleRegistry(owner=OWNER, authority=AUTHORITY),
        clock=clock,
        config=cfg,
    )

    accounts = _require_mapping(scenario.get("accounts") or {}, name="accounts")
    for account, amount in sorted(accounts.items()):
        assets.mint(account, staking_asset, amount)
    funding = scenario.get("distributor_funding", 0)
    if funding:
        assets.mint(DISTRIBUTOR_ADDRESS, reward_asset, funding)

    return Simulation(
        assets=assets,
        clock=clock,
        ledger=ledger,
        distributor=distributor,
        staking_asset=staking_asset,
        reward_asset=reward_asset,
    )


def _op_stake(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    account = _require_str(step, "account", name="stake")
    amount = _require_int(step, "amount", name="stake")
    sim.assets.approve(account, LEDGER_ADDRESS, sim.staking_asset, amount)
    sim.ledger.stake(account, amount)
    return sim.observe(account)


def _op_withdraw(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    account = _require_str(step, "account", name="withdraw")
    sim.ledger.withdraw(account, _require_int(step, "amount", name="withdraw"))
    return sim.observe(account)


def _op_get_reward(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    account = _require_str(step, "account", name="get_reward")
    paid = sim.ledger.get_reward(account)
    return {**sim.observe(account), "paid": paid}


def _op_exit(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    account = _require_str(step, "account", name="exit")
    paid = sim.ledger.exit(account)
    return {**sim.observe(account), "paid": paid}


def _op_fund(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    # Mint reward asset straight into the ledger's custody.
    sim.assets.mint(LEDGER_ADDRESS, sim.reward_asset, _require_int(step, "amount", name="fund"))
    return sim.observe()


def _op_notify(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    caller = step.get("caller", DISTRIBUTOR_ADDRESS)
    sim.ledger.notify_reward_amount(caller, _require_int(step, "amount", name="notify"))
    return sim.observe()


def _op_distribute(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    amount = _require_int(step, "amount", name="distribute")
    sim.distributor.add_distribution(OWNER, sim.ledger, amount)
    delivered = sim.distributor.distribute(AUTHORITY, amount)
    return {**sim.observe(), "delivered": delivered}


def _op_advance(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    sim.clock.advance(_require_int(step, "seconds", name="advance"))
    return sim.observe()


def _op_set_rewards_duration(sim: Simulation, step: Mapping[str, Any]) -> dict[str, Any]:
    sim.ledger.set_rewards_duration(OWNER, _require_int(step, "seconds", name="set_rewards_duration"))
    return {**sim.observe(), "rewards_duration": sim.ledger.rewards_duration}


_OPS: dict[str, Callable[[Simulation, Mapping[str, Any]], dict[str, Any]]] = {
    "stake": _op_stake,
    "withdraw": _op_withdraw,
    "get_reward": _op_get_reward,
    "exit": _op_exit,
    "fund": _op_fund,
    "notify": _op_notify,
    "distribute": _op_distribute,
    "advance": _op_advance,
    "set_rewards_duration": _op_set_rewards_duration,
}


def run_scenario(scenario: Mapping[str, Any]) -> tuple[Simulation, list[dict[str, Any]]]:
    """Apply every step; returns the simulation and one observation per step.

    A step may carry `expect_error: <code>`; the step must then fail with a
    `LedgerError` of that code. Any other ledger failure aborts the run.
    """
    scenario = _require_mapping(scenario, name="scenario")
    sim = build_simulation(scenario)
    steps = scenario.get("steps") or []
    if not isinstance(steps, list):
        raise ScenarioError("steps must be a list")

    observations: list[dict[str, Any]] = []
    for i, raw in enumerate(steps):
        step = _require_mapping(raw, name=f"steps[{i}]")
        op = step.get("op")
        fn = _OPS.get(op)  # type: ignore[arg-type]
        if fn is None:
            raise ScenarioError(f"steps[{i}]: unknown op {op!r}")
        expected = step.get("expect_error")
        try:
            obs = fn(sim, step)
        except LedgerError as exc:
            if expected != exc.code:
                raise
            obs = {**sim.observe(), "error": exc.code}
        else:
            if expected is not None:
                raise ScenarioError(f"steps[{i}]: expected {expected} but {op} succeeded")
        observations.append({"step": i, "op": op, **obs})
    return sim, observations


def load_scenario(path: Path) -> Mapping[str, Any]:
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    return _require_mapping(obj, name=str(path))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Run a staking-rewards scenario and print per-step observations.")
    p.add_argument("scenario", type=Path, help="Path to scenario YAML")
    p.add_argument("--snapshot", action="store_true", help="Print the final ledger snapshot commitment")
    args = p.parse_args(argv)

    try:
        sim, observations = run_scenario(load_scenario(args.scenario))
    except (OSError, yaml.YAMLError, ScenarioError, ValueError, TypeError) as exc:
        print(f"staking_rewards_sim error: {exc}", file=sys.stderr)
        return 2
    except LedgerError as exc:
        print(f"staking_rewards_sim ledger failure: {exc}", file=sys.stderr)
        return 1

    for obs in observations:
        print(json.dumps(obs, sort_keys=True, separators=(",", ":")))
    if args.snapshot:
        print(f"[sim] ledger_commitment={snapshot_from_ledger(sim.ledger).commitment_hex()}")
    violations = sim.ledger.check_invariants()
    if violations:
        print(f"[sim] invariant violations: {violations}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
