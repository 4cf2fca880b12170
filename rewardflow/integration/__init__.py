"""
Imperative shell: staking ledger, rewards distributor and their collaborators.
"""

from .asset_ledger import CustodyPort, InMemoryAssetLedger
from .clock import ManualClock, SystemClock
from .config import RewardflowConfig, config_from_mapping, load_config, load_config_file, load_config_from_env
from .distributor import Distribution, RewardsDistributor
from .guard import NonReentrantGuard
from .ledger_snapshot import LEDGER_SNAPSHOT_VERSION, LedgerSnapshot, restore_ledger, snapshot_from_ledger
from .logging_utils import configure_logging, log_event
from .ports import Authorization, Clock, RewardRecipient, ValueTransferPort
from .roles import RoleRegistry
from .staking_rewards import StakingRewards

__all__ = [
    "CustodyPort",
    "InMemoryAssetLedger",
    "ManualClock",
    "SystemClock",
    "RewardflowConfig",
    "config_from_mapping",
    "load_config",
    "load_config_file",
    "load_config_from_env",
    "Distribution",
    "RewardsDistributor",
    "NonReentrantGuard",
    "LEDGER_SNAPSHOT_VERSION",
    "LedgerSnapshot",
    "restore_ledger",
    "snapshot_from_ledger",
    "configure_logging",
    "log_event",
    "Authorization",
    "Clock",
    "RewardRecipient",
    "ValueTransferPort",
    "RoleRegistry",
    "StakingRewards",
]
