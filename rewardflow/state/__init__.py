"""
State tables for the staking ledger
"""

from .balances import BalanceTable
from .snapshots import SnapshotTable
from .stakes import StakeTable

__all__ = [
    "BalanceTable",
    "SnapshotTable",
    "StakeTable",
]
