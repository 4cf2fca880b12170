"""
rewardflow: time-weighted staking rewards.

Layout:
- `rewardflow.core`: pure integer accrual kernel, types, errors, invariants.
- `rewardflow.state`: mutable stake/snapshot/balance tables.
- `rewardflow.integration`: the staking ledger, the rewards distributor and
  their collaborators (asset ledger, roles, clock, config, logging).
"""

__version__ = "0.1.0"
