"""
Runtime configuration for ledgers and distributors.

Sources, lowest to highest precedence:
  1. `RewardflowConfig` defaults,
  2. an optional YAML file (mapping of field name -> value),
  3. REWARDFLOW_* environment variables.

Unknown YAML keys and malformed values are rejected (fail-closed).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..core.fixed_point import DEFAULT_REWARDS_DURATION, is_int

ENV_PREFIX = "REWARDFLOW_"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class RewardflowConfig:
    # Length of one release period in seconds (7 days by default).
    rewards_duration: int = DEFAULT_REWARDS_DURATION
    # DoS limit on pending distributor entries.
    max_distributions: int = 256
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not is_int(self.rewards_duration) or self.rewards_duration <= 0:
            raise ValueError(f"rewards_duration must be a positive int: {self.rewards_duration!r}")
        if not is_int(self.max_distributions) or self.max_distributions <= 0:
            raise ValueError(f"max_distributions must be a positive int: {self.max_distributions!r}")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}: {self.log_level!r}")


_FIELD_NAMES = tuple(f.name for f in fields(RewardflowConfig))


def _int_env(name: str, *, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip(), 10)
    except ValueError as exc:
        raise ValueError(f"{name} must be a decimal integer, got {raw!r}") from exc


def load_config_from_env(base: Optional[RewardflowConfig] = None) -> RewardflowConfig:
    cfg = base or RewardflowConfig()
    level = (os.environ.get(ENV_PREFIX + "LOG_LEVEL") or cfg.log_level).strip().upper()
    return replace(
        cfg,
        rewards_duration=_int_env(ENV_PREFIX + "REWARDS_DURATION", default=cfg.rewards_duration),
        max_distributions=_int_env(ENV_PREFIX + "MAX_DISTRIBUTIONS", default=cfg.max_distributions),
        log_level=level,
    )


def config_from_mapping(obj: Mapping[str, Any]) -> RewardflowConfig:
    if not isinstance(obj, Mapping):
        raise TypeError("config must be a mapping")
    unknown = sorted(set(obj) - set(_FIELD_NAMES))
    if unknown:
        raise ValueError(f"unknown config keys: {unknown}")
    return RewardflowConfig(**{k: obj[k] for k in _FIELD_NAMES if k in obj})


def load_config_file(path: Union[str, Path]) -> RewardflowConfig:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return RewardflowConfig()
    if not isinstance(obj, Mapping):
        raise TypeError("config YAML must be a mapping")
    section = obj.get("rewardflow", obj)
    return config_from_mapping(section)


def load_config(path: Union[str, Path, None] = None) -> RewardflowConfig:
    """File (if given) then environment overrides."""
    base = load_config_file(path) if path is not None else RewardflowConfig()
    return load_config_from_env(base)
