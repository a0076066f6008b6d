"""Pool configuration — defaults, JSON params file, and environment.

Precedence, lowest to highest:
    1. RewardStreamConfig defaults
    2. config/reward_params.json (or an explicit params file)
    3. .env file values (read with python-dotenv)
    4. process environment (REWARDSTREAM_* variables)

A process environment variable always wins over the same key in .env,
matching load_dotenv(override=False).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_PARAMS_PATH = ROOT / "config" / "reward_params.json"
DEFAULT_ENV_PATH = ROOT / ".env"

ENV_PREFIX = "REWARDSTREAM_"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class RewardStreamConfig:
    """Deployment parameters for one pool.

    rewards_duration is the length, in seconds, of the first period a
    notify_reward_amount will start. Zero means the administrator must
    set a duration before rewards can be added.
    """
    pool_address: str = "rewardstream:pool"
    administrator: str = "owner"
    rewards_duration: int = 0
    stake_symbol: str = "STK"
    reward_symbol: str = "RWD"
    event_log_path: Optional[Path] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.pool_address:
            raise ValueError("pool_address must be non-empty")
        if not self.administrator:
            raise ValueError("administrator must be non-empty")
        if self.pool_address == self.administrator:
            raise ValueError("pool_address and administrator must differ")
        if not isinstance(self.rewards_duration, int) or isinstance(self.rewards_duration, bool):
            raise ValueError(
                f"rewards_duration must be an integer, got {self.rewards_duration!r}"
            )
        if self.rewards_duration < 0:
            raise ValueError(f"rewards_duration must be >= 0, got {self.rewards_duration}")
        if not self.stake_symbol or not self.reward_symbol:
            raise ValueError("Asset symbols must be non-empty")
        if self.stake_symbol == self.reward_symbol:
            raise ValueError("Stake and reward assets must have different symbols")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> RewardStreamConfig:
        """Build from a dict of field values, ignoring unknown keys."""
        return cls().merged(values)

    def merged(self, values: Mapping[str, Any]) -> RewardStreamConfig:
        """Return a copy with the known keys of `values` applied."""
        known = {f.name for f in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in known or value is None:
                continue
            changes[key] = _coerce(key, value)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_address": self.pool_address,
            "administrator": self.administrator,
            "rewards_duration": self.rewards_duration,
            "stake_symbol": self.stake_symbol,
            "reward_symbol": self.reward_symbol,
            "event_log_path": str(self.event_log_path) if self.event_log_path else None,
            "log_level": self.log_level,
        }


def _coerce(key: str, value: Any) -> Any:
    if key == "rewards_duration":
        if isinstance(value, bool):
            raise ValueError(f"rewards_duration must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"rewards_duration must be an integer, got {value!r}") from exc
    if key == "event_log_path":
        return Path(value) if value != "" else None
    if key == "log_level":
        return str(value).upper()
    return str(value)


def _from_env(values: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(RewardStreamConfig):
        raw = values.get(ENV_PREFIX + f.name.upper())
        if raw is not None:
            out[f.name] = raw
    return out


def load_params_file(path: Path) -> Dict[str, Any]:
    """Read the "pool" section of a JSON params file."""
    with path.open("r", encoding="utf-8") as handle:
        params = json.load(handle)
    section = params.get("pool", params)
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'pool' section must be an object")
    return section


def load_config(
    params_path: Optional[Path] = None,
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RewardStreamConfig:
    """Load configuration from file and environment.

    Args:
        params_path: JSON params file. Defaults to config/reward_params.json
            when that file exists; an explicit path must exist.
        env_file: .env file. Defaults to the repository .env if present.
        environ: Process environment (defaults to os.environ).
    """
    config = RewardStreamConfig()

    if params_path is not None:
        config = config.merged(load_params_file(params_path))
    elif DEFAULT_PARAMS_PATH.exists():
        config = config.merged(load_params_file(DEFAULT_PARAMS_PATH))

    env_path = env_file if env_file is not None else DEFAULT_ENV_PATH
    env_values: Dict[str, Optional[str]] = {}
    if env_path.exists():
        env_values.update(dotenv_values(env_path))
    env_values.update(os.environ if environ is None else environ)

    return config.merged(_from_env(env_values))
