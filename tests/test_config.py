"""Tests for configuration loading — proves layering and validation."""

import json
from pathlib import Path

import pytest

from rewardstream.config import RewardStreamConfig, load_config, load_params_file


def _write_params(tmp_path: Path, pool: dict) -> Path:
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"pool": pool}), encoding="utf-8")
    return path


class TestRewardStreamConfig:
    def test_defaults(self) -> None:
        config = RewardStreamConfig()
        assert config.rewards_duration == 0
        assert config.stake_symbol == "STK"
        assert config.event_log_path is None

    @pytest.mark.parametrize("overrides", [
        {"pool_address": ""},
        {"administrator": "rewardstream:pool"},
        {"rewards_duration": -1},
        {"rewards_duration": True},
        {"reward_symbol": "STK"},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values_rejected(self, overrides: dict) -> None:
        with pytest.raises(ValueError):
            RewardStreamConfig(**overrides)

    def test_merged_ignores_unknown_and_none(self) -> None:
        config = RewardStreamConfig().merged({
            "rewards_duration": "3600", "unknown": 1, "stake_symbol": None,
        })
        assert config.rewards_duration == 3600
        assert config.stake_symbol == "STK"

    def test_merged_rejects_non_numeric_duration(self) -> None:
        with pytest.raises(ValueError):
            RewardStreamConfig().merged({"rewards_duration": "a week"})

    def test_to_dict(self) -> None:
        config = RewardStreamConfig.from_mapping({"event_log_path": "data/events.jsonl"})
        assert config.to_dict()["event_log_path"] == str(Path("data/events.jsonl"))


class TestLoadConfig:
    def test_params_file(self, tmp_path: Path) -> None:
        params = _write_params(tmp_path, {"rewards_duration": 604800, "reward_symbol": "GOV"})
        config = load_config(params_path=params, env_file=tmp_path / "missing.env", environ={})
        assert config.rewards_duration == 604800
        assert config.reward_symbol == "GOV"

    def test_env_file_overrides_params(self, tmp_path: Path) -> None:
        params = _write_params(tmp_path, {"rewards_duration": 604800})
        env_file = tmp_path / ".env"
        env_file.write_text("REWARDSTREAM_REWARDS_DURATION=86400\n", encoding="utf-8")
        config = load_config(params_path=params, env_file=env_file, environ={})
        assert config.rewards_duration == 86400

    def test_environment_overrides_env_file(self, tmp_path: Path) -> None:
        params = _write_params(tmp_path, {})
        env_file = tmp_path / ".env"
        env_file.write_text(
            "REWARDSTREAM_ADMINISTRATOR=dao\nREWARDSTREAM_LOG_LEVEL=debug\n",
            encoding="utf-8",
        )
        config = load_config(
            params_path=params,
            env_file=env_file,
            environ={"REWARDSTREAM_ADMINISTRATOR": "multisig"},
        )
        assert config.administrator == "multisig"
        assert config.log_level == "DEBUG"

    def test_unprefixed_variables_ignored(self, tmp_path: Path) -> None:
        params = _write_params(tmp_path, {})
        config = load_config(
            params_path=params,
            env_file=tmp_path / "missing.env",
            environ={"ADMINISTRATOR": "mallory"},
        )
        assert config.administrator == "owner"

    def test_missing_explicit_params_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            load_config(params_path=tmp_path / "nope.json", environ={})

    def test_params_section_must_be_object(self, tmp_path: Path) -> None:
        path = tmp_path / "params.json"
        path.write_text(json.dumps({"pool": [1, 2]}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_params_file(path)
