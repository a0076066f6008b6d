"""Tests for rewardstream CLI — proves CLI dispatches correctly."""

import json
from pathlib import Path

import pytest
from rewardstream.cli import main, build_parser


BASIC = Path(__file__).resolve().parents[1] / "scenarios" / "basic.json"


class TestCLIParsing:
    def test_status_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["status"])
        assert args.command == "status"

    def test_simulate_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args([
            "simulate", "s.json", "--events", "e.jsonl", "--account", "alice", "--strict",
        ])
        assert args.command == "simulate"
        assert args.scenario == Path("s.json")
        assert args.events == Path("e.jsonl")
        assert args.strict is True

    def test_global_options(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["--log-level", "DEBUG", "check-invariants", "s.json"])
        assert args.log_level == "DEBUG"
        assert args.command == "check-invariants"


class TestCLIExecution:
    def test_status_runs(self, capsys) -> None:
        exit_code = main(["status"])
        assert exit_code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["pool"]["status"] == "idle"

    def test_no_command_shows_help(self, capsys) -> None:
        exit_code = main([])
        assert exit_code == 0
        assert "rewardstream" in capsys.readouterr().out

    def test_simulate_basic(self, capsys) -> None:
        exit_code = main(["simulate", str(BASIC), "--account", "alice"])
        assert exit_code == 0
        out = json.loads(capsys.readouterr().out)
        assert len(out["steps"]) == 11
        assert out["final"]["account"]["balance"] == 0

    def test_simulate_persists_events(self, tmp_path: Path) -> None:
        events = tmp_path / "out" / "events.jsonl"
        exit_code = main(["simulate", str(BASIC), "--events", str(events)])
        assert exit_code == 0
        assert events.exists()

    def test_simulate_strict_fails_on_rejection(self, tmp_path: Path, capsys) -> None:
        scenario = tmp_path / "bad.json"
        scenario.write_text(json.dumps({
            "mint": {"stake": {"alice": 1}},
            "steps": [{"op": "withdraw", "account": "alice", "amount": 1}],
        }), encoding="utf-8")
        assert main(["simulate", str(scenario)]) == 0
        assert main(["simulate", str(scenario), "--strict"]) == 1
        assert "rejected" in capsys.readouterr().err

    def test_simulate_missing_file(self, tmp_path: Path) -> None:
        assert main(["simulate", str(tmp_path / "missing.json")]) == 1

    def test_check_invariants_runs(self, capsys) -> None:
        exit_code = main(["check-invariants", str(BASIC)])
        assert exit_code == 0
        assert capsys.readouterr().out.startswith("OK: 11 steps")
