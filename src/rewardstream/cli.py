"""rewardstream CLI — inspect configuration and replay pool scenarios.

Usage:
    python -m rewardstream.cli status
    python -m rewardstream.cli simulate scenarios/basic.json --events data/events.jsonl
    python -m rewardstream.cli check-invariants scenarios/basic.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from rewardstream.config import RewardStreamConfig, load_config
from rewardstream.persistence.event_log import EventLog
from rewardstream.service import build_in_memory
from rewardstream.simulation import ScenarioRun, load_scenario, run_scenario
from rewardstream.structured_logging import configure_logging


def _load(args: argparse.Namespace) -> RewardStreamConfig:
    config = load_config(params_path=args.config, env_file=args.env_file)
    configure_logging(args.log_level or config.log_level)
    return config


def _run(args: argparse.Namespace, config: RewardStreamConfig) -> ScenarioRun:
    scenario = load_scenario(args.scenario)
    event_log = None
    events_path = getattr(args, "events", None)
    if events_path is not None:
        events_path.parent.mkdir(parents=True, exist_ok=True)
        event_log = EventLog(storage_path=events_path)
    return run_scenario(scenario, config=config, event_log=event_log)


def cmd_status(args: argparse.Namespace) -> int:
    config = _load(args)
    service = build_in_memory(config)
    print(json.dumps({
        "config": config.to_dict(),
        "pool": service.status(),
    }, indent=2))
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    config = _load(args)
    try:
        run = _run(args, config)
    except (OSError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1

    print(json.dumps({
        "steps": [o.to_dict() for o in run.outcomes],
        "final": run.service.status(args.account),
    }, indent=2))

    if run.failed:
        for outcome in run.failed:
            print(
                f"Step {outcome.index} ({outcome.op}) rejected: {'; '.join(outcome.errors)}",
                file=sys.stderr,
            )
        if args.strict:
            return 1
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    config = _load(args)
    try:
        run = _run(args, config)
    except (OSError, ValueError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1

    violations = run.service.check_invariants()
    if violations:
        for violation in violations:
            print(f"VIOLATION: {violation}", file=sys.stderr)
        return 1
    print(f"OK: {len(run.outcomes)} steps, all pool invariants hold")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rewardstream",
        description="Time-weighted staking rewards pool",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON params file (default: config/reward_params.json)",
    )
    parser.add_argument("--env-file", type=Path, default=None, help="Path to .env file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show configuration and an empty pool")

    # simulate
    p_sim = sub.add_parser("simulate", help="Replay a JSON scenario")
    p_sim.add_argument("scenario", type=Path, help="Scenario file")
    p_sim.add_argument("--events", type=Path, help="Persist audit events to this JSONL file")
    p_sim.add_argument("--account", help="Include this account in the final status")
    p_sim.add_argument(
        "--strict", action="store_true",
        help="Exit with status 1 if any step is rejected",
    )

    # check-invariants
    p_chk = sub.add_parser("check-invariants", help="Replay a scenario and check invariants")
    p_chk.add_argument("scenario", type=Path, help="Scenario file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "simulate": cmd_simulate,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
