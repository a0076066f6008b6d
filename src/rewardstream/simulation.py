"""Scenario runner — replay a scripted sequence of pool operations.

A scenario is a JSON document:

    {
      "start": 1700000000,
      "mint": {"stake": {"alice": 100}, "reward": {"owner": 1000}},
      "steps": [
        {"op": "set-duration", "caller": "owner", "duration": 604800},
        {"op": "fund", "account": "owner", "amount": 100},
        {"op": "notify", "caller": "owner", "amount": 100},
        {"op": "stake", "account": "alice", "amount": 5},
        {"op": "advance", "seconds": 259200},
        {"op": "claim", "account": "alice"}
      ]
    }

Steps run against a ManualClock, so time only moves on "advance".
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from rewardstream.accrual.collaborators import InMemoryAssetLedger, ManualClock
from rewardstream.config import RewardStreamConfig
from rewardstream.persistence.event_log import EventLog
from rewardstream.service import RewardStreamService, ServiceResult, build_in_memory


@dataclass(frozen=True)
class StepOutcome:
    """Result of one scenario step."""
    index: int
    op: str
    success: bool
    now: int
    errors: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "op": self.op,
            "success": self.success,
            "now": self.now,
            "errors": list(self.errors),
            "data": dict(self.data),
        }


@dataclass
class ScenarioRun:
    """A finished scenario: the service it ran on and every step outcome."""
    service: RewardStreamService
    clock: ManualClock
    outcomes: List[StepOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if not o.success]


def load_scenario(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        scenario = json.load(handle)
    if not isinstance(scenario, dict):
        raise ValueError(f"{path}: scenario must be a JSON object")
    if not isinstance(scenario.get("steps", []), list):
        raise ValueError(f"{path}: 'steps' must be a list")
    return scenario


def _int(step: Dict[str, Any], key: str) -> int:
    value = step.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Step {step.get('op')!r}: '{key}' must be an integer, got {value!r}")
    return value


def _str(step: Dict[str, Any], key: str) -> str:
    value = step.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Step {step.get('op')!r}: '{key}' must be a non-empty string")
    return value


def _advance(run: ScenarioRun, step: Dict[str, Any]) -> ServiceResult:
    now = run.clock.advance(_int(step, "seconds"))
    return ServiceResult(success=True, data={"now": now})


def _mint(ledger: InMemoryAssetLedger, holders: Dict[str, Any]) -> None:
    for holder, amount in holders.items():
        ledger.mint(holder, int(amount))


_STEPS: Dict[str, Callable[[ScenarioRun, Dict[str, Any]], ServiceResult]] = {
    "stake": lambda r, s: r.service.stake(_str(s, "account"), _int(s, "amount")),
    "withdraw": lambda r, s: r.service.withdraw(_str(s, "account"), _int(s, "amount")),
    "claim": lambda r, s: r.service.claim(_str(s, "account")),
    "exit": lambda r, s: r.service.exit(_str(s, "account")),
    "earned": lambda r, s: r.service.earned(_str(s, "account")),
    "fund": lambda r, s: r.service.fund_rewards(_str(s, "account"), _int(s, "amount")),
    "notify": lambda r, s: r.service.notify_reward_amount(_str(s, "caller"), _int(s, "amount")),
    "set-duration": lambda r, s: r.service.set_rewards_duration(
        _str(s, "caller"), _int(s, "duration"),
    ),
    "pause": lambda r, s: r.service.pause(_str(s, "caller")),
    "unpause": lambda r, s: r.service.unpause(_str(s, "caller")),
    "advance": _advance,
}

STEP_OPS = tuple(sorted(_STEPS))


def run_scenario(
    scenario: Dict[str, Any],
    config: Optional[RewardStreamConfig] = None,
    event_log: Optional[EventLog] = None,
) -> ScenarioRun:
    """Run every step in order. Rejected steps are recorded, not raised.

    Malformed steps (unknown op, missing fields) raise ValueError.
    """
    if config is None:
        config = RewardStreamConfig()
    overrides = scenario.get("config")
    if isinstance(overrides, dict):
        config = config.merged(overrides)

    clock = ManualClock(start=int(scenario.get("start", 0)))
    service = build_in_memory(config, clock=clock, event_log=event_log)

    mint = scenario.get("mint") or {}
    pool = service.pool
    if isinstance(pool.stake_asset, InMemoryAssetLedger):
        _mint(pool.stake_asset, mint.get("stake") or {})
    if isinstance(pool.reward_asset, InMemoryAssetLedger):
        _mint(pool.reward_asset, mint.get("reward") or {})

    run = ScenarioRun(service=service, clock=clock)
    for index, step in enumerate(scenario.get("steps", [])):
        if not isinstance(step, dict):
            raise ValueError(f"Step {index} must be an object")
        op = step.get("op")
        handler = _STEPS.get(op) if isinstance(op, str) else None
        if handler is None:
            raise ValueError(f"Step {index}: unknown op {op!r} (expected one of {', '.join(STEP_OPS)})")
        result = handler(run, step)
        run.outcomes.append(StepOutcome(
            index=index,
            op=op,
            success=result.success,
            now=clock.now(),
            errors=list(result.errors),
            data=dict(result.data),
        ))
    return run
