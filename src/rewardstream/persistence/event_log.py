"""Hash-chained audit log of pool events.

The service layer appends one record per committed pool operation.
Each record hashes its own canonical JSON form together with the hash of
the record before it, so the log is a chain: editing, dropping or
reordering any persisted line breaks every hash after it.

    record_hash = sha256(canonical(record fields + previous_hash))

Persisted as JSONL, one record per line. Reloading re-derives the chain
and fails closed on the first broken link or repeated event ID.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

CHAIN_ROOT = "sha256:" + "0" * 64


class EventKind(str, enum.Enum):
    """What a pool event records."""
    STAKED = "staked"
    WITHDRAWN = "withdrawn"
    REWARD_PAID = "reward_paid"
    REWARD_ADDED = "reward_added"
    REWARDS_DURATION_UPDATED = "rewards_duration_updated"
    REWARDS_FUNDED = "rewards_funded"
    POOL_PAUSED = "pool_paused"
    POOL_UNPAUSED = "pool_unpaused"


def _chain_hash(fields: dict[str, Any]) -> str:
    body = json.dumps(fields, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(body.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class EventRecord:
    """One immutable link in the audit chain."""
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    previous_hash: str
    event_hash: str

    @classmethod
    def create(
        cls,
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
        previous_hash: str = CHAIN_ROOT,
    ) -> EventRecord:
        """Build a record linked to `previous_hash` and compute its hash."""
        when = (timestamp_utc or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%SZ")
        unsigned = {
            "event_id": event_id,
            "event_kind": event_kind.value,
            "timestamp_utc": when,
            "actor_id": actor_id,
            "payload": payload,
            "previous_hash": previous_hash,
        }
        return cls(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=when,
            actor_id=actor_id,
            payload=payload,
            previous_hash=previous_hash,
            event_hash=_chain_hash(unsigned),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventRecord:
        """Rebuild a persisted record. Raises ValueError if its hash is wrong."""
        unsigned = {k: data[k] for k in (
            "event_id", "event_kind", "timestamp_utc", "actor_id", "payload", "previous_hash",
        )}
        expected = _chain_hash(unsigned)
        if data["event_hash"] != expected:
            raise ValueError(
                f"Integrity check failed: event {data['event_id']} stored hash "
                f"{data['event_hash']} != computed {expected}"
            )
        return cls(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            actor_id=data["actor_id"],
            payload=data["payload"],
            previous_hash=data["previous_hash"],
            event_hash=data["event_hash"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "previous_hash": self.previous_hash,
            "event_hash": self.event_hash,
        }


class EventLog:
    """Append-only audit chain, in memory and optionally on disk.

    Usage:
        log = EventLog(storage_path=Path("data/events.jsonl"))
        log.append(EventRecord.create(
            "EVT-00000001", EventKind.STAKED, "alice", {"amount": 5},
            previous_hash=log.head_hash,
        ))
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._chain: list[EventRecord] = []
        self._ids: set[str] = set()
        if storage_path is not None and storage_path.exists():
            for line_num, line in self._read(storage_path):
                try:
                    self._link(EventRecord.from_dict(json.loads(line)))
                except KeyError as e:
                    raise ValueError(f"{storage_path}:{line_num}: missing field {e}") from e
                except ValueError as e:
                    raise ValueError(f"{storage_path}:{line_num}: {e}") from e

    @property
    def count(self) -> int:
        return len(self._chain)

    @property
    def head_hash(self) -> str:
        """Hash the next record must link to."""
        return self._chain[-1].event_hash if self._chain else CHAIN_ROOT

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._chain[-1] if self._chain else None

    def append(self, event: EventRecord) -> None:
        """Link `event` onto the head of the chain, then persist it.

        Raises ValueError on a repeated event_id or a record that does
        not link to the current head. Nothing is written in that case.
        """
        self._check_link(event)
        if self._storage_path is not None:
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with self._storage_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False))
                handle.write("\n")
        self._link(event)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        return [e for e in self._chain if kind is None or e.event_kind == kind]

    def events_for(self, actor_id: str) -> list[EventRecord]:
        return [e for e in self._chain if e.actor_id == actor_id]

    def verify(self) -> bool:
        """Re-walk the in-memory chain from the root."""
        previous = CHAIN_ROOT
        for event in self._chain:
            if event.previous_hash != previous:
                return False
            unsigned = event.to_dict()
            del unsigned["event_hash"]
            if _chain_hash(unsigned) != event.event_hash:
                return False
            previous = event.event_hash
        return True

    def _check_link(self, event: EventRecord) -> None:
        if event.event_id in self._ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        if event.previous_hash != self.head_hash:
            raise ValueError(
                f"Event {event.event_id} links to {event.previous_hash}, "
                f"expected head {self.head_hash}"
            )

    def _link(self, event: EventRecord) -> None:
        self._check_link(event)
        self._chain.append(event)
        self._ids.add(event.event_id)

    @staticmethod
    def _read(path: Path) -> Iterator[tuple[int, str]]:
        with path.open("r", encoding="utf-8") as handle:
            for line_num, line in enumerate(handle, 1):
                line = line.strip()
                if line:
                    yield line_num, line
