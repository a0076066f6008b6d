"""Audit persistence for pool events."""

from rewardstream.persistence.event_log import CHAIN_ROOT, EventKind, EventLog, EventRecord

__all__ = ["CHAIN_ROOT", "EventKind", "EventLog", "EventRecord"]
