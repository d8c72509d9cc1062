"""
Immutable event types for the timelock audit ledger.

Each successful state transition appends one event. Events are the audit
trail, not the source of truth: records live in the account store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# Config store
TIMELOCK_INITIALIZED = "timelock.initialized"
TIMELOCK_AUTHORITY_SET = "timelock.authority_set"
TIMELOCK_DELAY_SET = "timelock.delay_set"

# Single-operation queue
TRANSACTION_CREATED = "transaction.created"
TRANSACTION_EXECUTED = "transaction.executed"

# Batch manager
BATCH_CREATED = "batch.created"
BATCH_OPERATION_ADDED = "batch.operation_added"
BATCH_SEALED = "batch.sealed"
BATCH_ENQUEUED = "batch.enqueued"
BATCH_OPERATION_EXECUTED = "batch.operation_executed"
BATCH_EXECUTED = "batch.executed"
BATCH_CANCELLED = "batch.cancelled"

EVENT_TYPES = frozenset({
    TIMELOCK_INITIALIZED,
    TIMELOCK_AUTHORITY_SET,
    TIMELOCK_DELAY_SET,
    TRANSACTION_CREATED,
    TRANSACTION_EXECUTED,
    BATCH_CREATED,
    BATCH_OPERATION_ADDED,
    BATCH_SEALED,
    BATCH_ENQUEUED,
    BATCH_OPERATION_EXECUTED,
    BATCH_EXECUTED,
    BATCH_CANCELLED,
})


@dataclass(frozen=True)
class TimelockEvent:
    """One line of events.jsonl. Never modified once written."""

    event_type: str  # One of EVENT_TYPES
    record_id: str  # timelock, transaction or batch id
    actor: str  # caller identity, vault identity, or "system"
    tick: int  # clock tick at which the transition happened
    timestamp: datetime

    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {self.event_type}")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "event_type": self.event_type,
            "record_id": self.record_id,
            "actor": self.actor,
            "tick": self.tick,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.payload:
            result["payload"] = self.payload
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelockEvent:
        return cls(
            event_type=data["event_type"],
            record_id=data["record_id"],
            actor=data["actor"],
            tick=int(data["tick"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            payload=data.get("payload", {}),
        )

    @classmethod
    def from_json(cls, line: str) -> TimelockEvent:
        return cls.from_dict(json.loads(line))


def create_event(
    event_type: str,
    record_id: str,
    actor: str,
    *,
    tick: int,
    payload: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> TimelockEvent:
    return TimelockEvent(
        event_type=event_type,
        record_id=record_id,
        actor=actor,
        tick=tick,
        timestamp=timestamp or datetime.now(timezone.utc),
        payload=payload or {},
    )
