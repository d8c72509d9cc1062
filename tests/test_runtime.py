"""
Tests for host services: clocks, account stores, invocation and the event ledger.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

from slotlock import AccountNotFound, AlreadyInitialized, InvocationFailed
from slotlock.events import (
    BATCH_CREATED,
    TIMELOCK_INITIALIZED,
    TRANSACTION_CREATED,
    TimelockEvent,
    create_event,
)
from slotlock.ledger import EventLedger
from slotlock.runtime import (
    Clock,
    FileAccountStore,
    FileClock,
    ManualClock,
    MemoryAccountStore,
    ProgramRegistry,
    RegistryInvoker,
    WallClock,
)


# -----------------------------------------------------------------------------
# Clocks
# -----------------------------------------------------------------------------


class TestClocks:
    def test_manual_clock(self):
        clock = ManualClock(3)

        assert clock.advance(2) == 5
        assert clock.set(9) == 9
        assert clock.current_tick() == 9
        assert isinstance(clock, Clock)

    def test_manual_clock_is_monotonic(self):
        clock = ManualClock(5)

        with pytest.raises(ValueError):
            clock.set(4)
        with pytest.raises(ValueError):
            clock.advance(-1)
        assert clock.current_tick() == 5

    def test_file_clock_survives_restart(self, tmp_path: Path):
        path = tmp_path / "clock.json"
        FileClock(path).advance(7)

        assert FileClock(path).current_tick() == 7
        assert json.loads(path.read_text()) == {"tick": 7}

    def test_file_clock_starts_at_zero(self, tmp_path: Path):
        clock = FileClock(tmp_path / "clock.json")

        assert clock.current_tick() == 0
        assert not clock.path.exists()

    def test_wall_clock(self):
        clock = WallClock(slot_ms=1000, genesis=time.time() - 10.5)

        assert clock.current_tick() == 10

    def test_anchored_wall_clock_reuses_genesis(self, tmp_path: Path):
        path = tmp_path / "genesis.json"
        first = WallClock.anchored(path, slot_ms=1000)
        path.write_text(json.dumps({"genesis": first.genesis - 10}), encoding="utf-8")

        second = WallClock.anchored(path, slot_ms=1000)

        assert second.genesis == first.genesis - 10
        assert second.current_tick() >= 10
        assert not list(tmp_path.glob("*.tmp"))

    def test_anchored_wall_clock_rejects_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "genesis.json"
        path.write_text('{"tick": 3}', encoding="utf-8")

        with pytest.raises(ValueError, match="invalid genesis"):
            WallClock.anchored(path)

    def test_wall_clock_rejects_bad_slot(self):
        with pytest.raises(ValueError):
            WallClock(slot_ms=0)


# -----------------------------------------------------------------------------
# Account stores
# -----------------------------------------------------------------------------


@pytest.fixture(params=["memory", "file"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return MemoryAccountStore()
    return FileAccountStore(tmp_path)


class TestAccountStore:
    def test_create_and_fetch(self, store):
        store.create("timelock", "tl-1", {"authority": "alice"})

        assert store.fetch("timelock", "tl-1") == {"authority": "alice"}
        assert store.exists("timelock", "tl-1")
        assert not store.exists("batch", "tl-1")

    def test_create_twice(self, store):
        store.create("timelock", "tl-1", {"authority": "alice"})

        with pytest.raises(AlreadyInitialized):
            store.create("timelock", "tl-1", {"authority": "mallory"})
        assert store.fetch("timelock", "tl-1") == {"authority": "alice"}

    def test_missing_record(self, store):
        with pytest.raises(AccountNotFound):
            store.fetch("timelock", "nope")
        with pytest.raises(AccountNotFound):
            store.persist("timelock", "nope", {})

    def test_fetch_returns_copy(self, store):
        store.create("batch", "b-1", {"operations": []})

        store.fetch("batch", "b-1")["operations"].append("sneaky")

        assert store.fetch("batch", "b-1") == {"operations": []}

    def test_persist_replaces(self, store):
        store.create("batch", "b-1", {"status": "created"})
        store.persist("batch", "b-1", {"status": "sealed"})

        assert store.fetch("batch", "b-1") == {"status": "sealed"}

    def test_list_ids(self, store):
        for record_id in ("b-2", "b-1"):
            store.create("batch", record_id, {})

        assert store.list_ids("batch") == ["b-1", "b-2"]
        assert store.list_ids("transaction") == []


class TestFileAccountStore:
    def test_layout(self, tmp_path: Path):
        FileAccountStore(tmp_path).create("timelock", "tl-1", {"authority": "alice"})

        path = tmp_path / "accounts" / "timelock" / "tl-1.json"
        assert json.loads(path.read_text()) == {"authority": "alice"}
        assert not list(path.parent.glob("*.tmp"))

    @pytest.mark.parametrize("record_id", ["", "../escape", "a/b", ".hidden"])
    def test_rejects_unsafe_ids(self, tmp_path: Path, record_id: str):
        with pytest.raises(ValueError, match="invalid record id"):
            FileAccountStore(tmp_path).create("timelock", record_id, {})


# -----------------------------------------------------------------------------
# Invocation
# -----------------------------------------------------------------------------


class TestRegistryInvoker:
    def test_unknown_target(self):
        with pytest.raises(InvocationFailed):
            RegistryInvoker(ProgramRegistry()).invoke("nowhere", [], b"", frozenset())

    def test_registry(self, recorder):
        registry = ProgramRegistry()
        registry.register(recorder)

        assert registry.list_programs() == ["recorder"]
        assert registry.get("recorder") is recorder
        registry.clear()
        assert registry.get("recorder") is None


# -----------------------------------------------------------------------------
# Event ledger
# -----------------------------------------------------------------------------


def _populate(ledger: EventLedger) -> None:
    ledger.append(create_event(TIMELOCK_INITIALIZED, "tl-1", "alice", tick=0))
    ledger.append_many(
        [
            create_event(TRANSACTION_CREATED, "tx-1", "alice", tick=1, payload={"timelock": "tl-1"}),
            create_event(BATCH_CREATED, "b-1", "bob", tick=2),
            create_event(TRANSACTION_CREATED, "tx-2", "alice", tick=3, payload={"timelock": "tl-1"}),
        ]
    )


@pytest.fixture(params=["memory", "file"])
def ledger(request: pytest.FixtureRequest, tmp_path: Path) -> EventLedger:
    return EventLedger(None if request.param == "memory" else tmp_path / "events.jsonl")


class TestEventLedger:
    def test_append_order(self, ledger: EventLedger):
        _populate(ledger)

        assert [e.record_id for e in ledger.iter_events()] == ["tl-1", "tx-1", "b-1", "tx-2"]
        assert ledger.count() == 4

    def test_query_filters(self, ledger: EventLedger):
        _populate(ledger)

        assert [e.record_id for e in ledger.query(event_type=TRANSACTION_CREATED)] == ["tx-1", "tx-2"]
        assert [e.record_id for e in ledger.query(actor="bob")] == ["b-1"]
        assert [e.record_id for e in ledger.query(where=lambda e: e.tick >= 2)] == ["b-1", "tx-2"]
        assert [e.event_type for e in ledger.events_for("tl-1")] == [TIMELOCK_INITIALIZED]

    def test_limit_applies_after_ordering(self, ledger: EventLedger):
        _populate(ledger)

        latest = ledger.query(order="desc", limit=2)

        assert [e.record_id for e in latest] == ["tx-2", "b-1"]

    def test_empty_ledger(self, ledger: EventLedger):
        assert ledger.query() == []
        assert ledger.count() == 0

    def test_jsonl_lines(self, tmp_path: Path):
        ledger = EventLedger(tmp_path / "events.jsonl")
        _populate(ledger)

        lines = (tmp_path / "events.jsonl").read_text().splitlines()
        assert len(lines) == 4
        assert json.loads(lines[1])["payload"] == {"timelock": "tl-1"}


class TestTimelockEvent:
    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="Invalid event_type"):
            create_event("timelock.exploded", "tl-1", "alice", tick=0)

    def test_json_roundtrip(self):
        event = create_event(
            BATCH_CREATED,
            "b-1",
            "bob",
            tick=4,
            payload={"capacity": 3},
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

        assert TimelockEvent.from_json(event.to_json()) == event

    def test_empty_payload_omitted(self):
        event = create_event(BATCH_CREATED, "b-1", "bob", tick=0)

        assert "payload" not in event.to_dict()
