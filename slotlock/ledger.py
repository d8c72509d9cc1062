"""
Append-only audit ledger of timelock events.

INVARIANT: existing lines are never rewritten. The only writes are
``append`` and ``append_many``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, Literal, Sequence

from .events import TimelockEvent


class EventLedger:
    """
    JSONL event ledger.

    With ``path=None`` events are kept in memory only, which is what tests
    and embedding hosts without a state directory use.
    """

    def __init__(self, path: Path | None = None):
        self.path = path
        self._memory: list[TimelockEvent] = []

    def append(self, event: TimelockEvent) -> None:
        self.append_many([event])

    def append_many(self, events: Sequence[TimelockEvent]) -> None:
        if not events:
            return
        if self.path is None:
            self._memory.extend(events)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            for event in events:
                f.write(event.to_json() + "\n")

    def iter_events(self) -> Iterator[TimelockEvent]:
        """Events in append order."""
        if self.path is None:
            yield from list(self._memory)
            return
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield TimelockEvent.from_json(line)

    def query(
        self,
        *,
        record_id: str | None = None,
        event_type: str | None = None,
        actor: str | None = None,
        where: Callable[[TimelockEvent], bool] | None = None,
        limit: int | None = None,
        order: Literal["asc", "desc"] = "asc",
    ) -> list[TimelockEvent]:
        """
        Filter events. ``limit`` applies after ordering, so
        ``order="desc", limit=5`` yields the five most recent matches.
        """
        results: list[TimelockEvent] = []
        for event in self.iter_events():
            if record_id is not None and event.record_id != record_id:
                continue
            if event_type is not None and event.event_type != event_type:
                continue
            if actor is not None and event.actor != actor:
                continue
            if where is not None and not where(event):
                continue
            results.append(event)

        if order == "desc":
            results.reverse()
        if limit is not None:
            results = results[:limit]
        return results

    def events_for(self, record_id: str) -> list[TimelockEvent]:
        return self.query(record_id=record_id)

    def count(self) -> int:
        return sum(1 for _ in self.iter_events())
