"""
Slot clocks.

The engine never waits on a clock; it only reads ``current_tick()`` to
decide eligibility. Hosts advance the clock.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Monotonic, externally advanced tick source."""

    def current_tick(self) -> int:
        ...


def _write_atomic(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    temp_path.write_text(json.dumps(data), encoding="utf-8")
    temp_path.replace(path)


class ManualClock:
    """In-process clock advanced explicitly by the host (or a test)."""

    def __init__(self, tick: int = 0):
        if tick < 0:
            raise ValueError("tick must be non-negative")
        self._tick = tick

    def current_tick(self) -> int:
        return self._tick

    def advance(self, ticks: int = 1) -> int:
        if ticks < 0:
            raise ValueError("clock cannot move backwards")
        self._tick += ticks
        return self._tick

    def set(self, tick: int) -> int:
        if tick < self._tick:
            raise ValueError(f"clock cannot move backwards ({self._tick} -> {tick})")
        self._tick = tick
        return self._tick


class FileClock(ManualClock):
    """
    Manual clock whose tick survives process restarts.

    Stored as ``{"tick": N}``; written atomically on every change.
    """

    def __init__(self, path: Path):
        self.path = path
        tick = 0
        if path.exists():
            tick = int(json.loads(path.read_text(encoding="utf-8")).get("tick", 0))
        super().__init__(tick)

    def _save(self) -> None:
        _write_atomic(self.path, {"tick": self._tick})

    def advance(self, ticks: int = 1) -> int:
        tick = super().advance(ticks)
        self._save()
        return tick

    def set(self, tick: int) -> int:
        tick = super().set(tick)
        self._save()
        return tick


class WallClock:
    """One tick per ``slot_ms`` milliseconds of wall time since ``genesis``."""

    def __init__(self, slot_ms: int = 400, genesis: float | None = None):
        if slot_ms <= 0:
            raise ValueError("slot_ms must be positive")
        self.slot_ms = slot_ms
        self.genesis = time.time() if genesis is None else genesis

    @classmethod
    def anchored(cls, path: Path, slot_ms: int = 400) -> WallClock:
        """
        Wall clock whose genesis is fixed on first use and stored at ``path``.

        Every later instance reads the same genesis, so ticks keep counting
        across process restarts instead of starting over at zero.
        """
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict) or not isinstance(data.get("genesis"), (int, float)):
                raise ValueError(f"invalid genesis file: {path}")
            genesis = float(data["genesis"])
        else:
            genesis = time.time()
            _write_atomic(path, {"genesis": genesis})
        return cls(slot_ms=slot_ms, genesis=genesis)

    def current_tick(self) -> int:
        elapsed_ms = (time.time() - self.genesis) * 1000
        return max(0, int(elapsed_ms // self.slot_ms))
