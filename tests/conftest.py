"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from slotlock import AccountMeta, Timelock, TimelockProgram
from slotlock.runtime import ManualClock, MemoryAccountStore, Program
from slotlock.settings import Settings


class RecorderProgram(Program):
    """Dispatch target that records every call it accepts."""

    def __init__(self, program_id: str = "recorder", *, fail: bool = False):
        self._program_id = program_id
        self.fail = fail
        self.calls: list[tuple[list[AccountMeta], bytes, frozenset[str]]] = []

    @property
    def program_id(self) -> str:
        return self._program_id

    def process(self, accounts: Sequence[AccountMeta], payload: bytes, signers: frozenset[str]) -> None:
        if self.fail:
            raise RuntimeError("recorder is failing")
        self.calls.append((list(accounts), payload, signers))

    @property
    def payloads(self) -> list[bytes]:
        return [payload for _, payload, _ in self.calls]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def program(clock: ManualClock) -> TimelockProgram:
    """In-memory program driven by a manual clock."""
    return TimelockProgram(MemoryAccountStore(), clock)


@pytest.fixture
def recorder(program: TimelockProgram) -> RecorderProgram:
    target = RecorderProgram()
    program.registry.register(target)
    return target


@pytest.fixture
def timelock(program: TimelockProgram) -> Timelock:
    """Timelock ``tl-1`` controlled by alice with a one-tick delay."""
    return program.initialize_timelock("alice", 1, timelock_id="tl-1")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """File-backed settings rooted in a temp state directory."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return Settings(state_dir=state_dir)
