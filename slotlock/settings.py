"""
Engine settings loaded from ``slotlock.toml``.

Lookup order for the state directory: explicit argument, then
``SLOTLOCK_STATE_DIR``, then ``./.slotlock``. The settings file is read from
the state directory unless a path is given.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

SETTINGS_FILENAME = "slotlock.toml"
DEFAULT_STATE_DIR = ".slotlock"
CLOCK_KINDS = frozenset({"file", "wall"})
LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class Settings:
    state_dir: Path
    program_id: str = "slotlock"
    default_capacity: int = 10
    log_level: str = "WARNING"
    clock: str = "file"
    slot_ms: int = 400

    def __post_init__(self) -> None:
        if not self.program_id:
            raise ValueError("program_id must not be empty")
        if self.default_capacity < 1:
            raise ValueError("default_capacity must be a positive integer")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(LOG_LEVELS)}")
        if self.clock not in CLOCK_KINDS:
            raise ValueError(f"clock must be one of {sorted(CLOCK_KINDS)}")
        if self.slot_ms <= 0:
            raise ValueError("slot_ms must be positive")

    @property
    def events_path(self) -> Path:
        return self.state_dir / "events.jsonl"

    @property
    def clock_path(self) -> Path:
        return self.state_dir / "clock.json"

    @property
    def genesis_path(self) -> Path:
        return self.state_dir / "genesis.json"


def _coerce_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return value


def load_settings(state_dir: Path | None = None, *, path: Path | None = None) -> Settings:
    """Load settings, applying environment overrides last."""
    import tomllib

    if state_dir is None:
        env_dir = os.environ.get("SLOTLOCK_STATE_DIR")
        state_dir = Path(env_dir) if env_dir else Path(DEFAULT_STATE_DIR)

    settings_path = path or state_dir / SETTINGS_FILENAME
    data: dict[str, Any] = {}
    if settings_path.exists():
        data = tomllib.loads(settings_path.read_text(encoding="utf-8"))
        # [slotlock] table is accepted as well as top-level keys
        if isinstance(data.get("slotlock"), dict):
            data = data["slotlock"]

    configured_dir = data.get("state_dir")
    if isinstance(configured_dir, str) and configured_dir and path is not None:
        state_dir = Path(configured_dir)

    settings = Settings(
        state_dir=state_dir,
        program_id=str(data.get("program_id", "slotlock")).strip(),
        default_capacity=_coerce_int(data, "default_capacity", 10),
        log_level=str(data.get("log_level", "WARNING")).upper(),
        clock=str(data.get("clock", "file")).strip().lower(),
        slot_ms=_coerce_int(data, "slot_ms", 400),
    )

    env_level = os.environ.get("SLOTLOCK_LOG_LEVEL")
    if env_level:
        settings = replace(settings, log_level=env_level.upper())
    return settings
