"""
Account storage for timelock records.

Records are JSON-compatible dicts keyed by (kind, record_id). The store
never hands out live references: callers get a copy on fetch and must
``persist`` to make a change visible.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Protocol

from ..errors import AccountNotFound, AlreadyInitialized


class AccountStore(Protocol):
    def create(self, kind: str, record_id: str, data: dict[str, Any]) -> None:
        ...

    def fetch(self, kind: str, record_id: str) -> dict[str, Any]:
        ...

    def persist(self, kind: str, record_id: str, data: dict[str, Any]) -> None:
        ...

    def exists(self, kind: str, record_id: str) -> bool:
        ...

    def list_ids(self, kind: str) -> list[str]:
        ...


class MemoryAccountStore:
    """Dict-backed store for tests and embedding hosts."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, dict[str, Any]]] = {}

    def create(self, kind: str, record_id: str, data: dict[str, Any]) -> None:
        bucket = self._records.setdefault(kind, {})
        if record_id in bucket:
            raise AlreadyInitialized(f"{kind} {record_id} already exists", record_id=record_id)
        bucket[record_id] = copy.deepcopy(data)

    def fetch(self, kind: str, record_id: str) -> dict[str, Any]:
        try:
            return copy.deepcopy(self._records[kind][record_id])
        except KeyError:
            raise AccountNotFound(f"{kind} not found: {record_id}", record_id=record_id) from None

    def persist(self, kind: str, record_id: str, data: dict[str, Any]) -> None:
        if not self.exists(kind, record_id):
            raise AccountNotFound(f"{kind} not found: {record_id}", record_id=record_id)
        self._records[kind][record_id] = copy.deepcopy(data)

    def exists(self, kind: str, record_id: str) -> bool:
        return record_id in self._records.get(kind, {})

    def list_ids(self, kind: str) -> list[str]:
        return sorted(self._records.get(kind, {}))


class FileAccountStore:
    """
    One JSON file per record:

        <state_dir>/accounts/<kind>/<record_id>.json

    Writes go to a temp file first and are renamed into place.
    """

    def __init__(self, state_dir: Path):
        self.state_dir = state_dir
        self.accounts_dir = state_dir / "accounts"

    def _record_path(self, kind: str, record_id: str) -> Path:
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise ValueError(f"invalid record id: {record_id!r}")
        return self.accounts_dir / kind / f"{record_id}.json"

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        temp_path.replace(path)

    def create(self, kind: str, record_id: str, data: dict[str, Any]) -> None:
        path = self._record_path(kind, record_id)
        if path.exists():
            raise AlreadyInitialized(f"{kind} {record_id} already exists", record_id=record_id)
        self._write(path, data)

    def fetch(self, kind: str, record_id: str) -> dict[str, Any]:
        path = self._record_path(kind, record_id)
        if not path.exists():
            raise AccountNotFound(f"{kind} not found: {record_id}", record_id=record_id)
        return json.loads(path.read_text(encoding="utf-8"))

    def persist(self, kind: str, record_id: str, data: dict[str, Any]) -> None:
        path = self._record_path(kind, record_id)
        if not path.exists():
            raise AccountNotFound(f"{kind} not found: {record_id}", record_id=record_id)
        self._write(path, data)

    def exists(self, kind: str, record_id: str) -> bool:
        return self._record_path(kind, record_id).exists()

    def list_ids(self, kind: str) -> list[str]:
        kind_dir = self.accounts_dir / kind
        if not kind_dir.exists():
            return []
        return sorted(p.stem for p in kind_dir.glob("*.json"))
