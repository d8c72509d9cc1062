"""
Records owned by the timelock engine.

Records are plain dataclasses. They are loaded from the account store,
mutated by exactly one engine call and written back with ``persist``;
nothing outside the engine writes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

# Record kinds, used as account store namespaces
KIND_TIMELOCK = "timelock"
KIND_TRANSACTION = "transaction"
KIND_BATCH = "batch"


class BatchStatus(str, Enum):
    CREATED = "created"
    SEALED = "sealed"
    ENQUEUED = "enqueued"
    EXECUTED = "executed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {BatchStatus.EXECUTED, BatchStatus.CANCELLED}


@dataclass(frozen=True)
class AccountMeta:
    """One argument identity of a dispatched call."""

    identity: str
    is_signer: bool = False
    is_writable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "is_signer": self.is_signer,
            "is_writable": self.is_writable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccountMeta:
        return cls(
            identity=str(data["identity"]),
            is_signer=bool(data.get("is_signer", False)),
            is_writable=bool(data.get("is_writable", False)),
        )

    @classmethod
    def parse(cls, spec: str) -> AccountMeta:
        """
        Parse ``IDENTITY[:s][:w]``.

        ``s`` marks a signer, ``w`` a writable account.
        """
        identity, flags = spec.strip(), set()
        # Identities may contain ":" themselves (vault:...), so peel flags off the right.
        while True:
            head, sep, tail = identity.rpartition(":")
            if not (sep and head and tail in {"s", "w"}):
                break
            flags.add(tail)
            identity = head
        if not identity:
            raise ValueError(f"empty identity in account spec {spec!r}")
        return cls(identity=identity, is_signer="s" in flags, is_writable="w" in flags)

    def spec(self) -> str:
        """Inverse of ``parse``."""
        return self.identity + (":s" if self.is_signer else "") + (":w" if self.is_writable else "")


def _accounts_to_list(accounts: Sequence[AccountMeta]) -> list[dict[str, Any]]:
    return [a.to_dict() for a in accounts]


def _accounts_from_list(raw: Any) -> list[AccountMeta]:
    return [AccountMeta.from_dict(a) for a in (raw or [])]


@dataclass
class Operation:
    """One queued unit of work: target, ordered accounts, opaque payload."""

    target: str
    accounts: list[AccountMeta] = field(default_factory=list)
    payload: bytes = b""
    did_execute: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "accounts": _accounts_to_list(self.accounts),
            "payload": self.payload.hex(),
            "did_execute": self.did_execute,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Operation:
        return cls(
            target=str(data["target"]),
            accounts=_accounts_from_list(data.get("accounts")),
            payload=bytes.fromhex(data.get("payload", "")),
            did_execute=bool(data.get("did_execute", False)),
        )


@dataclass
class Timelock:
    timelock_id: str
    authority: str
    delay_ticks: int
    vault_bump: int
    # Single-path transactions queued against this timelock, in creation order
    transaction_queue: list[str] = field(default_factory=list)

    def ready_at(self, enqueued_at_tick: int) -> int:
        """First tick at which something enqueued at ``enqueued_at_tick`` may run."""
        return enqueued_at_tick + self.delay_ticks + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "timelock_id": self.timelock_id,
            "authority": self.authority,
            "delay_ticks": self.delay_ticks,
            "vault_bump": self.vault_bump,
            "transaction_queue": list(self.transaction_queue),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Timelock:
        return cls(
            timelock_id=str(data["timelock_id"]),
            authority=str(data["authority"]),
            delay_ticks=int(data["delay_ticks"]),
            vault_bump=int(data["vault_bump"]),
            transaction_queue=list(data.get("transaction_queue", [])),
        )


@dataclass
class Transaction:
    """Single-operation record, enqueued at creation."""

    transaction_id: str
    timelock: str
    target: str
    accounts: list[AccountMeta]
    payload: bytes
    enqueued_at_tick: int
    did_execute: bool = False

    def operation(self) -> Operation:
        return Operation(
            target=self.target,
            accounts=list(self.accounts),
            payload=self.payload,
            did_execute=self.did_execute,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "timelock": self.timelock,
            "target": self.target,
            "accounts": _accounts_to_list(self.accounts),
            "payload": self.payload.hex(),
            "enqueued_at_tick": self.enqueued_at_tick,
            "did_execute": self.did_execute,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transaction:
        return cls(
            transaction_id=str(data["transaction_id"]),
            timelock=str(data["timelock"]),
            target=str(data["target"]),
            accounts=_accounts_from_list(data.get("accounts")),
            payload=bytes.fromhex(data.get("payload", "")),
            enqueued_at_tick=int(data["enqueued_at_tick"]),
            did_execute=bool(data.get("did_execute", False)),
        )


@dataclass
class TransactionBatch:
    batch_id: str
    timelock: str
    batch_authority: str
    capacity: int
    operations: list[Operation] = field(default_factory=list)
    status: BatchStatus = BatchStatus.CREATED
    enqueued_at_tick: int | None = None

    @property
    def is_full(self) -> bool:
        return len(self.operations) >= self.capacity

    def next_pending(self) -> int | None:
        """Index of the first operation not yet executed, or None."""
        for index, op in enumerate(self.operations):
            if not op.did_execute:
                return index
        return None

    def executed_count(self) -> int:
        return sum(1 for op in self.operations if op.did_execute)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "timelock": self.timelock,
            "batch_authority": self.batch_authority,
            "capacity": self.capacity,
            "operations": [op.to_dict() for op in self.operations],
            "status": self.status.value,
            "enqueued_at_tick": self.enqueued_at_tick,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionBatch:
        enqueued = data.get("enqueued_at_tick")
        return cls(
            batch_id=str(data["batch_id"]),
            timelock=str(data["timelock"]),
            batch_authority=str(data["batch_authority"]),
            capacity=int(data["capacity"]),
            operations=[Operation.from_dict(op) for op in data.get("operations", [])],
            status=BatchStatus(data.get("status", BatchStatus.CREATED.value)),
            enqueued_at_tick=int(enqueued) if enqueued is not None else None,
        )
