"""
Shared access to records, the clock and the audit ledger.

Each core component loads a record, checks its preconditions against the
loaded copy and writes back only once every check has passed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..events import create_event
from ..ledger import EventLedger
from ..models import (
    KIND_BATCH,
    KIND_TIMELOCK,
    KIND_TRANSACTION,
    Timelock,
    Transaction,
    TransactionBatch,
)
from ..runtime.clock import Clock
from ..runtime.derivation import derive_vault
from ..runtime.storage import AccountStore


@dataclass
class EngineContext:
    store: AccountStore
    clock: Clock
    ledger: EventLedger = field(default_factory=EventLedger)
    default_capacity: int = 10

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def load_timelock(self, timelock_id: str) -> Timelock:
        return Timelock.from_dict(self.store.fetch(KIND_TIMELOCK, timelock_id))

    def save_timelock(self, timelock: Timelock) -> None:
        self.store.persist(KIND_TIMELOCK, timelock.timelock_id, timelock.to_dict())

    def load_transaction(self, transaction_id: str) -> Transaction:
        return Transaction.from_dict(self.store.fetch(KIND_TRANSACTION, transaction_id))

    def save_transaction(self, transaction: Transaction) -> None:
        self.store.persist(KIND_TRANSACTION, transaction.transaction_id, transaction.to_dict())

    def load_batch(self, batch_id: str) -> TransactionBatch:
        return TransactionBatch.from_dict(self.store.fetch(KIND_BATCH, batch_id))

    def save_batch(self, batch: TransactionBatch) -> None:
        self.store.persist(KIND_BATCH, batch.batch_id, batch.to_dict())

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    def vault_identity(self, timelock: Timelock) -> str:
        """Re-derive the vault from the record, never from a caller claim."""
        identity, _ = derive_vault(timelock.timelock_id, timelock.vault_bump)
        return identity

    def now(self) -> int:
        return self.clock.current_tick()

    def record(
        self,
        event_type: str,
        record_id: str,
        actor: str,
        *,
        tick: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self.ledger.append(
            create_event(
                event_type,
                record_id,
                actor,
                tick=self.now() if tick is None else tick,
                payload=payload,
            )
        )
