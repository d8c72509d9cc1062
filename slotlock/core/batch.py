"""
Batch manager: ordered, capacity-bounded groups of operations.

Lifecycle:

    created --seal--> sealed --enqueue--> enqueued --(last op runs)--> executed
                                              |
                                              +--cancel--> cancelled

The batch authority drafts (add, seal); the timelock authority releases
(enqueue) and may abort a released batch (cancel). Sealing before enqueue
means no operation can be appended once the delay clock is running.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import BatchFull, InvalidArgument, InvalidState, Unauthorized
from ..events import (
    BATCH_CANCELLED,
    BATCH_CREATED,
    BATCH_ENQUEUED,
    BATCH_OPERATION_ADDED,
    BATCH_SEALED,
)
from ..models import KIND_BATCH, AccountMeta, BatchStatus, Operation, TransactionBatch
from ..util import new_ulid
from .context import EngineContext

logger = logging.getLogger(__name__)


def _require_status(batch: TransactionBatch, expected: BatchStatus, action: str) -> None:
    if batch.status != expected:
        raise InvalidState(
            f"cannot {action} batch {batch.batch_id} in state {batch.status.value} "
            f"(requires {expected.value})",
            batch=batch.batch_id,
            status=batch.status.value,
        )


def _require_caller(caller: str, expected: str, role: str, batch: TransactionBatch) -> None:
    if caller != expected:
        raise Unauthorized(
            f"{caller} is not the {role} of batch {batch.batch_id}",
            caller=caller,
            batch=batch.batch_id,
        )


class BatchManager:
    def __init__(self, ctx: EngineContext):
        self.ctx = ctx

    def create_batch(
        self,
        timelock_id: str,
        batch_authority: str,
        capacity: int | None = None,
        *,
        batch_id: str | None = None,
    ) -> TransactionBatch:
        # Owning timelock must exist
        self.ctx.load_timelock(timelock_id)
        if not batch_authority:
            raise InvalidArgument("batch_authority must not be empty")
        capacity = self.ctx.default_capacity if capacity is None else capacity
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidArgument(f"capacity must be a positive integer, got {capacity!r}")

        batch = TransactionBatch(
            batch_id=batch_id or new_ulid(),
            timelock=timelock_id,
            batch_authority=batch_authority,
            capacity=capacity,
        )
        self.ctx.store.create(KIND_BATCH, batch.batch_id, batch.to_dict())
        self.ctx.record(
            BATCH_CREATED,
            batch.batch_id,
            batch_authority,
            payload={"timelock": timelock_id, "capacity": capacity},
        )
        logger.info("created batch %s on %s (capacity=%d)", batch.batch_id, timelock_id, capacity)
        return batch

    def add_operation(
        self,
        batch_id: str,
        caller: str,
        target: str,
        accounts: Sequence[AccountMeta],
        payload: bytes,
    ) -> TransactionBatch:
        batch = self.ctx.load_batch(batch_id)
        _require_status(batch, BatchStatus.CREATED, "add to")
        # Capacity is checked before identity: a full batch is full for everyone.
        if batch.is_full:
            raise BatchFull(
                f"batch {batch_id} is full ({batch.capacity} operations)",
                batch=batch_id,
                capacity=batch.capacity,
            )
        _require_caller(caller, batch.batch_authority, "batch authority", batch)
        if not target:
            raise InvalidArgument("target must not be empty")

        batch.operations.append(Operation(target=target, accounts=list(accounts), payload=bytes(payload)))
        self.ctx.save_batch(batch)
        self.ctx.record(
            BATCH_OPERATION_ADDED,
            batch_id,
            caller,
            payload={"index": len(batch.operations) - 1, "target": target},
        )
        return batch

    def seal_batch(self, batch_id: str, caller: str) -> TransactionBatch:
        batch = self.ctx.load_batch(batch_id)
        _require_caller(caller, batch.batch_authority, "batch authority", batch)
        _require_status(batch, BatchStatus.CREATED, "seal")

        batch.status = BatchStatus.SEALED
        self.ctx.save_batch(batch)
        self.ctx.record(BATCH_SEALED, batch_id, caller, payload={"operations": len(batch.operations)})
        logger.info("sealed batch %s with %d operations", batch_id, len(batch.operations))
        return batch

    def enqueue_batch(self, batch_id: str, caller: str) -> TransactionBatch:
        batch = self.ctx.load_batch(batch_id)
        timelock = self.ctx.load_timelock(batch.timelock)
        _require_caller(caller, timelock.authority, "timelock authority", batch)
        _require_status(batch, BatchStatus.SEALED, "enqueue")

        tick = self.ctx.now()
        batch.status = BatchStatus.ENQUEUED
        batch.enqueued_at_tick = tick
        self.ctx.save_batch(batch)
        self.ctx.record(
            BATCH_ENQUEUED,
            batch_id,
            caller,
            tick=tick,
            payload={"enqueued_at_tick": tick, "ready_at": timelock.ready_at(tick)},
        )
        logger.info("enqueued batch %s at tick %d (ready at %d)", batch_id, tick, timelock.ready_at(tick))
        return batch

    def cancel_batch(self, batch_id: str, caller: str) -> TransactionBatch:
        batch = self.ctx.load_batch(batch_id)
        timelock = self.ctx.load_timelock(batch.timelock)
        _require_caller(caller, timelock.authority, "timelock authority", batch)
        _require_status(batch, BatchStatus.ENQUEUED, "cancel")

        batch.status = BatchStatus.CANCELLED
        self.ctx.save_batch(batch)
        self.ctx.record(
            BATCH_CANCELLED,
            batch_id,
            caller,
            payload={"executed": batch.executed_count(), "operations": len(batch.operations)},
        )
        logger.info("cancelled batch %s after %d/%d operations", batch_id, batch.executed_count(), len(batch.operations))
        return batch

    def load(self, batch_id: str) -> TransactionBatch:
        return self.ctx.load_batch(batch_id)
