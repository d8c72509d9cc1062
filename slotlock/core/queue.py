"""Single-operation queue: one operation per Transaction record."""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import InvalidArgument, Unauthorized
from ..events import TRANSACTION_CREATED
from ..models import KIND_TRANSACTION, AccountMeta, Transaction
from ..util import new_ulid
from .context import EngineContext

logger = logging.getLogger(__name__)


class TransactionQueue:
    def __init__(self, ctx: EngineContext):
        self.ctx = ctx

    def create_transaction(
        self,
        timelock_id: str,
        caller: str,
        target: str,
        accounts: Sequence[AccountMeta],
        payload: bytes,
        *,
        transaction_id: str | None = None,
    ) -> Transaction:
        """Queue one operation. The delay starts now."""
        timelock = self.ctx.load_timelock(timelock_id)
        if caller != timelock.authority:
            raise Unauthorized(
                f"{caller} is not the authority of timelock {timelock_id}",
                caller=caller,
                timelock=timelock_id,
            )
        if not target:
            raise InvalidArgument("target must not be empty")

        tick = self.ctx.now()
        transaction = Transaction(
            transaction_id=transaction_id or new_ulid(),
            timelock=timelock_id,
            target=target,
            accounts=list(accounts),
            payload=bytes(payload),
            enqueued_at_tick=tick,
        )
        self.ctx.store.create(KIND_TRANSACTION, transaction.transaction_id, transaction.to_dict())

        timelock.transaction_queue.append(transaction.transaction_id)
        self.ctx.save_timelock(timelock)

        self.ctx.record(
            TRANSACTION_CREATED,
            transaction.transaction_id,
            caller,
            tick=tick,
            payload={
                "timelock": timelock_id,
                "target": target,
                "accounts": len(transaction.accounts),
                "payload_bytes": len(transaction.payload),
                "ready_at": timelock.ready_at(tick),
            },
        )
        logger.info(
            "queued transaction %s on %s (ready at tick %d)",
            transaction.transaction_id,
            timelock_id,
            timelock.ready_at(tick),
        )
        return transaction

    def load(self, transaction_id: str) -> Transaction:
        return self.ctx.load_transaction(transaction_id)

    def list_for(self, timelock_id: str) -> list[Transaction]:
        timelock = self.ctx.load_timelock(timelock_id)
        return [self.ctx.load_transaction(tx_id) for tx_id in timelock.transaction_queue]
