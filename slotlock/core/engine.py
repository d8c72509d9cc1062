"""
Execution engine: dispatches queued operations once their delay has passed.

Both entry points share one algorithm:

1. state check (not yet executed / batch enqueued)
2. delay check: current tick must be strictly greater than
   ``enqueued_at_tick + delay_ticks``
3. select the operation (batch: first entry not yet executed)
4. dispatch as the timelock's vault identity
5. on success only, flip ``did_execute`` (and close the batch if done)

A batch advances one operation per call. Callers repeat
``execute_batch_next`` until the batch reports completion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..errors import AccountMismatch, AlreadyExecuted, InvalidState, InvocationFailed, NotReady, Unauthorized
from ..events import BATCH_EXECUTED, BATCH_OPERATION_EXECUTED, TRANSACTION_EXECUTED, create_event
from ..models import AccountMeta, BatchStatus, Operation, Timelock, Transaction
from ..runtime.derivation import VAULT_PREFIX
from ..runtime.invoke import Invoker
from .context import EngineContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionReceipt:
    """Outcome of one successful ``execute_batch_next`` call."""

    batch_id: str
    index: int
    target: str
    tick: int
    completed: bool
    remaining: int


@dataclass(frozen=True)
class _Eligibility:
    """Delay decision captured before dispatch."""

    tick: int
    enqueued_at_tick: int
    delay_ticks: int

    @property
    def ready_at(self) -> int:
        return self.enqueued_at_tick + self.delay_ticks + 1


def match_accounts(
    stored: Sequence[AccountMeta],
    supplied: Sequence[AccountMeta] | None,
    vault: str,
) -> list[AccountMeta]:
    """
    Check caller-supplied accounts against the stored list and return the
    accounts to dispatch with.

    Identities and writability must match slot for slot. Signer flags must
    match too, except on the vault's slot: the vault is signed for by the
    engine, so its flag is always recomputed here.
    """
    if supplied is not None:
        if len(supplied) != len(stored):
            raise AccountMismatch(
                f"expected {len(stored)} accounts, got {len(supplied)}",
                expected=len(stored),
                got=len(supplied),
            )
        for index, (want, got) in enumerate(zip(stored, supplied)):
            if want.identity != got.identity:
                raise AccountMismatch(
                    f"account {index}: expected {want.identity}, got {got.identity}",
                    index=index,
                )
            if want.is_writable != got.is_writable:
                raise AccountMismatch(f"account {index}: writable flag differs", index=index)
            if want.identity != vault and want.is_signer != got.is_signer:
                raise AccountMismatch(f"account {index}: signer flag differs", index=index)

    return [
        AccountMeta(identity=a.identity, is_signer=True, is_writable=a.is_writable) if a.identity == vault else a
        for a in stored
    ]


class ExecutionEngine:
    def __init__(self, ctx: EngineContext, invoker: Invoker):
        self.ctx = ctx
        self.invoker = invoker

    def _check_ready(self, timelock: Timelock, enqueued_at_tick: int, record_id: str) -> _Eligibility:
        eligibility = _Eligibility(
            tick=self.ctx.now(),
            enqueued_at_tick=enqueued_at_tick,
            delay_ticks=timelock.delay_ticks,
        )
        if eligibility.tick < eligibility.ready_at:
            # Expected while waiting; not an anomaly.
            logger.debug(
                "%s not ready: tick %d, ready at %d", record_id, eligibility.tick, eligibility.ready_at
            )
            raise NotReady(
                f"{record_id} is not ready until tick {eligibility.ready_at} (now {eligibility.tick})",
                ready_at=eligibility.ready_at,
                tick=eligibility.tick,
            )
        return eligibility

    def _dispatch(
        self,
        timelock: Timelock,
        operation: Operation,
        remaining_accounts: Sequence[AccountMeta] | None,
        signers: Iterable[str],
        record_id: str,
    ) -> str:
        vault = self.ctx.vault_identity(timelock)
        accounts = match_accounts(operation.accounts, remaining_accounts, vault)
        signers = frozenset(signers)
        # Vault identities are only ever asserted by the engine itself.
        forged = sorted(s for s in signers if s.startswith(VAULT_PREFIX))
        if forged:
            raise Unauthorized(f"callers cannot sign as a vault identity: {forged[0]}", record=record_id)
        authorizing = signers | {vault}
        try:
            self.invoker.invoke(operation.target, accounts, operation.payload, authorizing)
        except InvocationFailed:
            logger.warning("dispatch of %s to %s failed; nothing recorded", record_id, operation.target)
            raise
        return vault

    def execute_transaction(
        self,
        transaction_id: str,
        *,
        remaining_accounts: Sequence[AccountMeta] | None = None,
        signers: Iterable[str] = (),
    ) -> Transaction:
        transaction = self.ctx.load_transaction(transaction_id)
        if transaction.did_execute:
            raise AlreadyExecuted(f"transaction {transaction_id} already executed", transaction=transaction_id)

        timelock = self.ctx.load_timelock(transaction.timelock)
        eligibility = self._check_ready(timelock, transaction.enqueued_at_tick, transaction_id)

        vault = self._dispatch(timelock, transaction.operation(), remaining_accounts, signers, transaction_id)

        transaction.did_execute = True
        self.ctx.save_transaction(transaction)
        self.ctx.record(
            TRANSACTION_EXECUTED,
            transaction_id,
            vault,
            tick=eligibility.tick,
            payload={"timelock": transaction.timelock, "target": transaction.target},
        )
        logger.info("executed transaction %s at tick %d", transaction_id, eligibility.tick)
        return transaction

    def execute_batch_next(
        self,
        batch_id: str,
        *,
        remaining_accounts: Sequence[AccountMeta] | None = None,
        signers: Iterable[str] = (),
    ) -> ExecutionReceipt:
        batch = self.ctx.load_batch(batch_id)
        if batch.status == BatchStatus.EXECUTED:
            raise AlreadyExecuted(f"batch {batch_id} already executed", batch=batch_id)
        if batch.status != BatchStatus.ENQUEUED or batch.enqueued_at_tick is None:
            raise InvalidState(
                f"cannot execute batch {batch_id} in state {batch.status.value}",
                batch=batch_id,
                status=batch.status.value,
            )

        timelock = self.ctx.load_timelock(batch.timelock)
        eligibility = self._check_ready(timelock, batch.enqueued_at_tick, batch_id)

        index = batch.next_pending()
        if index is None:
            raise AlreadyExecuted(f"batch {batch_id} has no pending operations", batch=batch_id)
        operation = batch.operations[index]

        vault = self._dispatch(timelock, operation, remaining_accounts, signers, f"{batch_id}[{index}]")

        operation.did_execute = True
        completed = batch.next_pending() is None
        if completed:
            batch.status = BatchStatus.EXECUTED
        self.ctx.save_batch(batch)

        events = [
            create_event(
                BATCH_OPERATION_EXECUTED,
                batch_id,
                vault,
                tick=eligibility.tick,
                payload={"index": index, "target": operation.target},
            )
        ]
        if completed:
            events.append(
                create_event(
                    BATCH_EXECUTED,
                    batch_id,
                    vault,
                    tick=eligibility.tick,
                    payload={"operations": len(batch.operations)},
                )
            )
        self.ctx.ledger.append_many(events)

        remaining = len(batch.operations) - batch.executed_count()
        logger.info("executed batch %s operation %d (%d remaining)", batch_id, index, remaining)
        return ExecutionReceipt(
            batch_id=batch_id,
            index=index,
            target=operation.target,
            tick=eligibility.tick,
            completed=completed,
            remaining=remaining,
        )
