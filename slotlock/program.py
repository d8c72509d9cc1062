"""
The timelock program: one object exposing the whole public surface.

The program is also a dispatch target in its own registry. Governed
instructions (``set_authority``, ``set_delay``) reach it only as queued
operations executed by the engine, signed by the timelock's vault:

    accounts[0]  the timelock record (writable)
    accounts[1]  the vault identity (signer)
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .core import (
    BatchManager,
    ConfigStore,
    EngineContext,
    ExecutionEngine,
    ExecutionReceipt,
    TransactionQueue,
)
from .errors import AccountMismatch, Unauthorized
from .instructions import SET_AUTHORITY, SET_DELAY, decode_instruction, encode_instruction
from .ledger import EventLedger
from .models import AccountMeta, Operation, Timelock, Transaction, TransactionBatch
from .runtime.clock import Clock, FileClock, ManualClock, WallClock
from .runtime.invoke import Invoker, Program, ProgramRegistry, RegistryInvoker
from .runtime.storage import AccountStore, FileAccountStore, MemoryAccountStore
from .settings import Settings

DEFAULT_PROGRAM_ID = "slotlock"


class TimelockProgram(Program):
    def __init__(
        self,
        store: AccountStore | None = None,
        clock: Clock | None = None,
        *,
        ledger: EventLedger | None = None,
        registry: ProgramRegistry | None = None,
        invoker: Invoker | None = None,
        program_id: str = DEFAULT_PROGRAM_ID,
        default_capacity: int = 10,
    ):
        self._program_id = program_id
        self.registry = registry if registry is not None else ProgramRegistry()
        self.ctx = EngineContext(
            store=store if store is not None else MemoryAccountStore(),
            clock=clock if clock is not None else ManualClock(),
            ledger=ledger if ledger is not None else EventLedger(),
            default_capacity=default_capacity,
        )
        self.config = ConfigStore(self.ctx)
        self.queue = TransactionQueue(self.ctx)
        self.batches = BatchManager(self.ctx)
        self.engine = ExecutionEngine(self.ctx, invoker or RegistryInvoker(self.registry))
        self.registry.register(self)

    @classmethod
    def from_settings(cls, settings: Settings, *, registry: ProgramRegistry | None = None) -> TimelockProgram:
        """File-backed program rooted at ``settings.state_dir``."""
        clock: Clock
        if settings.clock == "wall":
            clock = WallClock.anchored(settings.genesis_path, slot_ms=settings.slot_ms)
        else:
            clock = FileClock(settings.clock_path)
        return cls(
            FileAccountStore(settings.state_dir),
            clock,
            ledger=EventLedger(settings.events_path),
            registry=registry,
            program_id=settings.program_id,
            default_capacity=settings.default_capacity,
        )

    @property
    def program_id(self) -> str:
        return self._program_id

    @property
    def clock(self) -> Clock:
        return self.ctx.clock

    @property
    def ledger(self) -> EventLedger:
        return self.ctx.ledger

    # -------------------------------------------------------------------------
    # Config store
    # -------------------------------------------------------------------------

    def initialize_timelock(self, authority: str, delay_ticks: int, *, timelock_id: str | None = None) -> Timelock:
        return self.config.initialize(authority, delay_ticks, timelock_id=timelock_id)

    def set_authority(self, timelock_id: str, new_authority: str, signers: Iterable[str]) -> Timelock:
        return self.config.set_authority(timelock_id, new_authority, signers)

    def set_delay(self, timelock_id: str, new_delay_ticks: int, signers: Iterable[str]) -> Timelock:
        return self.config.set_delay(timelock_id, new_delay_ticks, signers)

    def get_timelock(self, timelock_id: str) -> Timelock:
        return self.config.load(timelock_id)

    def vault_identity(self, timelock_id: str) -> str:
        return self.config.vault_identity(timelock_id)

    # -------------------------------------------------------------------------
    # Single-operation queue
    # -------------------------------------------------------------------------

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
        return self.queue.create_transaction(
            timelock_id, caller, target, accounts, payload, transaction_id=transaction_id
        )

    def execute_transaction(
        self,
        transaction_id: str,
        *,
        remaining_accounts: Sequence[AccountMeta] | None = None,
        signers: Iterable[str] = (),
    ) -> Transaction:
        return self.engine.execute_transaction(
            transaction_id, remaining_accounts=remaining_accounts, signers=signers
        )

    def get_transaction(self, transaction_id: str) -> Transaction:
        return self.queue.load(transaction_id)

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def create_batch(
        self,
        timelock_id: str,
        batch_authority: str,
        capacity: int | None = None,
        *,
        batch_id: str | None = None,
    ) -> TransactionBatch:
        return self.batches.create_batch(timelock_id, batch_authority, capacity, batch_id=batch_id)

    def add_operation(
        self,
        batch_id: str,
        caller: str,
        target: str,
        accounts: Sequence[AccountMeta],
        payload: bytes,
    ) -> TransactionBatch:
        return self.batches.add_operation(batch_id, caller, target, accounts, payload)

    def seal_batch(self, batch_id: str, caller: str) -> TransactionBatch:
        return self.batches.seal_batch(batch_id, caller)

    def enqueue_batch(self, batch_id: str, caller: str) -> TransactionBatch:
        return self.batches.enqueue_batch(batch_id, caller)

    def execute_batch_next(
        self,
        batch_id: str,
        *,
        remaining_accounts: Sequence[AccountMeta] | None = None,
        signers: Iterable[str] = (),
    ) -> ExecutionReceipt:
        return self.engine.execute_batch_next(batch_id, remaining_accounts=remaining_accounts, signers=signers)

    def cancel_batch(self, batch_id: str, caller: str) -> TransactionBatch:
        return self.batches.cancel_batch(batch_id, caller)

    def get_batch(self, batch_id: str) -> TransactionBatch:
        return self.batches.load(batch_id)

    # -------------------------------------------------------------------------
    # Governed operations
    # -------------------------------------------------------------------------

    def _governed_accounts(self, timelock_id: str) -> list[AccountMeta]:
        return [
            AccountMeta(identity=timelock_id, is_signer=False, is_writable=True),
            AccountMeta(identity=self.vault_identity(timelock_id), is_signer=True, is_writable=False),
        ]

    def set_delay_operation(self, timelock_id: str, delay_ticks: int) -> Operation:
        """A ready-to-queue operation that changes the delay of ``timelock_id``."""
        return Operation(
            target=self.program_id,
            accounts=self._governed_accounts(timelock_id),
            payload=encode_instruction(SET_DELAY, delay_ticks=delay_ticks),
        )

    def set_authority_operation(self, timelock_id: str, new_authority: str) -> Operation:
        return Operation(
            target=self.program_id,
            accounts=self._governed_accounts(timelock_id),
            payload=encode_instruction(SET_AUTHORITY, new_authority=new_authority),
        )

    def process(
        self,
        accounts: Sequence[AccountMeta],
        payload: bytes,
        signers: frozenset[str],
    ) -> None:
        name, args = decode_instruction(payload)
        if len(accounts) < 2:
            raise AccountMismatch(f"{name} requires the timelock and its vault as accounts")
        record, vault_meta = accounts[0], accounts[1]
        if not record.is_writable:
            raise AccountMismatch(f"{name}: timelock account must be writable")

        timelock_id = record.identity
        if vault_meta.identity != self.vault_identity(timelock_id) or not vault_meta.is_signer:
            raise Unauthorized(f"{name}: second account must be the signing vault of {timelock_id}")

        if name == SET_DELAY:
            self.config.set_delay(timelock_id, args["delay_ticks"], signers)
        elif name == SET_AUTHORITY:
            self.config.set_authority(timelock_id, args["new_authority"], signers)
