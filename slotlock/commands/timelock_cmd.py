"""Timelock CLI commands."""

from __future__ import annotations

import json
from typing import Any, Callable, Sequence

from rich.console import Console
from rich.table import Table

from ..errors import TimelockError
from ..models import AccountMeta, BatchStatus, Timelock, TransactionBatch
from ..program import TimelockProgram
from ..runtime.clock import ManualClock
from ..settings import Settings
from ..util import bytes_from_hex


def _program(settings: Settings) -> TimelockProgram:
    return TimelockProgram.from_settings(settings)


def _guarded(action: Callable[[], int]) -> int:
    """Run a command body, reporting typed engine errors as exit code 1."""
    err = Console(stderr=True)
    try:
        return action()
    except TimelockError as e:
        err.print(f"{e.code}: {e}", style="bold red", markup=False)
        cause = e.__cause__
        if isinstance(cause, TimelockError):
            err.print(f"  caused by {cause.code}: {cause}", style="red", markup=False)
        return 1
    except ValueError as e:
        err.print(f"error: {e}", style="bold red", markup=False)
        return 2


def parse_accounts(specs: Sequence[str]) -> list[AccountMeta]:
    return [AccountMeta.parse(spec) for spec in specs]


def parse_payload(data: str | None) -> bytes:
    return bytes_from_hex(data) if data else b""


def _accounts_repr(accounts: Sequence[AccountMeta]) -> str:
    return ", ".join(a.spec() for a in accounts)


def _timelock_dict(program: TimelockProgram, timelock: Timelock) -> dict[str, Any]:
    data = timelock.to_dict()
    data["vault"] = program.vault_identity(timelock.timelock_id)
    return data


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


# -----------------------------------------------------------------------------
# Timelock
# -----------------------------------------------------------------------------


def run_init(settings: Settings, authority: str, delay_ticks: int, *, timelock_id: str | None = None) -> int:
    def action() -> int:
        program = _program(settings)
        timelock = program.initialize_timelock(authority, delay_ticks, timelock_id=timelock_id)
        console = Console()
        console.print(f"timelock {timelock.timelock_id}", style="bold green", markup=False)
        console.print(f"  vault: {program.vault_identity(timelock.timelock_id)}", markup=False)
        return 0

    return _guarded(action)


def run_show(settings: Settings, timelock_id: str, *, output_json: bool = False) -> int:
    def action() -> int:
        program = _program(settings)
        timelock = program.get_timelock(timelock_id)
        data = _timelock_dict(program, timelock)
        if output_json:
            _print_json(data)
            return 0

        console = Console()
        console.print(f"timelock {timelock.timelock_id}", style="bold", markup=False)
        console.print(f"  authority: {timelock.authority}", markup=False)
        console.print(f"  delay:     {timelock.delay_ticks} ticks", markup=False)
        console.print(f"  vault:     {data['vault']} (bump {timelock.vault_bump})", markup=False)
        console.print(f"  queued:    {len(timelock.transaction_queue)} transaction(s)", markup=False)
        return 0

    return _guarded(action)


# -----------------------------------------------------------------------------
# Single transactions
# -----------------------------------------------------------------------------


def run_tx_create(
    settings: Settings,
    timelock_id: str,
    caller: str,
    target: str,
    accounts: Sequence[str],
    data: str | None,
    *,
    transaction_id: str | None = None,
) -> int:
    def action() -> int:
        program = _program(settings)
        tx = program.create_transaction(
            timelock_id, caller, target, parse_accounts(accounts), parse_payload(data), transaction_id=transaction_id
        )
        ready_at = program.get_timelock(timelock_id).ready_at(tx.enqueued_at_tick)
        Console().print(
            f"transaction {tx.transaction_id} queued at tick {tx.enqueued_at_tick} (ready at {ready_at})",
            style="green",
            markup=False,
        )
        return 0

    return _guarded(action)


def run_tx_governed(
    settings: Settings,
    timelock_id: str,
    caller: str,
    *,
    delay_ticks: int | None = None,
    new_authority: str | None = None,
    transaction_id: str | None = None,
) -> int:
    """Queue a governed set_delay / set_authority against the timelock itself."""

    def action() -> int:
        program = _program(settings)
        if delay_ticks is not None:
            op = program.set_delay_operation(timelock_id, delay_ticks)
        elif new_authority is not None:
            op = program.set_authority_operation(timelock_id, new_authority)
        else:
            raise ValueError("either delay_ticks or new_authority is required")
        tx = program.create_transaction(
            timelock_id, caller, op.target, op.accounts, op.payload, transaction_id=transaction_id
        )
        Console().print(f"transaction {tx.transaction_id} queued (governed)", style="green", markup=False)
        return 0

    return _guarded(action)


def run_tx_execute(
    settings: Settings,
    transaction_id: str,
    *,
    accounts: Sequence[str] = (),
    signers: Sequence[str] = (),
) -> int:
    def action() -> int:
        program = _program(settings)
        remaining = parse_accounts(accounts) if accounts else None
        tx = program.execute_transaction(transaction_id, remaining_accounts=remaining, signers=signers)
        Console().print(f"transaction {tx.transaction_id} executed", style="bold green", markup=False)
        return 0

    return _guarded(action)


def run_tx_show(settings: Settings, transaction_id: str, *, output_json: bool = False) -> int:
    def action() -> int:
        program = _program(settings)
        tx = program.get_transaction(transaction_id)
        if output_json:
            _print_json(tx.to_dict())
            return 0
        console = Console()
        console.print(f"transaction {tx.transaction_id}", style="bold", markup=False)
        console.print(f"  timelock: {tx.timelock}", markup=False)
        console.print(f"  target:   {tx.target}", markup=False)
        console.print(f"  accounts: {_accounts_repr(tx.accounts)}", markup=False)
        console.print(f"  payload:  {len(tx.payload)} bytes", markup=False)
        console.print(f"  enqueued: tick {tx.enqueued_at_tick}", markup=False)
        console.print(f"  executed: {'yes' if tx.did_execute else 'no'}", markup=False)
        return 0

    return _guarded(action)


def run_tx_list(settings: Settings, timelock_id: str) -> int:
    def action() -> int:
        program = _program(settings)
        timelock = program.get_timelock(timelock_id)

        table = Table(title=f"Transactions ({timelock_id})")
        table.add_column("transaction_id", style="cyan", no_wrap=True)
        table.add_column("target", style="magenta")
        table.add_column("enqueued", justify="right")
        table.add_column("ready_at", justify="right")
        table.add_column("executed")

        for tx in program.queue.list_for(timelock_id):
            table.add_row(
                tx.transaction_id,
                tx.target,
                str(tx.enqueued_at_tick),
                str(timelock.ready_at(tx.enqueued_at_tick)),
                "yes" if tx.did_execute else "no",
            )
        Console().print(table)
        return 0

    return _guarded(action)


# -----------------------------------------------------------------------------
# Batches
# -----------------------------------------------------------------------------


def run_batch_create(
    settings: Settings,
    timelock_id: str,
    batch_authority: str,
    *,
    capacity: int | None = None,
    batch_id: str | None = None,
) -> int:
    def action() -> int:
        batch = _program(settings).create_batch(timelock_id, batch_authority, capacity, batch_id=batch_id)
        Console().print(
            f"batch {batch.batch_id} created (capacity {batch.capacity})", style="green", markup=False
        )
        return 0

    return _guarded(action)


def run_batch_add(
    settings: Settings,
    batch_id: str,
    caller: str,
    target: str,
    accounts: Sequence[str],
    data: str | None,
) -> int:
    def action() -> int:
        batch = _program(settings).add_operation(
            batch_id, caller, target, parse_accounts(accounts), parse_payload(data)
        )
        Console().print(
            f"batch {batch.batch_id}: operation {len(batch.operations) - 1} added "
            f"({len(batch.operations)}/{batch.capacity})",
            markup=False,
        )
        return 0

    return _guarded(action)


def run_batch_transition(settings: Settings, action_name: str, batch_id: str, caller: str) -> int:
    """seal / enqueue / cancel."""

    def action() -> int:
        program = _program(settings)
        transition: dict[str, Callable[[str, str], TransactionBatch]] = {
            "seal": program.seal_batch,
            "enqueue": program.enqueue_batch,
            "cancel": program.cancel_batch,
        }
        batch = transition[action_name](batch_id, caller)
        message = f"batch {batch.batch_id}: {batch.status.value}"
        if batch.status == BatchStatus.ENQUEUED and batch.enqueued_at_tick is not None:
            ready_at = program.get_timelock(batch.timelock).ready_at(batch.enqueued_at_tick)
            message += f" at tick {batch.enqueued_at_tick} (ready at {ready_at})"
        Console().print(message, style="green", markup=False)
        return 0

    return _guarded(action)


def run_batch_execute(
    settings: Settings,
    batch_id: str,
    *,
    run_all: bool = False,
    accounts: Sequence[str] = (),
    signers: Sequence[str] = (),
) -> int:
    def action() -> int:
        if run_all and accounts:
            # Each operation carries its own account list.
            raise ValueError("--account applies to a single operation and cannot be combined with --all")
        program = _program(settings)
        console = Console()
        remaining = parse_accounts(accounts) if accounts else None
        while True:
            receipt = program.execute_batch_next(batch_id, remaining_accounts=remaining, signers=signers)
            console.print(
                f"batch {batch_id}: operation {receipt.index} -> {receipt.target} executed "
                f"({receipt.remaining} remaining)",
                markup=False,
            )
            if receipt.completed:
                console.print(f"batch {batch_id}: executed", style="bold green", markup=False)
                return 0
            if not run_all:
                return 0

    return _guarded(action)


def run_batch_show(settings: Settings, batch_id: str, *, output_json: bool = False) -> int:
    def action() -> int:
        program = _program(settings)
        batch = program.get_batch(batch_id)
        if output_json:
            _print_json(batch.to_dict())
            return 0

        console = Console()
        console.print(
            f"batch {batch.batch_id} [{batch.status.value}] "
            f"{len(batch.operations)}/{batch.capacity} operations",
            style="bold",
            markup=False,
        )
        console.print(f"  timelock:        {batch.timelock}", markup=False)
        console.print(f"  batch authority: {batch.batch_authority}", markup=False)
        if batch.enqueued_at_tick is not None:
            console.print(f"  enqueued:        tick {batch.enqueued_at_tick}", markup=False)

        table = Table()
        table.add_column("#", justify="right")
        table.add_column("target", style="magenta")
        table.add_column("accounts")
        table.add_column("payload", justify="right")
        table.add_column("executed")
        for index, op in enumerate(batch.operations):
            table.add_row(
                str(index),
                op.target,
                str(len(op.accounts)),
                f"{len(op.payload)}B",
                "yes" if op.did_execute else "no",
            )
        console.print(table)
        return 0

    return _guarded(action)


# -----------------------------------------------------------------------------
# Clock and events
# -----------------------------------------------------------------------------


def run_clock(settings: Settings, *, advance: int | None = None) -> int:
    def action() -> int:
        clock = _program(settings).clock
        if advance is not None:
            if not isinstance(clock, ManualClock):
                Console(stderr=True).print("clock is wall-driven and cannot be advanced", style="bold red")
                return 1
            clock.advance(advance)
        Console().print(f"tick {clock.current_tick()}", markup=False)
        return 0

    return _guarded(action)


def run_events(
    settings: Settings,
    *,
    record_id: str | None = None,
    event_type: str | None = None,
    last_n: int | None = None,
    output_json: bool = False,
) -> int:
    def action() -> int:
        program = _program(settings)
        events = program.ledger.query(record_id=record_id, event_type=event_type, order="desc", limit=last_n)
        events.reverse()

        if output_json:
            _print_json([e.to_dict() for e in events])
            return 0

        table = Table(title="Events")
        table.add_column("tick", justify="right")
        table.add_column("event", style="cyan")
        table.add_column("record", no_wrap=True)
        table.add_column("actor", style="dim")
        for event in events:
            table.add_row(str(event.tick), event.event_type, event.record_id, event.actor)
        Console().print(table)
        return 0

    return _guarded(action)
