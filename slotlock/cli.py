"""CLI entrypoint for slotlock."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .settings import load_settings


def _configure_logging(level: str) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


ACCOUNT_HELP = "Account as IDENTITY[:s][:w] (s = signer, w = writable). Repeatable, in call order."


@click.group()
@click.version_option(__version__, prog_name="slotlock")
@click.option(
    "--state-dir",
    "-d",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="State directory (default: $SLOTLOCK_STATE_DIR or ./.slotlock)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: <state-dir>/slotlock.toml)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, state_dir: Path | None, config_path: Path | None, log_level: str | None) -> None:
    """slotlock - delayed-execution governance engine.

    Queue operations behind a timelock and execute them once enough slot
    ticks have passed.
    """
    ctx.ensure_object(dict)
    try:
        settings = load_settings(state_dir, path=config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid settings: {e}")

    _configure_logging((log_level or settings.log_level).upper())
    ctx.obj["settings"] = settings


@cli.command("init")
@click.argument("authority")
@click.option("--delay", "delay_ticks", type=click.IntRange(min=0), required=True, help="Delay in ticks")
@click.option("--id", "timelock_id", default=None, help="Timelock id (default: new ULID)")
@click.pass_context
def init_cmd(ctx: click.Context, authority: str, delay_ticks: int, timelock_id: str | None) -> None:
    """Create a timelock controlled by AUTHORITY.

    Examples:

        slotlock init alice --delay 10
    """
    from .commands.timelock_cmd import run_init

    sys.exit(run_init(ctx.obj["settings"], authority, delay_ticks, timelock_id=timelock_id))


@cli.command("show")
@click.argument("timelock_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show_cmd(ctx: click.Context, timelock_id: str, output_json: bool) -> None:
    """Show a timelock's authority, delay and vault."""
    from .commands.timelock_cmd import run_show

    sys.exit(run_show(ctx.obj["settings"], timelock_id, output_json=output_json))


# -----------------------------------------------------------------------------
# Single transactions
# -----------------------------------------------------------------------------


@cli.group()
def tx() -> None:
    """Single-operation transactions."""
    pass


@tx.command("create")
@click.argument("timelock_id")
@click.option("--caller", required=True, help="Caller identity (must be the timelock authority)")
@click.option("--target", required=True, help="Target program id")
@click.option("--account", "accounts", multiple=True, help=ACCOUNT_HELP)
@click.option("--data", default=None, help="Payload as hex")
@click.option("--id", "transaction_id", default=None, help="Transaction id (default: new ULID)")
@click.pass_context
def tx_create(
    ctx: click.Context,
    timelock_id: str,
    caller: str,
    target: str,
    accounts: tuple[str, ...],
    data: str | None,
    transaction_id: str | None,
) -> None:
    """Queue one operation against TIMELOCK_ID."""
    from .commands.timelock_cmd import run_tx_create

    sys.exit(
        run_tx_create(
            ctx.obj["settings"], timelock_id, caller, target, accounts, data, transaction_id=transaction_id
        )
    )


@tx.command("set-delay")
@click.argument("timelock_id")
@click.argument("delay_ticks", type=click.IntRange(min=0))
@click.option("--caller", required=True, help="Caller identity (must be the timelock authority)")
@click.option("--id", "transaction_id", default=None, help="Transaction id (default: new ULID)")
@click.pass_context
def tx_set_delay(
    ctx: click.Context, timelock_id: str, delay_ticks: int, caller: str, transaction_id: str | None
) -> None:
    """Queue a governed change of the timelock's delay."""
    from .commands.timelock_cmd import run_tx_governed

    sys.exit(
        run_tx_governed(
            ctx.obj["settings"], timelock_id, caller, delay_ticks=delay_ticks, transaction_id=transaction_id
        )
    )


@tx.command("set-authority")
@click.argument("timelock_id")
@click.argument("new_authority")
@click.option("--caller", required=True, help="Caller identity (must be the timelock authority)")
@click.option("--id", "transaction_id", default=None, help="Transaction id (default: new ULID)")
@click.pass_context
def tx_set_authority(
    ctx: click.Context, timelock_id: str, new_authority: str, caller: str, transaction_id: str | None
) -> None:
    """Queue a governed change of the timelock's authority."""
    from .commands.timelock_cmd import run_tx_governed

    sys.exit(
        run_tx_governed(
            ctx.obj["settings"], timelock_id, caller, new_authority=new_authority, transaction_id=transaction_id
        )
    )


@tx.command("execute")
@click.argument("transaction_id")
@click.option("--account", "accounts", multiple=True, help=ACCOUNT_HELP)
@click.option("--signer", "signers", multiple=True, help="Additional signing identity. Repeatable.")
@click.pass_context
def tx_execute(
    ctx: click.Context, transaction_id: str, accounts: tuple[str, ...], signers: tuple[str, ...]
) -> None:
    """Execute a queued transaction once its delay has passed."""
    from .commands.timelock_cmd import run_tx_execute

    sys.exit(run_tx_execute(ctx.obj["settings"], transaction_id, accounts=accounts, signers=signers))


@tx.command("show")
@click.argument("transaction_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tx_show(ctx: click.Context, transaction_id: str, output_json: bool) -> None:
    """Show a transaction."""
    from .commands.timelock_cmd import run_tx_show

    sys.exit(run_tx_show(ctx.obj["settings"], transaction_id, output_json=output_json))


@tx.command("list")
@click.argument("timelock_id")
@click.pass_context
def tx_list(ctx: click.Context, timelock_id: str) -> None:
    """List transactions queued against TIMELOCK_ID."""
    from .commands.timelock_cmd import run_tx_list

    sys.exit(run_tx_list(ctx.obj["settings"], timelock_id))


# -----------------------------------------------------------------------------
# Batches
# -----------------------------------------------------------------------------


@cli.group()
def batch() -> None:
    """Batches: draft, seal, enqueue, execute one operation at a time."""
    pass


@batch.command("create")
@click.argument("timelock_id")
@click.option("--authority", "batch_authority", required=True, help="Batch authority (drafts and seals)")
@click.option("--capacity", type=click.IntRange(min=1), default=None, help="Max operations (default from settings)")
@click.option("--id", "batch_id", default=None, help="Batch id (default: new ULID)")
@click.pass_context
def batch_create(
    ctx: click.Context, timelock_id: str, batch_authority: str, capacity: int | None, batch_id: str | None
) -> None:
    """Create an empty batch against TIMELOCK_ID."""
    from .commands.timelock_cmd import run_batch_create

    sys.exit(run_batch_create(ctx.obj["settings"], timelock_id, batch_authority, capacity=capacity, batch_id=batch_id))


@batch.command("add")
@click.argument("batch_id")
@click.option("--caller", required=True, help="Caller identity (must be the batch authority)")
@click.option("--target", required=True, help="Target program id")
@click.option("--account", "accounts", multiple=True, help=ACCOUNT_HELP)
@click.option("--data", default=None, help="Payload as hex")
@click.pass_context
def batch_add(
    ctx: click.Context,
    batch_id: str,
    caller: str,
    target: str,
    accounts: tuple[str, ...],
    data: str | None,
) -> None:
    """Append an operation to a batch that is still being drafted."""
    from .commands.timelock_cmd import run_batch_add

    sys.exit(run_batch_add(ctx.obj["settings"], batch_id, caller, target, accounts, data))


@batch.command("seal")
@click.argument("batch_id")
@click.option("--caller", required=True, help="Caller identity (must be the batch authority)")
@click.pass_context
def batch_seal(ctx: click.Context, batch_id: str, caller: str) -> None:
    """Freeze a batch's operations."""
    from .commands.timelock_cmd import run_batch_transition

    sys.exit(run_batch_transition(ctx.obj["settings"], "seal", batch_id, caller))


@batch.command("enqueue")
@click.argument("batch_id")
@click.option("--caller", required=True, help="Caller identity (must be the timelock authority)")
@click.pass_context
def batch_enqueue(ctx: click.Context, batch_id: str, caller: str) -> None:
    """Release a sealed batch; its delay starts now."""
    from .commands.timelock_cmd import run_batch_transition

    sys.exit(run_batch_transition(ctx.obj["settings"], "enqueue", batch_id, caller))


@batch.command("cancel")
@click.argument("batch_id")
@click.option("--caller", required=True, help="Caller identity (must be the timelock authority)")
@click.pass_context
def batch_cancel(ctx: click.Context, batch_id: str, caller: str) -> None:
    """Abort an enqueued batch. No further operation will run."""
    from .commands.timelock_cmd import run_batch_transition

    sys.exit(run_batch_transition(ctx.obj["settings"], "cancel", batch_id, caller))


@batch.command("execute")
@click.argument("batch_id")
@click.option("--all", "run_all", is_flag=True, help="Keep executing until the batch completes")
@click.option("--account", "accounts", multiple=True, help=ACCOUNT_HELP)
@click.option("--signer", "signers", multiple=True, help="Additional signing identity. Repeatable.")
@click.pass_context
def batch_execute(
    ctx: click.Context,
    batch_id: str,
    run_all: bool,
    accounts: tuple[str, ...],
    signers: tuple[str, ...],
) -> None:
    """Execute the next pending operation of an enqueued batch.

    Examples:

        slotlock batch execute 01J...

        slotlock batch execute 01J... --all

    --account checks the next operation only and cannot be combined with --all.
    """
    from .commands.timelock_cmd import run_batch_execute

    sys.exit(run_batch_execute(ctx.obj["settings"], batch_id, run_all=run_all, accounts=accounts, signers=signers))


@batch.command("show")
@click.argument("batch_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def batch_show(ctx: click.Context, batch_id: str, output_json: bool) -> None:
    """Show a batch and its operations."""
    from .commands.timelock_cmd import run_batch_show

    sys.exit(run_batch_show(ctx.obj["settings"], batch_id, output_json=output_json))


# -----------------------------------------------------------------------------
# Clock and audit trail
# -----------------------------------------------------------------------------


@cli.group()
def clock() -> None:
    """The slot clock (file-backed unless configured as wall clock)."""
    pass


@clock.command("show")
@click.pass_context
def clock_show(ctx: click.Context) -> None:
    """Print the current tick."""
    from .commands.timelock_cmd import run_clock

    sys.exit(run_clock(ctx.obj["settings"]))


@clock.command("tick")
@click.argument("ticks", type=click.IntRange(min=0), default=1)
@click.pass_context
def clock_tick(ctx: click.Context, ticks: int) -> None:
    """Advance the file-backed clock by TICKS (default 1)."""
    from .commands.timelock_cmd import run_clock

    sys.exit(run_clock(ctx.obj["settings"], advance=ticks))


@cli.command("events")
@click.option("--record", "record_id", default=None, help="Only events for this timelock/transaction/batch id")
@click.option("--type", "event_type", default=None, help="Only events of this type (e.g. batch.enqueued)")
@click.option("--last", "last_n", type=click.IntRange(min=1), default=None, help="Show only the last N events")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def events_cmd(
    ctx: click.Context,
    record_id: str | None,
    event_type: str | None,
    last_n: int | None,
    output_json: bool,
) -> None:
    """Show the audit trail of state transitions."""
    from .commands.timelock_cmd import run_events

    sys.exit(
        run_events(
            ctx.obj["settings"],
            record_id=record_id,
            event_type=event_type,
            last_n=last_n,
            output_json=output_json,
        )
    )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
