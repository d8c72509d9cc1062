"""
Tests for the slotlock CLI commands.

Command bodies are exercised directly against a file-backed state
directory; the click wiring gets a smoke test through CliRunner.
"""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from slotlock.cli import cli
from slotlock.commands.timelock_cmd import (
    run_batch_add,
    run_batch_create,
    run_batch_execute,
    run_batch_show,
    run_batch_transition,
    run_clock,
    run_events,
    run_init,
    run_show,
    run_tx_create,
    run_tx_execute,
    run_tx_governed,
    run_tx_list,
    run_tx_show,
)
from slotlock.program import TimelockProgram
from slotlock.settings import Settings


def _init(settings: Settings, delay: int = 1) -> None:
    assert run_init(settings, "alice", delay, timelock_id="tl-1") == 0


def test_init_and_show(settings: Settings, capsys) -> None:
    _init(settings)
    captured = capsys.readouterr()
    assert "timelock tl-1" in captured.out
    assert "vault:" in captured.out

    assert run_show(settings, "tl-1", output_json=True) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["authority"] == "alice"
    assert data["delay_ticks"] == 1
    assert data["vault"].startswith("vault:")


def test_show_missing_timelock(settings: Settings, capsys) -> None:
    assert run_show(settings, "nope") == 1

    assert "AccountNotFound" in capsys.readouterr().err


def test_init_twice(settings: Settings, capsys) -> None:
    _init(settings)

    assert run_init(settings, "mallory", 0, timelock_id="tl-1") == 1
    assert "AlreadyInitialized" in capsys.readouterr().err


def test_governed_delay_change(settings: Settings, capsys) -> None:
    _init(settings)
    assert run_tx_governed(settings, "tl-1", "alice", delay_ticks=4, transaction_id="tx-1") == 0
    assert "transaction tx-1 queued" in capsys.readouterr().out

    assert run_tx_execute(settings, "tx-1") == 1
    assert "NotReady" in capsys.readouterr().err

    assert run_clock(settings, advance=2) == 0
    assert "tick 2" in capsys.readouterr().out
    assert run_tx_execute(settings, "tx-1") == 0
    assert "transaction tx-1 executed" in capsys.readouterr().out

    assert run_show(settings, "tl-1", output_json=True) == 0
    assert json.loads(capsys.readouterr().out)["delay_ticks"] == 4


def test_governed_requires_a_change(settings: Settings, capsys) -> None:
    _init(settings)

    assert run_tx_governed(settings, "tl-1", "alice") == 2
    assert "error:" in capsys.readouterr().err


def test_failed_dispatch_reports_cause(settings: Settings, capsys) -> None:
    _init(settings)
    assert run_init(settings, "bob", 0, timelock_id="tl-2") == 0
    op = TimelockProgram.from_settings(settings).set_delay_operation("tl-2", 9)
    accounts = [a.spec() for a in op.accounts]
    assert run_tx_create(settings, "tl-1", "alice", op.target, accounts, op.payload.hex(), transaction_id="tx-1") == 0
    run_clock(settings, advance=2)
    capsys.readouterr()

    assert run_tx_execute(settings, "tx-1") == 1

    err = capsys.readouterr().err
    assert "InvocationFailed" in err
    assert "caused by Unauthorized" in err


def test_tx_create_validates_input(settings: Settings, capsys) -> None:
    _init(settings)

    assert run_tx_create(settings, "tl-1", "alice", "slotlock", [], "zz") == 2
    assert run_tx_create(settings, "tl-1", "mallory", "slotlock", [], "00") == 1
    err = capsys.readouterr().err
    assert "error:" in err
    assert "Unauthorized" in err


def test_tx_show_and_list(settings: Settings, capsys) -> None:
    _init(settings)
    assert run_tx_create(settings, "tl-1", "alice", "slotlock", ["acct-a:w"], "0x0102", transaction_id="tx-1") == 0
    capsys.readouterr()

    assert run_tx_show(settings, "tx-1", output_json=True) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["payload"] == "0102"
    assert data["accounts"] == [{"identity": "acct-a", "is_signer": False, "is_writable": True}]

    assert run_tx_list(settings, "tl-1") == 0
    assert "tx-1" in capsys.readouterr().out


def test_batch_lifecycle(settings: Settings, capsys) -> None:
    _init(settings)
    program = TimelockProgram.from_settings(settings)
    operations = [
        program.set_authority_operation("tl-1", "carol"),
        # Runs last: a longer delay would hold back the operations after it
        program.set_delay_operation("tl-1", 3),
    ]

    assert run_batch_create(settings, "tl-1", "bob", capacity=2, batch_id="b-1") == 0
    for op in operations:
        assert run_batch_add(settings, "b-1", "bob", op.target, [a.spec() for a in op.accounts], op.payload.hex()) == 0
    assert "operation 1 added (2/2)" in capsys.readouterr().out

    assert run_batch_transition(settings, "seal", "b-1", "bob") == 0
    assert run_batch_transition(settings, "enqueue", "b-1", "alice") == 0
    assert "enqueued at tick 0 (ready at 2)" in capsys.readouterr().out

    run_clock(settings, advance=2)
    assert run_batch_execute(settings, "b-1", run_all=True) == 0
    out = capsys.readouterr().out
    assert "operation 0 -> slotlock executed" in out
    assert "batch b-1: executed" in out

    assert run_batch_show(settings, "b-1", output_json=True) == 0
    assert json.loads(capsys.readouterr().out)["status"] == "executed"
    assert run_show(settings, "tl-1", output_json=True) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["delay_ticks"] == 3
    assert data["authority"] == "carol"


def test_batch_invalid_transition(settings: Settings, capsys) -> None:
    _init(settings)
    assert run_batch_create(settings, "tl-1", "bob", batch_id="b-1") == 0

    assert run_batch_transition(settings, "cancel", "b-1", "alice") == 1
    assert "InvalidState" in capsys.readouterr().err


def test_batch_show_table(settings: Settings, capsys) -> None:
    _init(settings)
    run_batch_create(settings, "tl-1", "bob", batch_id="b-1")
    run_batch_add(settings, "b-1", "bob", "slotlock", [], "ff")
    capsys.readouterr()

    assert run_batch_show(settings, "b-1") == 0
    out = capsys.readouterr().out
    assert "batch b-1 [created]" in out
    assert "1B" in out


def test_wall_clock_cannot_advance(tmp_path: Path, capsys) -> None:
    settings = Settings(state_dir=tmp_path, clock="wall")

    assert run_clock(settings, advance=1) == 1
    assert "cannot be advanced" in capsys.readouterr().err


def test_events(settings: Settings, capsys) -> None:
    _init(settings)
    run_batch_create(settings, "tl-1", "bob", batch_id="b-1")
    run_batch_transition(settings, "seal", "b-1", "bob")
    capsys.readouterr()

    assert run_events(settings, output_json=True) == 0
    events = json.loads(capsys.readouterr().out)
    assert [e["event_type"] for e in events] == ["timelock.initialized", "batch.created", "batch.sealed"]

    assert run_events(settings, record_id="b-1", last_n=1, output_json=True) == 0
    (latest,) = json.loads(capsys.readouterr().out)
    assert latest["event_type"] == "batch.sealed"

    assert run_events(settings, event_type="timelock.initialized") == 0
    assert "tl-1" in capsys.readouterr().out


def test_cli_entrypoint(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["--state-dir", str(tmp_path), "init", "alice", "--delay", "0", "--id", "tl-9"])
    assert result.exit_code == 0, result.output
    assert "timelock tl-9" in result.output

    result = runner.invoke(cli, ["-d", str(tmp_path), "show", "tl-9", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["authority"] == "alice"

    result = runner.invoke(cli, ["-d", str(tmp_path), "tx", "execute", "missing"])
    assert result.exit_code == 1


def test_events_last_must_be_positive(tmp_path: Path) -> None:
    runner = CliRunner()
    runner.invoke(cli, ["-d", str(tmp_path), "init", "alice", "--id", "tl-1"])

    result = runner.invoke(cli, ["-d", str(tmp_path), "events", "--last", "0"])

    assert result.exit_code == 2
    assert "--last" in result.output


def test_corrupt_clock_file(settings: Settings, capsys) -> None:
    settings.state_dir.mkdir(parents=True, exist_ok=True)
    settings.clock_path.write_text("{not json", encoding="utf-8")

    assert run_clock(settings) == 2
    assert "error:" in capsys.readouterr().err


def test_corrupt_event_log(settings: Settings, capsys) -> None:
    _init(settings)
    with settings.events_path.open("a", encoding="utf-8") as f:
        f.write("garbage\n")
    capsys.readouterr()

    assert run_events(settings) == 2
    assert "error:" in capsys.readouterr().err


def test_batch_execute_all_rejects_accounts(settings: Settings, capsys) -> None:
    _init(settings)
    run_batch_create(settings, "tl-1", "bob", batch_id="b-1")
    capsys.readouterr()

    assert run_batch_execute(settings, "b-1", run_all=True, accounts=["acct-a"]) == 2
    assert "cannot be combined with --all" in capsys.readouterr().err
