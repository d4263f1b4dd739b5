"""
Root Typer application for the actionlane CLI.

Commands::

    actionlane run PLAN --root DIR [--json] [--artifacts-dir D]
    actionlane validate PLAN
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape
from typer import Typer

from actionlane.cli.utils import console, err_console, fail, output_records, summarize
from actionlane.core.errors import ActionLaneError, ConfigError
from actionlane.core.logging import configure_logging
from actionlane.core.settings import ActionLaneSettings, get_settings
from actionlane.execution.models import ActionRecord, ActionStatus
from actionlane.execution.observers import StatusLogger
from actionlane.execution.plan import Plan
from actionlane.execution.sequencer import ActionSequencer
from actionlane.execution.stream import ActionStreamConsumer
from actionlane.sandbox.local import LocalSandbox

app = Typer(
    name="actionlane",
    help="actionlane - execute file, shell and contract actions one at a time.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from actionlane import __version__

        typer.echo(f"actionlane {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """actionlane CLI - replay action plans against a sandbox directory."""


# ── Commands ─────────────────────────────────────────────────────────────


def _load_plan(path: Path) -> Plan:
    try:
        return Plan.from_yaml_file(path)
    except ActionLaneError as exc:
        fail(exc)


async def _execute(plan: Plan, sandbox: LocalSandbox, settings: ActionLaneSettings, *, echo_err: bool) -> list[ActionRecord]:
    def sink(chunk: bytes) -> None:
        typer.echo(chunk.decode("utf-8", errors="replace"), nl=False, err=echo_err)

    sequencer = ActionSequencer(sandbox, settings=settings, sink=sink)
    sequencer.store.subscribe(StatusLogger())
    async with sequencer:
        await ActionStreamConsumer(sequencer).consume(plan.events())
        await sequencer.join()
    return sequencer.store.all()


@app.command("run")
def run_plan(
    plan_path: Path = typer.Argument(..., help="YAML plan file", exists=True, dir_okay=False),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Sandbox root directory"),
    json_out: bool = typer.Option(False, "--json", help="Print records as JSON"),
    artifacts_dir: str | None = typer.Option(None, "--artifacts-dir", help="Default contract output directory"),  # noqa: UP007
) -> None:
    """Execute a plan against a local sandbox directory.

    Shell output is echoed as it arrives.  Exits with code 1 when any
    action failed.

    Example::

        actionlane run plan.yaml --root ./app
        actionlane run plan.yaml --root ./app --json
    """
    try:
        settings = get_settings()
    except ValidationError as exc:
        fail(ConfigError(f"Invalid settings: {exc}", cause=exc))
    if artifacts_dir:
        settings = settings.model_copy(update={"artifacts_dir": artifacts_dir.rstrip("/") or "."})
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    plan = _load_plan(plan_path)
    try:
        sandbox = LocalSandbox(root, kill_timeout_seconds=settings.kill_timeout_seconds)
    except OSError as exc:
        fail(f"Cannot use sandbox root {root}: {exc}")

    try:
        records = asyncio.run(_execute(plan, sandbox, settings, echo_err=json_out))
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=130)
    except ActionLaneError as exc:
        fail(exc)

    output_records(records, as_json=json_out, title="Actions")
    counts = summarize(records)
    if not json_out:
        console.print(
            f"[dim]{counts['complete']} complete, {counts['failed']} failed, "
            f"{counts['aborted']} aborted, {counts['pending']} pending[/dim]"
        )
    if any(r.status is ActionStatus.FAILED for r in records):
        raise typer.Exit(code=1)


@app.command("validate")
def validate_plan(
    plan_path: Path = typer.Argument(..., help="YAML plan file", exists=True, dir_okay=False),
) -> None:
    """Parse a plan and list its actions without executing anything."""
    plan = _load_plan(plan_path)
    console.print(f"[bold green]Plan OK[/bold green]: {len(plan.actions)} action(s)")
    for event in plan.events():
        marker = "" if event.content_complete else " [dim](not finalized)[/dim]"
        console.print(
            f"  {escape(event.action_id)}  {event.action.kind.value:<8} {escape(event.action.location)}{marker}"
        )
