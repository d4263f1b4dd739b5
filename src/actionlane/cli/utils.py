"""
CLI utility helpers - output formatting.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from actionlane.core.errors import ActionLaneError
from actionlane.execution.models import ActionRecord, ActionStatus

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES = {
    ActionStatus.PENDING: "dim",
    ActionStatus.RUNNING: "cyan",
    ActionStatus.COMPLETE: "green",
    ActionStatus.ABORTED: "yellow",
    ActionStatus.FAILED: "bold red",
}


def fail(error: ActionLaneError | str, *, code: int = 1) -> NoReturn:
    """Print an error and exit."""
    if isinstance(error, ActionLaneError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {escape(str(error))}")
    raise typer.Exit(code=code)


def output_records(records: list[ActionRecord], *, as_json: bool = False, title: str = "") -> None:
    """Render action records as a Rich table or JSON."""
    if as_json:
        payload = [r.to_dict() for r in records]
        console.print_json(json.dumps(payload, default=str))
        return

    if not records:
        console.print("[dim]No actions.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    table.add_column("id")
    table.add_column("kind")
    table.add_column("location", overflow="fold")
    table.add_column("status")
    table.add_column("error", overflow="fold")
    for record in records:
        style = _STATUS_STYLES.get(record.status, "")
        table.add_row(
            escape(record.action_id),
            record.spec.kind.value,
            escape(record.spec.location),
            f"[{style}]{record.status.value}[/{style}]" if style else record.status.value,
            escape(record.error or ""),
        )
    console.print(table)


def summarize(records: list[ActionRecord]) -> dict[str, Any]:
    """Count records per status."""
    counts = {status.value: 0 for status in ActionStatus}
    for record in records:
        counts[record.status.value] += 1
    return counts
