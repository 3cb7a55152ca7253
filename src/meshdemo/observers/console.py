# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/observers/console.py
import typer

from .events import (
    BaseEvent,
    Diagnostic,
    OperationCancelled,
    OperationStarted,
    ResourceFailed,
    ResourceStarted,
    ResourceSucceeded,
    UpdateSummary,
    short_urn,
)

# "same" steps are noise on a rerun
_QUIET_OPS = ("same", "read")


class ConsoleObserver:
    """One short line per step, colored by outcome."""

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, OperationStarted):
            typer.secho(f"{event.kind} of stack '{event.stack}'", bold=True)
        elif isinstance(event, OperationCancelled):
            typer.secho(f"cleared any in-progress operation on '{event.stack}' before {event.kind}", fg=typer.colors.YELLOW)
        elif isinstance(event, ResourceStarted):
            if event.op not in _QUIET_OPS:
                typer.echo(f"  {event.op:<16} {short_urn(event.urn)}")
        elif isinstance(event, ResourceSucceeded):
            if event.op not in _QUIET_OPS:
                typer.secho(f"  {'done':<16} {short_urn(event.urn)}", fg=typer.colors.GREEN)
        elif isinstance(event, ResourceFailed):
            typer.secho(f"  {event.op + ' failed':<16} {short_urn(event.urn)}", fg=typer.colors.RED, err=True)
        elif isinstance(event, Diagnostic):
            where = f" {short_urn(event.urn)}" if event.urn else ""
            color = typer.colors.RED if event.severity == "error" else typer.colors.YELLOW
            typer.secho(f"  {event.severity}{where}: {event.message}", fg=color, err=True)
        elif isinstance(event, UpdateSummary):
            status = "ok" if event.ok else "failed"
            typer.echo(f"{event.kind} {status} in {event.duration_seconds}s")
