# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/cli/app.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict

import typer
import yaml
from pulumi import automation as auto
from pydantic import ValidationError

from meshdemo.config.loader import resolve_config
from meshdemo.logging.log import init_logging
from meshdemo.mesh.program import build_program
from meshdemo.observers.console import ConsoleObserver
from meshdemo.observers.dispatcher import EventBus
from meshdemo.observers.engine import EngineEventForwarder
from meshdemo.observers.events import OperationCancelled, OperationStarted, new_ctx
from meshdemo.observers.jsonfile import JsonFileObserver
from meshdemo.observers.logger import LoggerObserver
from meshdemo.stack import StackSettings, last_resource_changes, select_or_create

# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Provision the demo infra", add_completion=False)

STACK_NAME = "demo"
PROJECT_NAME = "demo"
PASSPHRASE_ENV = "MESHDEMO_CONFIG_PASSPHRASE"
DEFAULT_PASSPHRASE = "nah"
# Stack backend and generated files; defaults to the current directory.
WORK_DIR_ENV = "MESHDEMO_WORK_DIR"


def _print_summary(kind: str, changes: Dict[str, int]) -> None:
    typer.echo(f"{kind} summary: \n{json.dumps(changes, indent=4)}")


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


@app.command()
def demo(
    destroy: bool = typer.Option(False, "--destroy", help="Tear down all the provisioned infra"),
):
    root = Path(os.environ.get(WORK_DIR_ENV) or Path.cwd()).resolve()

    try:
        cfg = resolve_config(root)
    except (ValidationError, yaml.YAMLError, OSError) as e:
        raise _fail(f"invalid configuration: {e}")

    logger, run_id, log_path = init_logging(console_level=cfg.log_level)

    typer.echo("")
    typer.secho("meshdemo", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo("")

    settings = StackSettings(
        stack_name=STACK_NAME,
        project_name=PROJECT_NAME,
        backend_dir=root,
        passphrase=os.environ.get(PASSPHRASE_ENV, DEFAULT_PASSPHRASE),
        work_dir=root,
    )

    bus = EventBus([
        ConsoleObserver(),
        LoggerObserver(logger),
        JsonFileObserver(Path.home() / ".meshdemo" / "logs" / f"{run_id}.jsonl"),
    ])

    kind = "destroy" if destroy else "update"
    forwarder = EngineEventForwarder(bus, kind=kind, stack=STACK_NAME, project=PROJECT_NAME, run_id=run_id)

    def on_output(line: str) -> None:
        # raw engine output; on the console only at log_level DEBUG
        logger.debug(line.rstrip())

    stack = None
    try:
        stack = select_or_create(settings, build_program(cfg, settings))

        # The engine owns the lock; cancel never signals local processes.
        stack.cancel()
        bus.emit(OperationCancelled(**new_ctx(STACK_NAME, PROJECT_NAME, run_id), kind=kind))
        bus.emit(OperationStarted(**new_ctx(STACK_NAME, PROJECT_NAME, run_id), kind=kind))

        if destroy:
            result = stack.destroy(on_output=on_output, on_event=forwarder)
        else:
            stack.refresh(on_output=on_output)
            result = stack.up(on_output=on_output, on_event=forwarder)

    except auto.CommandError as e:
        logger.debug("%s failed", kind, exc_info=True)
        err = _fail(f"{kind} failed: {e}")
        if stack is not None:
            _print_summary(kind, last_resource_changes(stack))
        raise err
    except OSError as e:
        logger.debug("%s failed", kind, exc_info=True)
        raise _fail(f"{kind} failed: {e}")

    _print_summary(kind, result.summary.resource_changes or {})


def main() -> None:
    app()


if __name__ == "__main__":
    main()
