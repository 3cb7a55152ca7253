# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/stack.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

from pulumi import automation as auto

PASSPHRASE_ENV = "PULUMI_CONFIG_PASSPHRASE"


@dataclass(frozen=True)
class StackSettings:
    """
    Explicit stack configuration handed to the program. Nothing about the
    current stack lives in process-global state.
    """

    stack_name: str = "demo"
    project_name: str = "demo"
    backend_dir: Path = field(default_factory=Path.cwd)
    passphrase: str = "nah"
    # Root for generated local artifacts (kubeconfig, workloads/<name>/).
    work_dir: Path = field(default_factory=Path.cwd)

    @property
    def backend_url(self) -> str:
        return self.backend_dir.resolve().as_uri()

    def env_vars(self) -> Dict[str, str]:
        return {PASSPHRASE_ENV: self.passphrase}


def select_or_create(settings: StackSettings, program: Callable[[], None],
                     extra_env: Optional[Dict[str, str]] = None) -> auto.Stack:
    """Inline-program stack kept in a file backend under `backend_dir`."""
    settings.backend_dir.mkdir(parents=True, exist_ok=True)
    env = settings.env_vars()
    env.update(extra_env or {})

    return auto.create_or_select_stack(
        stack_name=settings.stack_name,
        project_name=settings.project_name,
        program=program,
        opts=auto.LocalWorkspaceOptions(
            env_vars=env,
            project_settings=auto.ProjectSettings(
                name=settings.project_name,
                runtime="python",
                backend=auto.ProjectBackend(url=settings.backend_url),
            ),
        ),
    )


def last_resource_changes(stack: auto.Stack) -> Dict[str, int]:
    """Change counts of the most recent operation, successful or not."""
    try:
        history = stack.history(page_size=1)
    except auto.CommandError:
        return {}
    if not history:
        return {}
    return dict(history[0].resource_changes or {})
