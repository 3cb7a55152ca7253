# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid

@dataclass(frozen=True)
class BaseEvent:
    ts: str                 # ISO timestamp
    run_id: str             # correlates all events in a single apply/destroy
    stack: str              # deployment stack name
    project: Optional[str]  # project the stack belongs to

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(stack: str, project: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "run_id": run_id or str(uuid.uuid4()),
        "stack": stack,
        "project": project,
    }


def short_urn(urn: str) -> str:
    """`urn:pulumi:demo::demo::a$gcp:compute/instance:Instance::test` -> `gcp:compute/instance:Instance::test`"""
    parts = urn.split("::")
    if len(parts) < 4:
        return urn
    return f"{parts[2].split('$')[-1]}::{parts[-1]}"


# ----- Operation -----

@dataclass(frozen=True)
class OperationStarted(BaseEvent):
    kind: str         # "update" | "destroy" | "refresh"

@dataclass(frozen=True)
class OperationCancelled(BaseEvent):
    kind: str


# ----- Per-resource steps -----

@dataclass(frozen=True)
class ResourceStarted(BaseEvent):
    urn: str
    type: str
    op: str           # "create" | "update" | "replace" | "same" | "delete" | "refresh" ...

@dataclass(frozen=True)
class ResourceSucceeded(BaseEvent):
    urn: str
    type: str
    op: str

@dataclass(frozen=True)
class ResourceFailed(BaseEvent):
    urn: str
    type: str
    op: str
    status: int


# ----- Engine diagnostics (warnings and errors only) -----

@dataclass(frozen=True)
class Diagnostic(BaseEvent):
    severity: str     # "warning" | "error"
    message: str
    urn: Optional[str] = None


# ----- Summary -----

@dataclass(frozen=True)
class UpdateSummary(BaseEvent):
    kind: str
    resource_changes: Dict[str, int] = field(default_factory=dict)
    duration_seconds: int = 0
    ok: bool = True
