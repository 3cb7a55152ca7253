# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/observers/engine.py
from __future__ import annotations

from typing import Any, Dict, Optional

from .dispatcher import EventBus
from .events import (
    Diagnostic,
    ResourceFailed,
    ResourceStarted,
    ResourceSucceeded,
    UpdateSummary,
    new_ctx,
)

_REPORTED_SEVERITIES = ("warning", "error")


def _text(value: Any) -> str:
    # OpType and friends are str enums
    return str(getattr(value, "value", value))


class EngineEventForwarder:
    """
    `on_event` callback for the automation API. Turns Pulumi engine events
    into meshdemo events on the bus, tagged with this run's stack and id.
    """

    def __init__(self, bus: EventBus, *, kind: str, stack: str, project: Optional[str], run_id: str):
        self.bus = bus
        self.kind = kind
        self.stack = stack
        self.project = project
        self.run_id = run_id
        self.failed = False

    def _ctx(self) -> Dict[str, Any]:
        return new_ctx(self.stack, self.project, self.run_id)

    def __call__(self, event: Any) -> None:
        if event.resource_pre_event is not None:
            md = event.resource_pre_event.metadata
            self.bus.emit(ResourceStarted(**self._ctx(), urn=md.urn, type=md.type, op=_text(md.op)))

        elif event.res_outputs_event is not None:
            md = event.res_outputs_event.metadata
            self.bus.emit(ResourceSucceeded(**self._ctx(), urn=md.urn, type=md.type, op=_text(md.op)))

        elif event.res_op_failed_event is not None:
            failed = event.res_op_failed_event
            md = failed.metadata
            self.failed = True
            self.bus.emit(ResourceFailed(
                **self._ctx(), urn=md.urn, type=md.type, op=_text(md.op), status=failed.status,
            ))

        elif event.diagnostic_event is not None:
            diag = event.diagnostic_event
            if diag.severity in _REPORTED_SEVERITIES:
                self.bus.emit(Diagnostic(
                    **self._ctx(), severity=diag.severity, message=diag.message.strip(), urn=diag.urn or None,
                ))

        elif event.summary_event is not None:
            summary = event.summary_event
            changes = {_text(op): n for op, n in (summary.resource_changes or {}).items()}
            self.bus.emit(UpdateSummary(
                **self._ctx(),
                kind=self.kind,
                resource_changes=changes,
                duration_seconds=summary.duration_seconds,
                ok=not self.failed,
            ))
