# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import json
import logging
from types import SimpleNamespace

from meshdemo.observers.console import ConsoleObserver
from meshdemo.observers.dispatcher import EventBus
from meshdemo.observers.engine import EngineEventForwarder
from meshdemo.observers.events import (
    Diagnostic,
    ResourceFailed,
    ResourceStarted,
    ResourceSucceeded,
    UpdateSummary,
    new_ctx,
    short_urn,
)
from meshdemo.observers.jsonfile import JsonFileObserver
from meshdemo.observers.logger import LoggerObserver

from fakes import Capture, engine_event, step

URN = "urn:pulumi:demo::demo::meshdemo:istio:VmService$gcp:compute/instance:Instance::test"


class Broken:
    def notify(self, event):
        raise RuntimeError("observer is down")


class Op:
    """Stands in for the automation API's str enums."""

    def __init__(self, value): self.value = value


def _forwarder(bus):
    return EngineEventForwarder(bus, kind="update", stack="demo", project="demo", run_id="r1")


def test_short_urn_keeps_leaf_type_and_name():
    assert short_urn(URN) == "gcp:compute/instance:Instance::test"
    assert short_urn("not-a-urn") == "not-a-urn"


def test_engine_events_are_forwarded():
    cap = Capture()
    fwd = _forwarder(EventBus([cap]))

    fwd(engine_event(resource_pre_event=step(Op("create"), "test")))
    fwd(engine_event(res_outputs_event=step(Op("create"), "test")))
    fwd(engine_event(summary_event=SimpleNamespace(resource_changes={Op("create"): 1}, duration_seconds=3)))

    started, = cap.of(ResourceStarted)
    assert (started.op, started.type, started.run_id) == ("create", "gcp:compute/instance:Instance", "r1")
    assert cap.of(ResourceSucceeded)[0].urn == started.urn
    summary, = cap.of(UpdateSummary)
    assert summary.resource_changes == {"create": 1}
    assert summary.duration_seconds == 3
    assert summary.ok is True


def test_failed_step_marks_the_summary_failed():
    cap = Capture()
    fwd = _forwarder(EventBus([cap]))
    failed = step("create", "test")
    failed.status = 1

    fwd(engine_event(res_op_failed_event=failed))
    fwd(engine_event(summary_event=SimpleNamespace(resource_changes={"create": 2}, duration_seconds=1)))

    assert cap.of(ResourceFailed)[0].status == 1
    assert cap.of(UpdateSummary)[0].ok is False


def test_only_warnings_and_errors_are_reported():
    cap = Capture()
    fwd = _forwarder(EventBus([cap]))

    for severity in ("debug", "info", "warning", "error"):
        fwd(engine_event(diagnostic_event=SimpleNamespace(severity=severity, message=f"{severity}\n", urn="")))

    assert [(d.severity, d.message, d.urn) for d in cap.of(Diagnostic)] == [
        ("warning", "warning", None),
        ("error", "error", None),
    ]


def test_broken_observer_does_not_stop_the_others(caplog):
    cap = Capture()
    bus = EventBus([Broken(), cap])
    ev = ResourceFailed(**new_ctx("demo", "demo", run_id="r1"), urn=URN, type="t", op="create", status=1)

    with caplog.at_level(logging.WARNING, logger="meshdemo"):
        bus.emit(ev)

    assert cap.events == [ev]
    assert "observer Broken dropped ResourceFailed" in caplog.text


def test_json_file_observer_appends_one_line_per_event(tmp_path):
    path = tmp_path / "logs" / "r1.jsonl"
    ob = JsonFileObserver(path)
    ctx = new_ctx("demo", "demo", run_id="r1")

    ob.notify(ResourceFailed(**ctx, urn=URN, type="t", op="create", status=1))
    ob.notify(UpdateSummary(**ctx, kind="update", resource_changes={"create": 1}, ok=False))

    lines = [json.loads(l) for l in path.read_text().splitlines()]
    assert [l["type"] for l in lines] == ["ResourceFailed", "UpdateSummary"]
    assert lines[0]["resource"] == "gcp:compute/instance:Instance::test"
    assert "resource" not in lines[1]
    assert lines[1]["resource_changes"] == {"create": 1}
    assert {l["run_id"] for l in lines} == {"r1"}


def test_logger_observer_formats_stack_and_short_urn(caplog):
    ob = LoggerObserver(logging.getLogger("meshdemo.test"))
    ev = ResourceStarted(**new_ctx("demo", "demo", run_id="r1"), urn=URN, type="t", op="create")

    with caplog.at_level(logging.DEBUG, logger="meshdemo.test"):
        ob.notify(ev)

    assert caplog.records[0].levelno == logging.DEBUG
    assert caplog.records[0].getMessage() == (
        "stack=demo ResourceStarted urn=gcp:compute/instance:Instance::test type=t op=create"
    )


def test_console_skips_unchanged_resources(capsys):
    ob = ConsoleObserver()
    ctx = new_ctx("demo", "demo", run_id="r1")

    ob.notify(ResourceStarted(**ctx, urn=URN, type="t", op="same"))
    ob.notify(ResourceStarted(**ctx, urn=URN, type="t", op="create"))
    ob.notify(ResourceFailed(**ctx, urn=URN, type="t", op="create", status=1))

    out, err = capsys.readouterr()
    assert out.splitlines() == ["  create           gcp:compute/instance:Instance::test"]
    assert "create failed" in err
