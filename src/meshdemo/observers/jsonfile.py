# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/observers/jsonfile.py
from __future__ import annotations
import json
from pathlib import Path
from .events import BaseEvent, short_urn


class JsonFileObserver:
    """
    Appends one JSON object per event to `<run_id>.jsonl`. Resource events
    carry both the full URN and a `resource` field (`type::name`) for grep.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        record = {"type": type(event).__name__, **event.dict()}
        if record.get("urn"):
            record["resource"] = short_urn(record["urn"])
        with self.path.open("a") as f:
            f.write(json.dumps(record, sort_keys=True) + "\n")
