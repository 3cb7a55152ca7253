# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/observers/logger.py
from __future__ import annotations
import logging
from .events import BaseEvent, short_urn

_CONTEXT = ("ts", "run_id", "stack", "project")


class LoggerObserver:
    """
    Writes every event to the run log as `stack=<s> <Event> urn=<short> k=v ...`.
    Logged at DEBUG: the file keeps it, the console is left to ConsoleObserver.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = {k: v for k, v in event.dict().items() if k not in _CONTEXT}
        urn = d.pop("urn", None)
        parts = [f"stack={event.stack}", type(event).__name__]
        if urn:
            parts.append(f"urn={short_urn(urn)}")
        parts += [f"{k}={v}" for k, v in d.items()]
        self.logger.debug(" ".join(parts))
