# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/observers/console.py
from __future__ import annotations
import sys
from typing import TextIO
from .events import (
    BaseEvent,
    RunStarted,
    DirectiveSatisfied,
    DirectiveApplied,
    DirectiveSkipped,
    DirectiveFailed,
    DirectiveWarning,
    RunSummary,
)


class ConsoleObserver:
    """Prints [INFO] lines to stdout and [WARN] lines to stderr."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None):
        self.out = out
        self.err = err

    def _info(self, msg: str) -> None:
        print(f"[INFO] {msg}", file=self.out or sys.stdout)

    def _warn(self, msg: str) -> None:
        print(f"[WARN] {msg}", file=self.err or sys.stderr)

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, RunStarted):
            self._info(f"Provisioning {event.host} ({event.directives} directives).")
        elif isinstance(event, (DirectiveSatisfied, DirectiveApplied)):
            self._info(event.message)
        elif isinstance(event, DirectiveSkipped):
            self._warn(event.reason)
        elif isinstance(event, DirectiveWarning):
            self._warn(event.message)
        elif isinstance(event, DirectiveFailed):
            self._warn(f"{event.id}: {event.error}")
        elif isinstance(event, RunSummary):
            self._info(
                f"Setup complete. applied={event.applied} satisfied={event.satisfied} "
                f"skipped={event.skipped} failed={event.failed}"
            )
