# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/observers/logger.py
from __future__ import annotations
import logging
from typing import Dict, Type

from .events import (
    BaseEvent,
    DirectiveApplied,
    DirectiveFailed,
    DirectiveSatisfied,
    DirectiveSkipped,
    DirectiveStarted,
    PlanComputed,
)
from ..reconcile.directive import Outcome

_OUTCOMES: Dict[Type[BaseEvent], Outcome] = {
    DirectiveSatisfied: Outcome.ALREADY_SATISFIED,
    DirectiveApplied: Outcome.APPLIED,
    DirectiveSkipped: Outcome.SKIPPED_UNSUPPORTED,
    DirectiveFailed: Outcome.FAILED,
}

# too chatty for INFO on a full profile
_DEBUG_EVENTS = (DirectiveStarted, PlanComputed)


class LoggerObserver:
    """
    Writes each event to the run log as one ``[EVENT]`` line.

    The log file is per run, so the timestamp and run id are left out.
    Directive results carry their outcome. Nothing is logged above INFO;
    the console observer reports failures and warnings on the terminal.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        fields = {k: v for k, v in event.dict().items() if k not in ("ts", "run_id")}
        outcome = _OUTCOMES.get(type(event))
        if outcome is not None:
            fields["outcome"] = outcome.name

        level = logging.DEBUG if isinstance(event, _DEBUG_EVENTS) else logging.INFO
        line = ", ".join(f"{k}={v}" for k, v in fields.items())
        self.logger.log(level, "[EVENT] %s: %s", type(event).__name__, line)
