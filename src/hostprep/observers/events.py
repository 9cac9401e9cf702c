# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single provisioning run
    host: str         # localhost or user@address

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(host: str, run_id: str | None = None) -> Dict[str, Any]:
    return {
        "ts": now_ts(),
        "run_id": run_id or str(uuid.uuid4()),
        "host": host,
    }


# ---------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PlanComputed(BaseEvent):
    order: List[str]

@dataclass(frozen=True)
class PlanFailed(BaseEvent):
    error: str


# ---------------------------------------------------------------------
# Directive lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunStarted(BaseEvent):
    directives: int

@dataclass(frozen=True)
class DirectiveStarted(BaseEvent):
    id: str

@dataclass(frozen=True)
class DirectiveSatisfied(BaseEvent):
    id: str
    message: str

@dataclass(frozen=True)
class DirectiveApplied(BaseEvent):
    id: str
    message: str
    duration_ms: int

@dataclass(frozen=True)
class DirectiveSkipped(BaseEvent):
    id: str
    reason: str

@dataclass(frozen=True)
class DirectiveFailed(BaseEvent):
    id: str
    error: str

@dataclass(frozen=True)
class DirectiveWarning(BaseEvent):
    id: str
    message: str


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunSummary(BaseEvent):
    applied: int
    satisfied: int
    skipped: int
    failed: int
