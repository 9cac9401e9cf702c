# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/reconcile/reconciler.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .directive import Directive, ExecutionResult, Outcome, Probe, ProbeState
from .planner import plan
from ..errors import CommandError, HostprepError, PrivilegeError
from ..execution.runner import BaseRunner
from ..host.context import HostContext

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    now_ts,
    RunStarted,
    DirectiveStarted,
    DirectiveSatisfied,
    DirectiveApplied,
    DirectiveSkipped,
    DirectiveFailed,
    DirectiveWarning,
    RunSummary,
)

log = logging.getLogger("hostprep")

# prerequisites ending like this make dependents inapplicable
_BLOCKING = (Outcome.FAILED, Outcome.SKIPPED_UNSUPPORTED)


@dataclass
class RunReport:
    results: List[ExecutionResult] = field(default_factory=list)

    def add(self, result: ExecutionResult) -> None:
        self.results.append(result)

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    def by_id(self) -> Dict[str, ExecutionResult]:
        return {r.directive_id: r for r in self.results}

    @property
    def all_satisfied(self) -> bool:
        return all(r.outcome == Outcome.ALREADY_SATISFIED for r in self.results)

    @property
    def converged(self) -> bool:
        """True when nothing was applied or failed (skips allowed)."""
        return all(
            r.outcome in (Outcome.ALREADY_SATISFIED, Outcome.SKIPPED_UNSUPPORTED)
            for r in self.results
        )

    def summary(self) -> str:
        return (
            f"APPLIED={self.count(Outcome.APPLIED)} "
            f"SATISFIED={self.count(Outcome.ALREADY_SATISFIED)} "
            f"SKIPPED={self.count(Outcome.SKIPPED_UNSUPPORTED)} "
            f"FAILED={self.count(Outcome.FAILED)}"
        )


def ensure_privileged(runner: BaseRunner) -> None:
    try:
        uid = runner.effective_uid()
    except (CommandError, ValueError) as e:
        raise PrivilegeError(f"Cannot determine effective user on {runner.describe()}: {e}") from e
    if uid != 0:
        raise PrivilegeError("This script must be run as root.")


class Reconciler:
    """
    Converges an ordered set of directives on one host, one at a time.

    Only the privilege precondition aborts a run; every other failure is
    recorded against its directive and the run moves on.
    """

    def __init__(
        self,
        host: HostContext,
        *,
        observers: Optional[List] = None,
        run_id: Optional[str] = None,
    ):
        self.host = host
        self.bus = EventBus(observers or [])
        self._run_ctx = new_ctx(host=host.name, run_id=run_id)

    @property
    def run_id(self) -> str:
        return self._run_ctx["run_id"]

    def _ctx(self) -> dict:
        return {**self._run_ctx, "ts": now_ts()}

    def run(self, directives: Sequence[Directive]) -> RunReport:
        ensure_privileged(self.host.runner)

        ordered = plan(directives, bus=self.bus, run_ctx=self._ctx())
        self.bus.emit(RunStarted(directives=len(ordered), **self._ctx()))

        report = RunReport()
        outcomes: Dict[str, Outcome] = {}
        for directive in ordered:
            result = self._reconcile(directive, outcomes)
            outcomes[directive.id] = result.outcome
            report.add(result)

        self.bus.emit(
            RunSummary(
                applied=report.count(Outcome.APPLIED),
                satisfied=report.count(Outcome.ALREADY_SATISFIED),
                skipped=report.count(Outcome.SKIPPED_UNSUPPORTED),
                failed=report.count(Outcome.FAILED),
                **self._ctx(),
            )
        )
        log.info("run %s finished: %s", self.run_id, report.summary())
        return report

    def _reconcile(self, directive: Directive, outcomes: Dict[str, Outcome]) -> ExecutionResult:
        did = directive.id
        self.bus.emit(DirectiveStarted(id=did, **self._ctx()))

        blocked = [dep for dep in directive.requires if outcomes.get(dep) in _BLOCKING]
        if blocked:
            reason = f"Skipping {did}: prerequisite {', '.join(blocked)} did not converge."
            self.bus.emit(DirectiveSkipped(id=did, reason=reason, **self._ctx()))
            return ExecutionResult(did, Outcome.SKIPPED_UNSUPPORTED, reason)

        t0 = time.time()
        probe: Optional[Probe] = None
        try:
            probe = directive.probe(self.host)
            for w in probe.warnings:
                self.bus.emit(DirectiveWarning(id=did, message=w, **self._ctx()))

            if probe.state == ProbeState.SATISFIED:
                self.bus.emit(DirectiveSatisfied(id=did, message=probe.message, **self._ctx()))
                return ExecutionResult(did, Outcome.ALREADY_SATISFIED, probe.message, list(probe.warnings))

            if probe.state == ProbeState.UNSUPPORTED:
                leftovers = directive.cleanup_unsupported(self.host) or []
                for w in leftovers:
                    self.bus.emit(DirectiveWarning(id=did, message=w, **self._ctx()))
                self.bus.emit(DirectiveSkipped(id=did, reason=probe.message, **self._ctx()))
                return ExecutionResult(
                    did, Outcome.SKIPPED_UNSUPPORTED, probe.message, [*probe.warnings, *leftovers]
                )

            log.debug("%s diverged: %s", did, probe.message)
            message = directive.apply(self.host, probe) or f"{did} applied."
        except (HostprepError, OSError) as e:
            error = str(e) or type(e).__name__
            log.debug("%s failed", did, exc_info=True)
            self.bus.emit(DirectiveFailed(id=did, error=error, **self._ctx()))
            return ExecutionResult(
                did,
                Outcome.FAILED,
                error,
                list(probe.warnings) if probe else [],
                duration_ms=int((time.time() - t0) * 1000),
            )

        duration_ms = int((time.time() - t0) * 1000)
        self.bus.emit(DirectiveApplied(id=did, message=message, duration_ms=duration_ms, **self._ctx()))
        return ExecutionResult(did, Outcome.APPLIED, message, list(probe.warnings), duration_ms=duration_ms)
