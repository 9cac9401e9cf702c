# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/services.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..errors import DirectiveError
from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe


@dataclass
class UnitState:
    enabled: bool
    active: bool


def unit_exists(host: HostContext, unit: str) -> bool:
    res = host.runner.run(["systemctl", "list-unit-files", f"{unit}.service", "--no-legend"])
    return res.ok and f"{unit}.service" in res.stdout


def unit_state(host: HostContext, unit: str) -> UnitState:
    run = host.runner.run
    return UnitState(
        enabled=run(["systemctl", "is-enabled", "--quiet", unit]).ok,
        active=run(["systemctl", "is-active", "--quiet", unit]).ok,
    )


class ServiceDirective(Directive):
    """A systemd unit that should be enabled and running, or disabled and stopped."""

    kind = "service"
    section = "services"

    def __init__(self, unit: str, *, running: bool = True, requires: Iterable[str] = ()):
        super().__init__(unit, requires=requires)
        self.unit = unit
        self.running = running

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("systemctl"):
            return Probe.unsupported(f"systemctl not available; cannot manage service '{self.unit}'.")
        if not unit_exists(host, self.unit):
            return Probe.unsupported(f"Service '{self.unit}.service' not found; skipping.")

        state = unit_state(host, self.unit)
        if state.enabled == self.running and state.active == self.running:
            if self.running:
                return Probe.satisfied(f"Service '{self.unit}' already enabled and running.")
            return Probe.satisfied(f"Service '{self.unit}' already inactive and disabled.")
        return Probe.divergent(
            f"Service '{self.unit}' enabled={state.enabled} active={state.active}",
            detail=state,
        )

    def apply(self, host: HostContext, probe: Probe) -> str:
        state: UnitState = probe.detail
        run = host.runner.run

        if self.running:
            if not state.enabled:
                run(["systemctl", "enable", self.unit], check=True)
            if not state.active:
                run(["systemctl", "start", self.unit], check=True)
            if not unit_state(host, self.unit).active:
                raise DirectiveError(f"Service '{self.unit}' did not become active after start.")
            return f"Service '{self.unit}' enabled and started."

        # stop before disable, then confirm it actually went down
        if state.active:
            run(["systemctl", "stop", self.unit], check=True)
        if state.enabled:
            run(["systemctl", "disable", self.unit], check=True)
        if unit_state(host, self.unit).active:
            raise DirectiveError(
                f"Service '{self.unit}' is still active; manual intervention may be required."
            )
        return f"Service '{self.unit}' now inactive and disabled."
