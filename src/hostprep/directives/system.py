# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/system.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe

FSTAB = "/etc/fstab"


@dataclass
class SwapState:
    active: bool
    persisted: bool
    fstab: str


def fstab_has(fstab: str, path: str) -> bool:
    for line in fstab.splitlines():
        fields = line.split()
        if fields and not fields[0].startswith("#") and fields[0] == path:
            return True
    return False


class SwapDirective(Directive):
    """A swap file that is active now and listed in /etc/fstab."""

    kind = "swap"
    section = "system"

    def __init__(self, path: str = "/swapfile", size_gib: int = 3, *, requires: Iterable[str] = ()):
        super().__init__(path, requires=requires)
        self.path = path
        self.size_gib = size_gib

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("swapon"):
            return Probe.unsupported("swapon not available; skipping swap configuration.")

        shown = host.runner.run(["swapon", "--show=NAME", "--noheadings"]).stdout.split()
        raw = host.runner.read_file(FSTAB)
        fstab = raw.decode("utf-8", errors="replace") if raw is not None else ""
        state = SwapState(active=self.path in shown, persisted=fstab_has(fstab, self.path), fstab=fstab)

        if state.active and state.persisted:
            return Probe.satisfied(f"Swap file {self.path} already active.")
        return Probe.divergent(
            f"Swap file {self.path} active={state.active} persisted={state.persisted}",
            detail=state,
        )

    def apply(self, host: HostContext, probe: Probe) -> str:
        state: SwapState = probe.detail
        runner = host.runner
        done = []

        if not state.active:
            if not runner.exists(self.path):
                size = self.size_gib * 1024 ** 3
                if not runner.run(["fallocate", "-l", str(size), self.path]).ok:
                    runner.run(
                        ["dd", "if=/dev/zero", f"of={self.path}", "bs=1M", f"count={self.size_gib * 1024}"],
                        check=True,
                    )
                done.append(f"created {self.size_gib}G swap file")
            runner.run(["chmod", "600", self.path], check=True)
            runner.run(["mkswap", self.path], check=True)
            runner.run(["swapon", self.path], check=True)
            done.append("activated")

        if not state.persisted:
            fstab = state.fstab
            if fstab and not fstab.endswith("\n"):
                fstab += "\n"
            fstab += f"{self.path} none swap sw 0 0\n"
            runner.write_file(FSTAB, fstab.encode(), mode=0o644)
            done.append(f"persisted in {FSTAB}")

        return f"Swap file {self.path}: {', '.join(done)}."


class TimezoneDirective(Directive):
    kind = "timezone"
    section = "system"

    def __init__(self, timezone: str, *, requires: Iterable[str] = ()):
        super().__init__(timezone, requires=requires)
        self.timezone = timezone

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("timedatectl"):
            return Probe.unsupported("timedatectl not available; skipping timezone configuration.")
        current = host.runner.run(["timedatectl", "show", "--property=Timezone", "--value"]).stdout.strip()
        if current == self.timezone:
            return Probe.satisfied(f"Timezone already {self.timezone}.")
        return Probe.divergent(f"Timezone is '{current}'.")

    def apply(self, host: HostContext, probe: Probe) -> str:
        host.runner.run(["timedatectl", "set-timezone", self.timezone], check=True)
        return f"System timezone set to {self.timezone}."
