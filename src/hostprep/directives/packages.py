# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/packages.py

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe

log = logging.getLogger("hostprep")

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptIndex:
    """Refreshes the apt package index at most once until invalidated."""

    def __init__(self) -> None:
        self.fresh = False

    def ensure_fresh(self, host: HostContext) -> None:
        if self.fresh:
            return
        log.debug("Updating apt package lists on %s", host.name)
        host.runner.run(["apt-get", "update", "-y"], env=APT_ENV, check=True)
        self.fresh = True

    def invalidate(self) -> None:
        self.fresh = False


def is_installed(host: HostContext, package: str) -> bool:
    res = host.runner.run(["dpkg-query", "-W", "-f=${Status}", package])
    return res.ok and "install ok installed" in res.stdout


def is_available(host: HostContext, package: str) -> bool:
    return host.runner.run(["apt-cache", "show", package]).ok


class PackageDirective(Directive):
    """
    A set of apt packages that must be installed.

    Missing packages that the repositories do not offer become warnings.
    Everything that is installable goes into a single ``apt-get install``.
    """

    kind = "package"
    section = "packages"

    def __init__(
        self,
        packages: Sequence[str],
        *,
        name: Optional[str] = None,
        optional: bool = False,
        index: Optional[AptIndex] = None,
        requires: Iterable[str] = (),
    ):
        if not packages:
            raise ValueError("PackageDirective needs at least one package")
        super().__init__(name or packages[0], requires=requires)
        self.packages: List[str] = list(packages)
        self.optional = optional
        self.index = index or AptIndex()

    def _unavailable(self, package: str) -> str:
        if self.optional:
            return f"Optional package '{package}' not available; skipped."
        return f"Package '{package}' not found in repositories; skipping."

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("dpkg-query"):
            return Probe.unsupported("dpkg-query not available; cannot manage apt packages.")

        missing = [p for p in self.packages if not is_installed(host, p)]
        if not missing:
            if len(self.packages) == 1:
                return Probe.satisfied(f"Package '{self.packages[0]}' already installed.")
            return Probe.satisfied(f"All {len(self.packages)} packages in '{self.target}' already installed.")

        self.index.ensure_fresh(host)
        available = [p for p in missing if is_available(host, p)]
        warnings = [self._unavailable(p) for p in missing if p not in available]

        if not available:
            if len(missing) < len(self.packages):
                return Probe.satisfied("No new packages to install.", warnings=warnings)
            return Probe.unsupported(
                f"None of the packages in '{self.target}' are available.", warnings=warnings
            )
        return Probe.divergent(
            f"Packages to install: {' '.join(available)}",
            warnings=warnings,
            detail=available,
        )

    def apply(self, host: HostContext, probe: Probe) -> str:
        pending: List[str] = probe.detail
        host.runner.run(["apt-get", "install", "-y", *pending], env=APT_ENV, check=True)
        return f"Installed packages: {' '.join(pending)}"
