# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/files.py

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional

from ..errors import DirectiveError
from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe
from ..templating import render


class FileContentDirective(Directive):
    """
    A file whose bytes must equal a rendered template.

    Writes go through the runner's temp-then-rename ``write_file``. An
    optional reload command runs after a write so the new content takes
    effect (``sysctl -p``).
    """

    kind = "file"
    section = "system"

    def __init__(
        self,
        path: str,
        template: str,
        context: Dict,
        *,
        mode: int = 0o644,
        owner: Optional[str] = None,
        required_dir: Optional[str] = None,
        reload: Optional[List[str]] = None,
        note: Optional[str] = None,
        requires: Iterable[str] = (),
    ):
        super().__init__(path, requires=requires)
        self.path = PurePosixPath(path)
        self.template = template
        self.context = dict(context)
        self.mode = mode
        self.owner = owner
        self.required_dir = required_dir
        self.reload = list(reload) if reload else None
        self.note = note

    def desired(self) -> bytes:
        return render(self.template, **self.context).encode()

    def probe(self, host: HostContext) -> Probe:
        runner = host.runner
        if self.required_dir and not runner.is_dir(self.required_dir):
            return Probe.unsupported(
                f"Configuration directory '{self.required_dir}' not found; skipping {self.path}."
            )

        desired = self.desired()
        if runner.read_file(self.path) == desired:
            return Probe.satisfied(f"{self.path} already up to date.")
        return Probe.divergent(f"{self.path} differs from desired content.", detail=desired)

    def apply(self, host: HostContext, probe: Probe) -> str:
        runner = host.runner
        parent = self.path.parent
        if not runner.is_dir(parent):
            runner.make_dir(parent)
        runner.write_file(self.path, probe.detail, mode=self.mode, owner=self.owner)

        if self.reload:
            res = runner.run(self.reload)
            if not res.ok:
                raise DirectiveError(
                    f"Wrote {self.path} but `{' '.join(self.reload)}` failed: {res.diagnostic()}"
                )
        return self.note or f"{self.path} written."
