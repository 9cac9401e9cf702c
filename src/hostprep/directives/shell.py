# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/shell.py

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .base import require_account
from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe

ZSHRC_TEMPLATE = ".oh-my-zsh/templates/zshrc.zsh-template"


def render_zshrc(current: Optional[str], base: str, plugins: Sequence[str], exports: Sequence[str]) -> str:
    """
    Return ``current`` (or ``base`` when there is no zshrc yet) with every
    ``plugins=`` line replaced by the wanted list and each export line
    present exactly as given.
    """
    text = base if current is None else current
    lines: List[str] = text.splitlines()
    plugins_line = f"plugins=({' '.join(plugins)})"

    if any(line.startswith("plugins=") for line in lines):
        lines = [plugins_line if line.startswith("plugins=") else line for line in lines]
    else:
        lines += ["", plugins_line]

    for export in exports:
        if export not in lines:
            lines.append(export)
    return "\n".join(lines) + "\n"


class ZshrcDirective(Directive):
    kind = "zshrc"
    section = "shell"

    def __init__(self, user: str, plugins: Sequence[str], exports: Sequence[str], *, requires: Iterable[str] = ()):
        super().__init__(user, requires=requires)
        self.user = user
        self.plugins = list(plugins)
        self.exports = list(exports)

    def probe(self, host: HostContext) -> Probe:
        account, unsupported = require_account(host, self.user, "shell configuration")
        if unsupported:
            return unsupported

        path = account.home / ".zshrc"
        raw = host.runner.read_file(path)
        current = raw.decode("utf-8", errors="replace") if raw is not None else None

        warnings = []
        base = ""
        if current is None:
            template = host.runner.read_file(account.home / ZSHRC_TEMPLATE)
            if template is None:
                warnings.append(f"Oh My Zsh template not found for '{self.user}'; writing a minimal ~/.zshrc.")
            else:
                base = template.decode("utf-8", errors="replace")

        desired = render_zshrc(current, base, self.plugins, self.exports).encode()
        if raw == desired:
            return Probe.satisfied(f"{path} already configured for user '{self.user}'.")
        owner = f"{self.user}:{account.gid}"
        return Probe.divergent(f"{path} needs updating.", warnings=warnings, detail=(path, desired, owner))

    def apply(self, host: HostContext, probe: Probe) -> str:
        path, desired, owner = probe.detail
        host.runner.write_file(path, desired, mode=0o644, owner=owner)
        return f"Updated {path} with plugins and PATH exports for user '{self.user}'."
