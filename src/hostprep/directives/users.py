# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/users.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe


@dataclass
class UserDrift:
    create: bool = False
    shell: Optional[str] = None
    missing_groups: List[str] = field(default_factory=list)
    home: Optional[PurePosixPath] = None
    gid: Optional[int] = None


def login_shell(host: HostContext, shell: str) -> str:
    if shell.startswith("/"):
        return shell
    return host.which(shell) or f"/usr/bin/{shell}"


class UserDirective(Directive):
    """
    A local account with a given login shell and supplementary groups.

    Groups are only ever added; membership the account already has is left
    alone.
    """

    kind = "user"
    section = "users"

    def __init__(self, name: str, *, shell: str = "zsh", groups: Iterable[str] = (), requires: Iterable[str] = ()):
        super().__init__(name, requires=requires)
        self.name = name
        self.shell = shell
        self.groups = list(groups)

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("useradd"):
            return Probe.unsupported("useradd not available; cannot manage local users.")

        shell = login_shell(host, self.shell)
        account = host.lookup_user(self.name)
        if account is None:
            return Probe.divergent(
                f"User '{self.name}' does not exist.",
                detail=UserDrift(create=True, shell=shell, missing_groups=list(self.groups)),
            )

        current = set(host.user_groups(self.name))
        drift = UserDrift(
            shell=shell if account.shell != shell else None,
            missing_groups=[g for g in self.groups if g not in current],
            home=account.home if not host.runner.is_dir(account.home) else None,
            gid=account.gid,
        )
        if drift.shell is None and not drift.missing_groups and drift.home is None:
            return Probe.satisfied(f"User '{self.name}' already exists.")
        return Probe.divergent(f"User '{self.name}' needs changes.", detail=drift)

    def apply(self, host: HostContext, probe: Probe) -> str:
        drift: UserDrift = probe.detail
        run = host.runner.run
        done = []

        if drift.create:
            run(["useradd", "-m", "-s", drift.shell, self.name], check=True)
            done.append(f"created with {drift.shell}")
        elif drift.shell:
            run(["usermod", "-s", drift.shell, self.name], check=True)
            done.append(f"shell set to {drift.shell}")

        if drift.missing_groups:
            run(["usermod", "-aG", ",".join(drift.missing_groups), self.name], check=True)
            done.append(f"added to {', '.join(drift.missing_groups)}")

        if drift.home is not None:
            host.runner.make_dir(drift.home, owner=f"{self.name}:{drift.gid}")
            done.append(f"home directory {drift.home} created")

        return f"User '{self.name}': {'; '.join(done)}."
