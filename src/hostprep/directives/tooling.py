# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/tooling.py

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .base import require_account
from ..execution.context import ExecutionContext
from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe


class UserToolDirective(Directive):
    """Base for per-user global tooling driven by ``tool`` as that user."""

    tool = ""
    section = "tooling"

    def __init__(self, user: str, target: str, *, requires: Iterable[str] = ()):
        super().__init__(target, requires=requires)
        self.ctx = ExecutionContext(user=user)

    @property
    def user(self) -> str:
        return self.ctx.user

    def preflight(self, host: HostContext, what: str):
        if not host.has_command(self.tool):
            return None, Probe.unsupported(f"{self.tool} not installed; skipping {what} for user '{self.user}'.")
        return require_account(host, self.user, what)

    def run(self, host: HostContext, *args: str, check: bool = False, env: Optional[Dict[str, str]] = None):
        return host.runner.run([self.tool, *args], ctx=self.ctx, env=env, check=check)


class NpmPrefixDirective(UserToolDirective):
    """``npm config get prefix`` for the user points at a user-owned directory in their home."""

    kind = "npm-prefix"
    tool = "npm"

    def __init__(self, user: str, prefix_dir: str = ".npm-global", *, requires: Iterable[str] = ()):
        super().__init__(user, user, requires=requires)
        self.prefix_dir = prefix_dir

    def probe(self, host: HostContext) -> Probe:
        account, unsupported = self.preflight(host, "npm prefix configuration")
        if unsupported:
            return unsupported

        npm_dir = account.home / self.prefix_dir
        dir_ok = host.runner.is_dir(npm_dir) and host.runner.owner_of(npm_dir) == self.user
        prefix = self.run(host, "config", "get", "prefix").stdout.strip()
        if dir_ok and prefix == str(npm_dir):
            return Probe.satisfied(f"npm prefix already {npm_dir} for user '{self.user}'.")
        return Probe.divergent(f"npm prefix for '{self.user}' is '{prefix}'.", detail=(npm_dir, account.gid))

    def apply(self, host: HostContext, probe: Probe) -> str:
        npm_dir, gid = probe.detail
        host.runner.make_dir(npm_dir, owner=f"{self.user}:{gid}")
        self.run(host, "config", "set", "prefix", str(npm_dir), check=True)
        return f"Configured npm global prefix {npm_dir} for user '{self.user}'."


class NpmGlobalDirective(UserToolDirective):
    kind = "npm"
    tool = "npm"

    def __init__(self, user: str, package: str, *, requires: Iterable[str] = ()):
        super().__init__(user, f"{user}:{package}", requires=requires)
        self.package = package

    def probe(self, host: HostContext) -> Probe:
        _, unsupported = self.preflight(host, f"npm package '{self.package}'")
        if unsupported:
            return unsupported
        if self.run(host, "list", "-g", self.package, "--depth=0").ok:
            return Probe.satisfied(
                f"npm package '{self.package}' already installed globally for user '{self.user}'."
            )
        return Probe.divergent(f"npm package '{self.package}' missing for user '{self.user}'.")

    def apply(self, host: HostContext, probe: Probe) -> str:
        self.run(host, "install", "-g", self.package, check=True)
        return f"Installed npm package '{self.package}' globally for user '{self.user}'."


class ComposerGlobalDirective(UserToolDirective):
    kind = "composer"
    tool = "composer"

    def __init__(self, user: str, package: str, *, requires: Iterable[str] = ()):
        super().__init__(user, f"{user}:{package}", requires=requires)
        self.package = package

    @property
    def env(self) -> Dict[str, str]:
        env = {"COMPOSER_NO_INTERACTION": "1"}
        if self.ctx.is_root:
            env["COMPOSER_ALLOW_SUPERUSER"] = "1"
        return env

    def probe(self, host: HostContext) -> Probe:
        _, unsupported = self.preflight(host, f"composer package '{self.package}'")
        if unsupported:
            return unsupported
        if self.run(host, "global", "show", self.package, env=self.env).ok:
            return Probe.satisfied(f"{self.package} already present for user '{self.user}'.")
        return Probe.divergent(f"{self.package} missing for user '{self.user}'.")

    def apply(self, host: HostContext, probe: Probe) -> str:
        self.run(host, "global", "require", self.package, env=self.env, check=True)
        return f"Installed {self.package} for user '{self.user}'."
