# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/repositories.py

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from .base import cleanup_failed, discard, require_account
from .packages import AptIndex, is_installed
from ..config.models import AptRepoSpec
from ..errors import DirectiveError, HostprepError
from ..execution.context import ExecutionContext
from ..host.context import HostContext
from ..http import fetch
from ..reconcile.directive import Directive, Probe
from ..templating import render


class AptRepositoryDirective(Directive):
    """
    Signed third-party apt source, gated on a distribution/codename matrix.

    A host that already has the package installed is left alone, repository
    files included. Otherwise, on hosts outside the matrix the list file and
    keyring are removed so a stale source cannot break ``apt-get update``.
    """

    kind = "apt-repo"
    section = "repositories"

    def __init__(self, spec: AptRepoSpec, *, index: Optional[AptIndex] = None, requires: Iterable[str] = ()):
        super().__init__(spec.slug, requires=requires)
        self.spec = spec
        self.index = index or AptIndex()

    def unsupported_reason(self, host: HostContext) -> Optional[str]:
        name = self.spec.name
        codenames = self.spec.supported.get(host.distro_id)
        if codenames is None:
            return f"{name} automated install not supported on distribution '{host.distro_id}'; skipping."
        if not host.codename:
            return f"Unable to determine distribution codename; skipping {name} installation."
        if host.codename not in codenames:
            return (
                f"{name} repository not provided for {host.distro_id.capitalize()} "
                f"codename '{host.codename}'. Skipping {name} installation."
            )
        return None

    def source_line(self, host: HostContext) -> bytes:
        return render(
            "apt-source.list.j2",
            keyring=self.spec.keyring_path,
            base_url=self.spec.base_url,
            distro=host.distro_id,
            codename=host.codename,
            name=self.spec.name,
            version=self.spec.version,
            component=self.spec.component,
        ).encode()

    def probe(self, host: HostContext) -> Probe:
        if is_installed(host, self.spec.package):
            return Probe.satisfied(f"{self.spec.package} already installed; repository left as is.")

        reason = self.unsupported_reason(host)
        if reason:
            return Probe.unsupported(reason)

        line = self.source_line(host)
        current = host.runner.read_file(self.spec.list_path)
        if current == line and host.runner.exists(self.spec.keyring_path):
            return Probe.satisfied(f"{self.spec.name} {self.spec.version} repository already configured.")
        return Probe.divergent(f"{self.spec.list_path} missing or outdated.", detail=line)

    def cleanup_unsupported(self, host: HostContext) -> List[str]:
        return discard(host, self.spec.list_path, self.spec.keyring_path)

    def apply(self, host: HostContext, probe: Probe) -> str:
        runner = host.runner
        keyring = self.spec.keyring_path
        tmp = f"{keyring}.tmp"
        try:
            if not host.has_command("gpg"):
                raise DirectiveError(f"gpg not installed; cannot import the {self.spec.name} signing key.")
            key = fetch(self.spec.key_url.format(version=self.spec.version))

            runner.make_dir(PurePosixPath(keyring).parent)
            runner.run(["gpg", "--batch", "--yes", "--dearmor", "-o", tmp], input=key, check=True)
            runner.run(["mv", "-f", tmp, keyring], check=True)
            runner.write_file(self.spec.list_path, probe.detail, mode=0o644)

            self.index.invalidate()
            self.index.ensure_fresh(host)
        except HostprepError as e:
            cleanup_failed(e, discard(host, tmp, keyring, self.spec.list_path))
            raise
        return f"Added {self.spec.name} {self.spec.version} repository for {host.distro_id} {host.codename}."


class GitCloneDirective(Directive):
    """A git checkout under a user's home, cloned as that user."""

    kind = "git-clone"
    section = "shell"

    def __init__(
        self,
        user: str,
        name: str,
        url: str,
        *,
        subdir: str = ".oh-my-zsh/custom/plugins",
        requires: Iterable[str] = (),
    ):
        super().__init__(f"{user}:{name}", requires=requires)
        self.ctx = ExecutionContext(user=user)
        self.name = name
        self.url = url
        self.subdir = subdir

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("git"):
            return Probe.unsupported(f"git not installed; skipping {self.name} for user '{self.ctx.user}'.")
        account, unsupported = require_account(host, self.ctx.user, self.name)
        if unsupported:
            return unsupported

        dest = account.home / self.subdir / self.name
        if host.runner.is_dir(dest):
            return Probe.satisfied(f"{self.name} already present for user '{self.ctx.user}'.")
        return Probe.divergent(f"{dest} missing.", detail=dest)

    def apply(self, host: HostContext, probe: Probe) -> str:
        dest: PurePosixPath = probe.detail
        run = host.runner.run
        try:
            run(["mkdir", "-p", dest.parent], ctx=self.ctx, check=True)
            run(["git", "clone", self.url, dest], ctx=self.ctx, check=True)
        except HostprepError as e:
            cleanup_failed(e, discard(host, dest, recursive=True))
            raise
        return f"Cloned {self.name} for user '{self.ctx.user}'."


class OhMyZshDirective(Directive):
    kind = "oh-my-zsh"
    section = "shell"

    env = {"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"}

    def __init__(self, user: str, installer_url: str, *, requires: Iterable[str] = ()):
        super().__init__(user, requires=requires)
        self.ctx = ExecutionContext(user=user)
        self.installer_url = installer_url

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("git"):
            return Probe.unsupported(f"git not installed; cannot install Oh My Zsh for user '{self.ctx.user}'.")
        account, unsupported = require_account(host, self.ctx.user, "Oh My Zsh")
        if unsupported:
            return unsupported

        dest = account.home / ".oh-my-zsh"
        if host.runner.is_dir(dest):
            return Probe.satisfied(f"Oh My Zsh already installed for user '{self.ctx.user}'.")
        return Probe.divergent(f"{dest} missing.", detail=dest)

    def apply(self, host: HostContext, probe: Probe) -> str:
        dest: PurePosixPath = probe.detail
        try:
            script = fetch(self.installer_url)
            host.runner.run(["sh", "-s"], ctx=self.ctx, env=self.env, input=script, check=True)
        except HostprepError as e:
            cleanup_failed(e, discard(host, dest, recursive=True))
            raise
        return f"Installed Oh My Zsh for user '{self.ctx.user}'."
