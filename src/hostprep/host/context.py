# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/host/context.py

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional

from ..execution.runner import BaseRunner

log = logging.getLogger("hostprep")

OS_RELEASE = "/etc/os-release"


@dataclass(frozen=True)
class Account:
    name: str
    uid: int
    gid: int
    home: PurePosixPath
    shell: str


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse os-release KEY=value lines (values may be quoted)."""
    info: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, val = line.partition("=")
        try:
            parts = shlex.split(val)
        except ValueError:
            parts = [val.strip('"\'')]
        info[key.strip()] = parts[0] if parts else ""
    return info


def parse_passwd_entry(line: str) -> Optional[Account]:
    fields = line.strip().split(":")
    if len(fields) < 7:
        return None
    try:
        return Account(
            name=fields[0],
            uid=int(fields[2]),
            gid=int(fields[3]),
            home=PurePosixPath(fields[5]),
            shell=fields[6],
        )
    except ValueError:
        return None


@dataclass(frozen=True)
class HostContext:
    """
    Read-only facts about the target host plus the runner used to reach it.

    Distribution facts are gathered once per run. Commands and accounts are
    looked up live because earlier directives create them.
    """

    runner: BaseRunner
    distro_id: str = "unknown"
    codename: str = ""
    version_id: str = ""

    @property
    def name(self) -> str:
        return self.runner.describe()

    def which(self, command: str) -> Optional[str]:
        res = self.runner.run(["sh", "-c", f"command -v {shlex.quote(command)}"])
        path = res.stdout.strip()
        return path if res.ok and path else None

    def has_command(self, command: str) -> bool:
        return self.which(command) is not None

    def lookup_user(self, name: str) -> Optional[Account]:
        res = self.runner.run(["getent", "passwd", name])
        if not res.ok:
            return None
        return parse_passwd_entry(res.stdout.splitlines()[0]) if res.stdout.strip() else None

    def user_groups(self, name: str) -> List[str]:
        res = self.runner.run(["id", "-nG", name])
        return res.stdout.split() if res.ok else []


def detect_host_context(runner: BaseRunner) -> HostContext:
    raw = runner.read_file(OS_RELEASE)
    if raw is None:
        log.warning("%s not found on %s; distribution unknown", OS_RELEASE, runner.describe())
        return HostContext(runner=runner)

    info = parse_os_release(raw.decode("utf-8", errors="replace"))
    codename = info.get("UBUNTU_CODENAME") or info.get("VERSION_CODENAME") or ""
    ctx = HostContext(
        runner=runner,
        distro_id=info.get("ID", "unknown").lower(),
        codename=codename.lower(),
        version_id=info.get("VERSION_ID", ""),
    )
    log.debug("host %s: distro=%s codename=%s version=%s", ctx.name, ctx.distro_id, ctx.codename, ctx.version_id)
    return ctx
