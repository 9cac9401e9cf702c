# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/execution/runner.py
from __future__ import annotations

import contextlib
import logging
import os
import shlex
import shutil
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .context import ExecutionContext
from ..errors import CommandError, DirectiveError

log = logging.getLogger("hostprep")

Cmd = Sequence[Union[str, "os.PathLike[str]"]]
Input = Union[str, bytes, None]


@dataclass
class CommandResult:
    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def diagnostic(self) -> str:
        lines = (self.stderr or self.stdout).strip().splitlines()
        return lines[-1] if lines else f"exit {self.returncode}"


def _split_owner(owner: str) -> Tuple[str, str]:
    user, _, group = owner.partition(":")
    return user, group or user


def _chown(path: Union[str, Path], owner: str) -> None:
    user, group = _split_owner(owner)
    try:
        shutil.chown(path, user, int(group) if group.isdigit() else group)
    except LookupError as e:
        raise DirectiveError(f"cannot chown {path} to {owner}: {e}") from e


class BaseRunner(ABC):
    """
    Executes commands and file operations against one host.

    Subclasses supply ``_exec``; the filesystem helpers default to plain
    coreutils commands so they work over any transport.
    """

    label = "cmd"

    def run(
        self,
        cmd: Cmd,
        *,
        ctx: Optional[ExecutionContext] = None,
        env: Optional[Dict[str, str]] = None,
        input: Input = None,
        check: bool = False,
    ) -> CommandResult:
        argv = [str(c) for c in cmd]
        final = self.wrap(argv, ctx=ctx, env=env)

        log.debug("[%s] $ %s", self.label, shlex.join(final))
        start = time.time()
        data = input.encode() if isinstance(input, str) else input
        rc, out, err = self._exec(final, input=data)
        duration = time.time() - start

        result = CommandResult(
            argv=argv,
            returncode=rc,
            stdout=out.decode("utf-8", errors="replace"),
            stderr=err.decode("utf-8", errors="replace"),
        )
        if result.stdout.strip():
            log.debug("[%s][stdout]\n%s", self.label, result.stdout.rstrip())
        if result.stderr.strip():
            log.debug("[%s][stderr]\n%s", self.label, result.stderr.rstrip())
        log.debug("[%s][exit %d] (%.2fs)", self.label, rc, duration)

        if check and not result.ok:
            raise CommandError(argv, rc, result.stdout, result.stderr)
        return result

    def wrap(
        self,
        argv: List[str],
        *,
        ctx: Optional[ExecutionContext] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> List[str]:
        """
        Build the argv that actually runs: env assignments first, then
        impersonation of ``ctx.user`` through sudo when it is not root.
        """
        env_prefix = ["env", *(f"{k}={v}" for k, v in env.items())] if env else []
        if ctx is None or ctx.is_root:
            return env_prefix + argv
        if ctx.login_shell:
            return ["sudo", "-u", ctx.user, "-H", "bash", "-lc", shlex.join(env_prefix + argv)]
        return ["sudo", "-u", ctx.user, "-H", *env_prefix, *argv]

    @abstractmethod
    def _exec(self, argv: List[str], *, input: Optional[bytes] = None) -> Tuple[int, bytes, bytes]:
        ...

    @abstractmethod
    def write_file(self, path: Union[str, Path], data: bytes, *, mode: int = 0o644, owner: Optional[str] = None) -> None:
        """Replace ``path`` with ``data`` without exposing a half-written file."""

    def describe(self) -> str:
        return "localhost"

    # ------------------ filesystem ------------------

    def exists(self, path: Union[str, Path]) -> bool:
        return self.run(["test", "-e", path]).ok

    def is_dir(self, path: Union[str, Path]) -> bool:
        return self.run(["test", "-d", path]).ok

    def read_file(self, path: Union[str, Path]) -> Optional[bytes]:
        if not self.run(["test", "-f", path]).ok:
            return None
        rc, out, err = self._exec(self.wrap(["cat", "--", str(path)]))
        if rc != 0:
            raise CommandError(["cat", str(path)], rc, stderr=err.decode("utf-8", errors="replace"))
        return out

    def remove(self, path: Union[str, Path], *, recursive: bool = False) -> None:
        self.run(["rm", "-rf" if recursive else "-f", "--", path], check=True)

    def make_dir(self, path: Union[str, Path], *, mode: int = 0o755, owner: Optional[str] = None) -> None:
        argv = ["install", "-d", "-m", f"{mode:o}"]
        if owner:
            user, group = _split_owner(owner)
            argv += ["-o", user, "-g", group]
        self.run([*argv, path], check=True)

    def owner_of(self, path: Union[str, Path]) -> Optional[str]:
        res = self.run(["stat", "-c", "%U", path])
        return (res.stdout.strip() or None) if res.ok else None

    def effective_uid(self) -> int:
        return int(self.run(["id", "-u"], check=True).stdout.strip())


class LocalRunner(BaseRunner):
    """Runs everything on the machine hostprep itself runs on."""

    label = "local"

    def _exec(self, argv: List[str], *, input: Optional[bytes] = None) -> Tuple[int, bytes, bytes]:
        try:
            cp = subprocess.run(argv, input=input, capture_output=True)
        except FileNotFoundError as e:
            return 127, b"", str(e).encode()
        return cp.returncode, cp.stdout, cp.stderr

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).exists()

    def is_dir(self, path: Union[str, Path]) -> bool:
        return Path(path).is_dir()

    def read_file(self, path: Union[str, Path]) -> Optional[bytes]:
        p = Path(path)
        if not p.is_file():
            return None
        return p.read_bytes()

    def write_file(self, path: Union[str, Path], data: bytes, *, mode: int = 0o644, owner: Optional[str] = None) -> None:
        path = Path(path)
        # temp file must share the target's filesystem for os.replace
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp, mode)
            if owner:
                _chown(tmp, owner)
            os.replace(tmp, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
            raise
        log.debug("[%s] wrote %s (%d bytes, mode %o)", self.label, path, len(data), mode)

    def remove(self, path: Union[str, Path], *, recursive: bool = False) -> None:
        p = Path(path)
        if recursive and p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        else:
            p.unlink(missing_ok=True)

    def make_dir(self, path: Union[str, Path], *, mode: int = 0o755, owner: Optional[str] = None) -> None:
        p = Path(path)
        p.mkdir(parents=True, exist_ok=True)
        os.chmod(p, mode)
        if owner:
            _chown(p, owner)

    def owner_of(self, path: Union[str, Path]) -> Optional[str]:
        try:
            return Path(path).owner()
        except (FileNotFoundError, KeyError):
            return None

    def effective_uid(self) -> int:
        return os.geteuid()
