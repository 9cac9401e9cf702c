# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/errors.py
from __future__ import annotations

from typing import Sequence


class HostprepError(RuntimeError):
    """Base class for provisioning failures."""


class CommandError(HostprepError):
    """Raised when a host command exits non-zero and the caller asked to check it."""

    def __init__(self, argv: Sequence[str], returncode: int, stdout: str = "", stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip().splitlines()
        tail = detail[-1] if detail else "no output"
        super().__init__(f"`{' '.join(self.argv)}` exited {returncode}: {tail}")


class DirectiveError(HostprepError):
    """A directive could not reach its desired state."""


class PrivilegeError(HostprepError):
    """The run is not privileged enough to mutate the host."""


class ConfigError(HostprepError):
    """Invalid provisioning configuration."""


class PlanError(ValueError):
    pass


class UnknownDependencyError(PlanError):
    pass


class CyclicDependencyError(PlanError):
    pass
