# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/base.py

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..errors import DirectiveError, HostprepError
from ..host.context import Account, HostContext
from ..reconcile.directive import Probe

log = logging.getLogger("hostprep")


def discard(host: HostContext, *paths, recursive: bool = False) -> List[str]:
    """
    Best-effort removal of partial artifacts after a failure.

    Returns one message per path that could not be removed so the caller can
    report it with the directive's outcome.
    """
    leftovers = []
    for path in paths:
        try:
            host.runner.remove(path, recursive=recursive)
        except (HostprepError, OSError) as e:
            log.debug("Could not remove %s on %s: %s", path, host.name, e)
            leftovers.append(f"Could not remove {path}: {e}")
    return leftovers


def cleanup_failed(error: HostprepError, leftovers: List[str]) -> None:
    if leftovers:
        raise DirectiveError(f"{error} ({'; '.join(leftovers)})") from error


def require_account(host: HostContext, user: str, what: str) -> Tuple[Optional[Account], Optional[Probe]]:
    """Look up ``user``; when absent, return an UNSUPPORTED probe instead."""
    account = host.lookup_user(user)
    if account is None:
        return None, Probe.unsupported(f"User '{user}' not found; skipping {what}.")
    return account, None
