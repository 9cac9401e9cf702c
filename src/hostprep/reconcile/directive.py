# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/reconcile/directive.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterable, List, Optional, Tuple

from ..host.context import HostContext


class ProbeState(str, Enum):
    SATISFIED = "SATISFIED"
    DIVERGENT = "DIVERGENT"
    UNSUPPORTED = "UNSUPPORTED"


class Outcome(str, Enum):
    APPLIED = "APPLIED"
    ALREADY_SATISFIED = "ALREADY_SATISFIED"
    SKIPPED_UNSUPPORTED = "SKIPPED_UNSUPPORTED"
    FAILED = "FAILED"


@dataclass
class Probe:
    state: ProbeState
    message: str
    warnings: List[str] = field(default_factory=list)
    # directive-private findings handed to apply()
    detail: Any = None

    @classmethod
    def satisfied(cls, message: str, **kw) -> "Probe":
        return cls(ProbeState.SATISFIED, message, **kw)

    @classmethod
    def divergent(cls, message: str, **kw) -> "Probe":
        return cls(ProbeState.DIVERGENT, message, **kw)

    @classmethod
    def unsupported(cls, message: str, **kw) -> "Probe":
        return cls(ProbeState.UNSUPPORTED, message, **kw)


@dataclass
class ExecutionResult:
    directive_id: str
    outcome: Outcome
    message: str
    warnings: List[str] = field(default_factory=list)
    duration_ms: int = 0


class Directive(ABC):
    """
    Desired end-state of one host resource plus the means to probe and apply it.

    ``probe`` must not change the resource it inspects; refreshing a cache it
    reads from (the apt package index) is allowed. ``apply`` is only called
    after a DIVERGENT probe and receives that probe.
    """

    kind: ClassVar[str] = "directive"
    section: ClassVar[str] = "system"

    def __init__(self, target: str, *, requires: Iterable[str] = ()):
        self.target = target
        self.requires: Tuple[str, ...] = tuple(requires)

    @property
    def id(self) -> str:
        return f"{self.kind}:{self.target}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"

    @abstractmethod
    def probe(self, host: HostContext) -> Probe:
        ...

    @abstractmethod
    def apply(self, host: HostContext, probe: Probe) -> Optional[str]:
        """Converge the resource. Returns a human readable message."""

    def cleanup_unsupported(self, host: HostContext) -> List[str]:
        """
        Remove partial artifacts left behind when the directive is inapplicable.

        Returns warnings for anything that could not be removed.
        """
        return []
