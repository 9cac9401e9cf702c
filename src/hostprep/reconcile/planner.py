# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import heapq
from typing import Dict, List, Optional, Sequence, Set

from .directive import Directive
from ..errors import CyclicDependencyError, PlanError, UnknownDependencyError

# Observer bits
from ..observers.dispatcher import EventBus
from ..observers.events import PlanComputed, PlanFailed, new_ctx


def _validate_dependencies(directives: Sequence[Directive]) -> None:
    seen: Set[str] = set()
    for d in directives:
        if d.id in seen:
            raise PlanError(f"Duplicate directive id '{d.id}'")
        seen.add(d.id)
    for d in directives:
        for dep in d.requires:
            if dep not in seen:
                raise UnknownDependencyError(
                    f"Directive '{d.id}' requires unknown directive '{dep}'"
                )


def plan(
    directives: Sequence[Directive],
    bus: Optional[EventBus] = None,
    run_ctx: Optional[dict] = None,
) -> List[Directive]:
    """
    Stable topological sort of directives based on ``requires``.

    Among directives that are ready, the one listed first runs first, so a
    list that already respects its dependencies comes back unchanged.
    Emits PlanComputed / PlanFailed if an EventBus is provided.
    """
    ctx = run_ctx or new_ctx(host="localhost")
    try:
        _validate_dependencies(directives)

        position: Dict[str, int] = {d.id: i for i, d in enumerate(directives)}
        indeg: Dict[str, int] = {d.id: len(set(d.requires)) for d in directives}
        dependents: Dict[str, List[str]] = {d.id: [] for d in directives}
        for d in directives:
            for dep in set(d.requires):
                dependents[dep].append(d.id)

        ready = [position[i] for i, deg in indeg.items() if deg == 0]
        heapq.heapify(ready)
        order: List[Directive] = []

        while ready:
            d = directives[heapq.heappop(ready)]
            order.append(d)
            for m in dependents[d.id]:
                indeg[m] -= 1
                if indeg[m] == 0:
                    heapq.heappush(ready, position[m])

        if len(order) != len(directives):
            stuck = sorted(i for i, deg in indeg.items() if deg > 0)
            raise CyclicDependencyError(f"Cyclic dependency detected among directives: {', '.join(stuck)}")

        if bus:
            bus.emit(PlanComputed(order=[d.id for d in order], **ctx))
        return order

    except PlanError as e:
        if bus:
            bus.emit(PlanFailed(error=str(e), **ctx))
        raise
