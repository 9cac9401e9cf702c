# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/observers/interface.py
from __future__ import annotations
from typing import Protocol
from .events import BaseEvent


class Observer(Protocol):
    """Receives plan, run and directive events from the reconciler."""

    def notify(self, event: BaseEvent) -> None:
        """Called synchronously, in emit order. Errors are logged by the bus and dropped."""
