# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/directives/firewall.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from ..config.models import FirewallSpec
from ..host.context import HostContext
from ..reconcile.directive import Directive, Probe

# (to, action, from) as printed by ``ufw status verbose``
Rule = Tuple[str, str, str]

_RULE_RE = re.compile(
    r"^(?P<to>.+?)\s{2,}(?P<action>(?:ALLOW|DENY|REJECT|LIMIT)(?: (?:IN|OUT|FWD))?)\s{2,}(?P<src>.+?)\s*$"
)
_DEFAULT_RE = re.compile(r"(\w+) \((incoming|outgoing)\)")


@dataclass
class UfwStatus:
    active: bool = False
    incoming: Optional[str] = None
    outgoing: Optional[str] = None
    rules: Set[Rule] = field(default_factory=set)


def parse_ufw_status(text: str) -> UfwStatus:
    """Parse ``ufw status verbose``. IPv6 duplicates of rules are ignored."""
    status = UfwStatus()
    for line in text.splitlines():
        line = line.rstrip()
        if line.startswith("Status:"):
            status.active = line.split(":", 1)[1].strip() == "active"
        elif line.startswith("Default:"):
            for policy, direction in _DEFAULT_RE.findall(line):
                setattr(status, direction, policy)
        else:
            m = _RULE_RE.match(line)
            if not m or "(v6)" in line:
                continue
            action = m.group("action").split()[0]
            status.rules.add((m.group("to").strip(), action, m.group("src").strip()))
    return status


class FirewallDirective(Directive):
    kind = "firewall"
    section = "firewall"

    def __init__(self, spec: FirewallSpec, *, requires=()):
        super().__init__("ufw", requires=requires)
        self.spec = spec

    def desired_rules(self) -> List[Tuple[Rule, List[str]]]:
        """Each wanted rule paired with the ``ufw`` arguments that add it."""
        port = f"{self.spec.ssh_port}/tcp"
        rules = [
            ((port, "ALLOW", ip), ["allow", "from", ip, "to", "any", "port", str(self.spec.ssh_port), "proto", "tcp"])
            for ip in self.spec.ssh_allow_from
        ]
        rules += [
            ((f"{p}/tcp", "ALLOW", "Anywhere"), ["allow", f"{p}/tcp"])
            for p in self.spec.open_tcp_ports
        ]
        return rules

    def probe(self, host: HostContext) -> Probe:
        if not host.has_command("ufw"):
            return Probe.unsupported("ufw not installed; skipping firewall configuration.")

        out = host.runner.run(["ufw", "status", "verbose"], check=True).stdout
        status = parse_ufw_status(out)
        missing = [r for r, _ in self.desired_rules() if r not in status.rules]
        defaults_ok = status.incoming == "deny" and status.outgoing == "allow"

        if status.active and defaults_ok and not missing:
            return Probe.satisfied("UFW firewall policy already in place.")
        return Probe.divergent(
            f"UFW active={status.active} defaults_ok={defaults_ok} missing_rules={len(missing)}",
            detail=status,
        )

    def apply(self, host: HostContext, probe: Probe) -> str:
        status: UfwStatus = probe.detail
        run = host.runner.run

        if not status.active or status.incoming != "deny":
            run(["ufw", "default", "deny", "incoming"], check=True)
        if not status.active or status.outgoing != "allow":
            run(["ufw", "default", "allow", "outgoing"], check=True)

        # inactive ufw does not list rules; add them all
        added = 0
        for rule, args in self.desired_rules():
            if status.active and rule in status.rules:
                continue
            run(["ufw", *args], check=True)
            added += 1

        if status.active:
            run(["ufw", "reload"], check=True)
            return f"UFW firewall rules updated ({added} added) and reloaded."
        run(["ufw", "--force", "enable"], check=True)
        return f"UFW firewall enabled with {added} rules."
