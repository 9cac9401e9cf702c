# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/profile/registry.py

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from ..config.models import ProvisionConfig, UserSpec
from ..directives.files import FileContentDirective
from ..directives.firewall import FirewallDirective
from ..directives.packages import AptIndex, PackageDirective
from ..directives.repositories import AptRepositoryDirective, GitCloneDirective, OhMyZshDirective
from ..directives.services import ServiceDirective
from ..directives.shell import ZshrcDirective
from ..directives.system import SwapDirective, TimezoneDirective
from ..directives.tooling import ComposerGlobalDirective, NpmGlobalDirective, NpmPrefixDirective
from ..directives.users import UserDirective
from ..errors import ConfigError
from ..reconcile.directive import Directive

SECTIONS = (
    "packages",
    "services",
    "repositories",
    "firewall",
    "system",
    "users",
    "shell",
    "tooling",
)


def parse_sections(value: Optional[str]) -> Optional[Set[str]]:
    """
    Resolve the --only flag.

    - None / empty / "all" -> None (everything)
    - otherwise the named sections, which must all be known
    """
    if not value:
        return None
    items = {s.strip() for s in value.split(",") if s.strip()}
    if not items or "all" in items:
        return None

    unknown = items - set(SECTIONS)
    if unknown:
        raise ConfigError(
            f"Unknown sections: {', '.join(sorted(unknown))}. "
            f"Valid sections: {', '.join(SECTIONS)}"
        )
    return items


def _accounts(cfg: ProvisionConfig) -> List[UserSpec]:
    """Configured users, then shell users that only need their login shell managed."""
    specs = list(cfg.users)
    known = {u.name for u in specs}
    specs += [UserSpec(name=n, shell=cfg.shell_login) for n in cfg.shell_users if n not in known]
    return specs


def build_directives(cfg: ProvisionConfig, apt_index: Optional[AptIndex] = None) -> List[Directive]:
    """The standard server profile, in execution order."""
    index = apt_index or AptIndex()
    out: List[Directive] = []

    out.append(PackageDirective(cfg.packages, name="base", index=index))
    for pkg in cfg.optional_packages:
        out.append(PackageDirective([pkg], optional=True, index=index))

    if cfg.docker:
        docker_pkg = PackageDirective([cfg.docker.package], index=index)
        out += [docker_pkg, ServiceDirective(cfg.docker.service, requires=[docker_pkg.id])]

    for repo in cfg.apt_repos:
        repo_d = AptRepositoryDirective(repo, index=index)
        pkg_d = PackageDirective([repo.package], index=index, requires=[repo_d.id])
        out += [repo_d, pkg_d]
        if repo.service:
            out.append(ServiceDirective(repo.service, requires=[pkg_d.id]))

    out.append(FirewallDirective(cfg.firewall))
    for svc in cfg.services:
        out.append(ServiceDirective(svc.name, running=svc.state == "running"))

    out.append(TimezoneDirective(cfg.timezone))

    for u in _accounts(cfg):
        out.append(UserDirective(u.name, shell=u.shell, groups=u.groups))

    tooling = cfg.tooling
    for name in cfg.shell_users:
        out.append(NpmPrefixDirective(name, tooling.npm_prefix_dir, requires=[f"user:{name}"]))
    for name in cfg.shell_users:
        for pkg in tooling.npm_packages:
            out.append(NpmGlobalDirective(name, pkg, requires=[f"npm-prefix:{name}"]))

    shell = cfg.shell
    for name in cfg.shell_users:
        omz = OhMyZshDirective(name, shell.oh_my_zsh_installer, requires=[f"user:{name}"])
        out.append(omz)
        clones = [
            GitCloneDirective(name, plugin, url, requires=[omz.id])
            for plugin, url in shell.plugin_repos.items()
        ]
        out += clones
        out.append(
            ZshrcDirective(
                name,
                shell.plugins,
                shell.path_exports,
                requires=[omz.id, *(c.id for c in clones)],
            )
        )

    for name in cfg.shell_users:
        for pkg in tooling.composer_packages:
            out.append(ComposerGlobalDirective(name, pkg, requires=[f"user:{name}"]))

    if cfg.mysql:
        my = cfg.mysql
        conf = FileContentDirective(
            f"{my.conf_dir}/{my.filename}",
            "mysql-memory.cnf.j2",
            {"settings": my.settings},
            required_dir=my.conf_dir,
            note=(
                f"MySQL memory tuning applied at {my.conf_dir}/{my.filename}. "
                "Restart MySQL when ready to use it."
            ),
        )
        out.append(conf)
        if my.leave_stopped:
            out.append(ServiceDirective(my.service, running=False, requires=[conf.id]))

    out.append(SwapDirective(cfg.swap.path, cfg.swap.size_gib))
    out.append(
        FileContentDirective(
            cfg.sysctl.path,
            "sysctl.conf.j2",
            {"settings": cfg.sysctl.settings},
            reload=["sysctl", "-p", cfg.sysctl.path],
            note=f"Sysctl settings applied from {cfg.sysctl.path}.",
        )
    )
    return out


def select_directives(directives: Iterable[Directive], sections: Optional[Set[str]]) -> List[Directive]:
    """
    Keep directives in the chosen sections. Prerequisites that fall outside
    the selection are dropped so the plan still validates.
    """
    directives = list(directives)
    if sections is None:
        return directives

    kept = [d for d in directives if d.section in sections]
    ids = {d.id for d in kept}
    for d in kept:
        d.requires = tuple(r for r in d.requires if r in ids)
    return kept
