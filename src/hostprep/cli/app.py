# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import paramiko
import typer

from hostprep.config.loader import load_config
from hostprep.errors import ConfigError, PlanError, PrivilegeError
from hostprep.execution.runner import BaseRunner, LocalRunner
from hostprep.execution.ssh_runner import SshRunner, open_ssh
from hostprep.host.context import detect_host_context
from hostprep.logging.log import init_logging
from hostprep.observers.console import ConsoleObserver
from hostprep.observers.logger import LoggerObserver
from hostprep.profile.registry import SECTIONS, build_directives, parse_sections, select_directives
from hostprep.reconcile.planner import plan as plan_directives
from hostprep.reconcile.reconciler import Reconciler


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Provision a Debian/Ubuntu server into the standard developer configuration")

EXIT_PRIVILEGE = 1
EXIT_CONFIG = 2

ONLY_HELP = f"Comma separated sections to run: {','.join(SECTIONS)} (default: all)"


def _fatal(message: str, code: int) -> None:
    typer.echo(f"[ERROR] {message}", err=True)
    raise typer.Exit(code)


def _load(config: Optional[Path], only: Optional[str]):
    try:
        cfg = load_config(config)
        sections = parse_sections(only)
    except ConfigError as e:
        _fatal(str(e), EXIT_CONFIG)
    return cfg, sections


def _connect(host: Optional[str], ssh_user: str, ssh_key: Optional[Path], ssh_port: int) -> BaseRunner:
    if not host:
        return LocalRunner()
    try:
        return open_ssh(host, username=ssh_user, port=ssh_port, key_path=ssh_key)
    except (paramiko.SSHException, OSError) as e:
        _fatal(f"Cannot connect to {ssh_user}@{host}:{ssh_port}: {e}", EXIT_PRIVILEGE)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def apply(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML overrides for the default profile"),
    only: Optional[str] = typer.Option(None, "--only", help=ONLY_HELP),
    host: Optional[str] = typer.Option(None, "--host", help="Provision a remote host over SSH"),
    ssh_user: str = typer.Option("root", "--ssh-user"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key"),
    ssh_port: int = typer.Option(22, "--ssh-port"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Converge the host to the configured state."""
    logger, run_id, log_path = init_logging(verbose=debug)

    cfg, sections = _load(config, only)
    runner = _connect(host, ssh_user, ssh_key, ssh_port)

    typer.echo(f"[INFO] Run ID: {run_id}")
    typer.echo(f"[INFO] Logs  : {log_path}")

    try:
        target = detect_host_context(runner)
        directives = select_directives(build_directives(cfg), sections)
        reconciler = Reconciler(
            target,
            observers=[ConsoleObserver(), LoggerObserver(logger)],
            run_id=run_id,
        )
        report = reconciler.run(directives)
    except PrivilegeError as e:
        _fatal(str(e), EXIT_PRIVILEGE)
    except PlanError as e:
        _fatal(f"Invalid directive plan: {e}", EXIT_CONFIG)
    finally:
        if isinstance(runner, SshRunner):
            runner.close()

    logger.debug("report: %s", report.summary())


@app.command()
def plan(
    config: Optional[Path] = typer.Option(None, "--config", "-c"),
    only: Optional[str] = typer.Option(None, "--only", help=ONLY_HELP),
):
    """Print the directives in the order they would run, without touching the host."""
    cfg, sections = _load(config, only)
    try:
        ordered = plan_directives(select_directives(build_directives(cfg), sections))
    except PlanError as e:
        _fatal(f"Invalid directive plan: {e}", EXIT_CONFIG)

    for i, d in enumerate(ordered, 1):
        after = f"  (after {', '.join(d.requires)})" if d.requires else ""
        typer.echo(f"{i:3d}. [{d.section}] {d.id}{after}")


if __name__ == "__main__":
    app()
