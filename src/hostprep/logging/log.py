# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/hostprep/logging/log.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from datetime import datetime, timezone
import uuid

LOG_DIR_ENV = "HOSTPREP_LOG_DIR"


def default_log_dir() -> Path:
    override = os.environ.get(LOG_DIR_ENV)
    return Path(override).expanduser() if override else Path.home() / ".hostprep" / "logs"


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "hostprep",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Initializes:
      - a per-run log file with every command, its stdout/stderr and exit code
      - console output for warnings only (everything with --debug), since the
        console observer prints run progress itself
      - paramiko's own warnings routed into the same file for --host runs
    Returns the run_id so the reconciler and observers share it.
    """
    run_id = str(uuid.uuid4())

    base_dir = base_dir or default_log_dir()
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id}.log"

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.WARNING)
    ch.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False
    logger.addHandler(fh)
    logger.addHandler(ch)

    ssh_log = logging.getLogger("paramiko")
    ssh_log.setLevel(logging.WARNING)
    ssh_log.handlers.clear()
    ssh_log.propagate = False
    ssh_log.addHandler(fh)

    logger.info("=== hostprep run started ===")
    logger.info("run_id=%s", run_id)
    logger.info("log_file=%s", log_path)

    return logger, run_id, log_path
