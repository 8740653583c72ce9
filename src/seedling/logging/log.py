# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/seedling/logging/log.py

from __future__ import annotations

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

# transport libraries that get their own records into the run log
LIBRARY_LOGGERS = ("paramiko", "winrm")

_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def log_dir() -> Path:
    """SEEDLING_LOG_DIR, or ~/.seedling/logs"""
    env = os.environ.get("SEEDLING_LOG_DIR")
    return Path(env) if env else Path.home() / ".seedling" / "logs"


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "seedling",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Set up logging for one bootstrap run and return (logger, run_id, log_path).

    The run log file always gets the full DEBUG trace, including WARNING and
    above from paramiko and pywinrm. The console only shows WARNING and above
    unless verbose is set, since operator output goes through seedling.ui.
    """
    run_id = str(uuid.uuid4())
    base_dir = Path(base_dir) if base_dir else log_dir()
    base_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{stamp}-{run_id}.log"
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(file_handler)
    logger.addHandler(console)

    for lib in LIBRARY_LOGGERS:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers.clear()
        lib_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
        lib_logger.propagate = False
        lib_logger.addHandler(file_handler)

    logger.debug("seedling run %s, log file %s", run_id, log_path)
    return logger, run_id, log_path
