# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/seedling/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Optional

from .models import SeedlingConfig

log = logging.getLogger("seedling")


def default_config_path() -> Path:
    """
    Locate the workstation config:

    1. SEEDLING_CONFIG environment variable (explicit override)
    2. ~/.seedling/config.yaml
    """
    env = os.environ.get("SEEDLING_CONFIG")
    if env:
        return Path(env)
    return Path.home() / ".seedling" / "config.yaml"


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def load_config(path: Optional[str | Path] = None) -> SeedlingConfig:
    """
    Load and validate the seedling YAML config.

    An explicitly passed path must exist. When no path is given the default
    location is used, and a missing file yields the built-in defaults.
    """
    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = default_config_path()
        if not path.is_file():
            log.debug("No config file at %s, using defaults", path)
            return SeedlingConfig()

    log.debug("Loading config from %s", path)
    return SeedlingConfig.model_validate(_load_yaml(path))
