# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/hostprep/config/loader.py

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import ProvisionConfig
from ..errors import ConfigError

log = logging.getLogger("hostprep")

CONFIG_ENV = "HOSTPREP_CONFIG"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Lists and scalars in *override* replace the base value outright.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: str | Path | None = None) -> ProvisionConfig:
    """
    Build the provisioning config.

    The built-in defaults describe the standard server. A YAML file, given
    explicitly or through ``HOSTPREP_CONFIG``, is deep-merged over them:
    mappings merge key by key, lists replace the default list.
    """
    data = ProvisionConfig().model_dump()

    if path is None and os.environ.get(CONFIG_ENV):
        path = os.environ[CONFIG_ENV]

    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        log.debug("Merging config overrides from %s", path)
        _deep_merge(data, _load_yaml(path))
    else:
        log.debug("No config file given, using built-in defaults")

    try:
        return ProvisionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
