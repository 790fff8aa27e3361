# File: smartpark/infrastructure/config.py
"""
Configuration loading for the SmartPark Allocation Engine

Sources, lowest to highest precedence:
1. FacilityConfig defaults
2. A YAML file (either flat keys or nested under a top-level "smartpark" key)
3. SMARTPARK_* environment variables
4. Explicit overrides (e.g. command-line flags)

The result is always a validated, immutable FacilityConfig.
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import logging
import os

import yaml
from pydantic import ValidationError

from ..application.dtos import FacilityConfig


logger = logging.getLogger(__name__)

ENV_PREFIX = "SMARTPARK_"
CONFIG_KEYS = tuple(FacilityConfig.model_fields)


class ConfigurationError(Exception):
    """Raised when configuration cannot be read or is invalid"""
    pass


def load_yaml_settings(path: Union[str, Path]) -> Dict[str, Any]:
    """Read facility settings from a YAML file"""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    section = raw.get("smartpark", raw)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'smartpark' section in {path} must be a mapping")

    unknown = sorted(set(section) - set(CONFIG_KEYS))
    if unknown:
        logger.warning(f"Ignoring unknown config keys in {path}: {unknown}")

    return {k: v for k, v in section.items() if k in CONFIG_KEYS}


def load_env_settings(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read SMARTPARK_SLOT_COUNT style variables"""
    environ = os.environ if environ is None else environ
    settings = {}
    for key in CONFIG_KEYS:
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value is not None and value != "":
            settings[key] = value
    return settings


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any
) -> FacilityConfig:
    """
    Build a FacilityConfig from file, environment and overrides

    Overrides whose value is None are ignored so argparse namespaces can be
    passed straight through.
    """
    settings: Dict[str, Any] = {}
    if path is not None:
        settings.update(load_yaml_settings(path))
    settings.update(load_env_settings(environ))
    settings.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = FacilityConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid facility configuration: {e}") from e

    logger.debug(f"Loaded configuration: {config.to_dict()}")
    return config
