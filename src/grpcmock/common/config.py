"""
grpcmock Configuration Helpers

YAML configuration file loading and logging setup shared by the server and
the CLI.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ConfigError(Exception):
    """Raised when a configuration file or option is invalid."""


def load_yaml_config(path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    An empty file is an empty configuration.

    Args:
        path: Path to the YAML file

    Returns:
        Configuration mapping

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or does
            not contain a mapping
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )
    return data


def setup_logging(level: str = "info"):
    """Configure root logging for command-line use."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ConfigError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
