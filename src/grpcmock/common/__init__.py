"""
grpcmock Common Utilities

Shared helpers used across grpcmock modules.
"""

from .config import ConfigError, load_yaml_config, setup_logging

__all__ = [
    'ConfigError',
    'load_yaml_config',
    'setup_logging',
]
