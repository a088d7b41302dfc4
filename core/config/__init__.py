"""Config package facade."""

from .loader import load_config
from .schema import ConfigError, LoadedConfig
from .validate import validate_config

__all__ = [
    "ConfigError",
    "LoadedConfig",
    "load_config",
    "validate_config",
]
