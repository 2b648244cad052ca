"""jmaptool configuration package.

What:
  Provide a single import surface for the configuration model and the loader
  that merges YAML files with command-line and environment overrides.

Interfaces:
  - load_config / find_config_file: Resolve and validate configuration.
  - ToolConfig / ValidationError: Pydantic model and its error type.
  - ConfigLoadError: Raised for unreadable or invalid configuration.
  - ACTIONS / AUTH_METHODS / LOG_LEVELS / LOG_FORMATS: Accepted values.

Invariants:
  - Callers obtain configuration through :func:`load_config` so every value
    passes schema validation before use.
"""

from .loader import CONFIG_ENV, ConfigLoadError, find_config_file, load_config
from .schema import ACTIONS, AUTH_METHODS, LOG_FORMATS, LOG_LEVELS, ToolConfig, ValidationError

__all__ = [
    "CONFIG_ENV",
    "ConfigLoadError",
    "find_config_file",
    "load_config",
    "ACTIONS",
    "AUTH_METHODS",
    "LOG_LEVELS",
    "LOG_FORMATS",
    "ToolConfig",
    "ValidationError",
]
