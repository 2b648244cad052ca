"""Locate, parse and merge jmaptool configuration sources.

What:
  Build a validated :class:`~jmaptool.config.schema.ToolConfig` from an
  optional YAML file plus the overrides collected by the CLI (flags and their
  environment variable fallbacks).

Why:
  Operators run the tool from cron jobs, shells and CI. A config file keeps
  long-lived settings such as the host out of the command line, while flags
  and environment variables must still win for one-off runs.

How:
  Resolve candidate file locations from the explicit argument, the
  ``JMAPTOOL_CONFIG`` environment variable and two well-known defaults. Parse
  the first existing file with ``yaml.safe_load``, overlay every override that
  is not ``None``, and validate the merged mapping with pydantic. Every failure
  is converted to :class:`ConfigLoadError` carrying path context.

Interfaces:
  - :func:`load_config`: Produce the merged, validated configuration.
  - :func:`find_config_file`: Report which file would be read.
  - :class:`ConfigLoadError`: Raised for unreadable or invalid configuration.

Invariants:
  - Precedence is override > file > model defaults.
  - An explicitly requested file (argument or environment variable) must
    exist; the default locations are optional.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import ToolConfig


class ConfigLoadError(Exception):
    """Raised when configuration cannot be read, parsed or validated.

    What:
      Represent fatal issues with user supplied configuration, whether it came
      from a YAML file or from command-line overrides.

    Why:
      The CLI reports these as exit code 1 without a traceback, separately
      from protocol failures raised by the client.
    """


CONFIG_ENV = "JMAPTOOL_CONFIG"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("jmaptool.yaml"),
    Path("~/.config/jmaptool/config.yaml"),
)


def _candidate_paths(path: Optional[Path]) -> Iterable[Tuple[Path, bool]]:
    """Yield ``(path, required)`` pairs in priority order.

    Explicit locations are required; defaults are only used when present.
    """

    seen: set[Path] = set()
    if path is not None:
        candidate = path.expanduser()
        seen.add(candidate)
        yield candidate, True
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, True
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, False


def find_config_file(path: Optional[Union[Path, str]] = None) -> Optional[Path]:
    """Return the configuration file that :func:`load_config` would read.

    Raises:
      ConfigLoadError: If an explicitly requested file does not exist.
    """

    requested = Path(path) if path is not None else None
    for candidate, required in _candidate_paths(requested):
        if candidate.is_file():
            return candidate
        if required:
            raise ConfigLoadError(f"Configuration file missing: {candidate}")
    return None


def _read_payload(path: Path) -> Dict[str, Any]:
    """Parse the YAML mapping at ``path``; an empty file yields ``{}``.

    Raises:
      ConfigLoadError: The file is unreadable, not YAML, or not a mapping.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"{path} must contain a mapping at the top-level")
    return payload


def load_config(
    path: Optional[Union[Path, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ToolConfig:
    """Resolve, parse and validate the tool configuration.

    Args:
      path: Optional explicit location of the YAML file.
      overrides: Values from flags or environment variables. ``None`` entries
        are ignored so unset options fall through to the file and defaults.

    Returns:
      The validated configuration.

    Raises:
      ConfigLoadError: If a file cannot be read or parsed, or the merged values
        fail validation.
    """

    source = find_config_file(path)
    payload: Dict[str, Any] = _read_payload(source) if source is not None else {}
    for key, value in (overrides or {}).items():
        if value is not None:
            payload[key] = value
    try:
        return ToolConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        origin = f" (from {source})" if source is not None else ""
        raise ConfigLoadError(f"Invalid configuration{origin}: {_first_error(exc)}") from exc


def _first_error(exc: _PydanticValidationError) -> str:
    """Summarise the first pydantic error as ``field: message``."""

    errors = exc.errors()
    if not errors:
        return str(exc)
    error = errors[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "")
    return f"{location}: {message}" if location else message


__all__ = [
    "CONFIG_ENV",
    "ConfigLoadError",
    "find_config_file",
    "load_config",
]
