"""Pydantic model describing the jmaptool configuration."""
from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator


ACTIONS: Tuple[str, ...] = ("testconnect", "testauth", "getmailboxes")
AUTH_METHODS: Tuple[str, ...] = ("auto", "basic", "bearer")
LOG_LEVELS: Tuple[str, ...] = ("debug", "info", "warn", "error")
LOG_FORMATS: Tuple[str, ...] = ("csv", "json")

_CREDENTIAL_ACTIONS = frozenset({"testauth", "getmailboxes"})


class ValidationError(ValueError):
    """Raised when configuration values do not satisfy the schema."""


class ToolConfig(BaseModel):
    """Settings shared by every action, merged from file, environment and flags."""

    model_config = ConfigDict(extra="forbid")

    host: str = ""
    port: int = 443
    username: str = ""
    password: str = ""
    access_token: str = ""
    auth_method: str = "auto"
    skip_verify: bool = False
    verbose: bool = False
    log_level: str = "info"
    log_format: str = "csv"

    @field_validator("port")
    @classmethod
    def _validate_port(cls, value: int) -> int:
        if value <= 0 or value > 65535:
            raise ValidationError(f"invalid port: {value} (must be 1-65535)")
        return value

    @field_validator("auth_method", mode="before")
    @classmethod
    def _validate_auth_method(cls, value: str) -> str:
        return _choice(value, AUTH_METHODS, "auth method")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        return _choice(value, LOG_LEVELS, "log level")

    @field_validator("log_format", mode="before")
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        return _choice(value, LOG_FORMATS, "log format")

    def validate_for_action(self, action: str) -> str:
        """Check the settings an action needs and return the normalised action name."""

        normalised = action.lower()
        if normalised not in ACTIONS:
            raise ValidationError(f"invalid action: {action} (valid: {', '.join(ACTIONS)})")
        if not self.host:
            raise ValidationError("host is required")
        if normalised in _CREDENTIAL_ACTIONS and not (self.password or self.access_token):
            raise ValidationError(f"either password or accesstoken is required for {normalised}")
        return normalised


def _choice(value: object, allowed: Tuple[str, ...], name: str) -> str:
    """Lowercase ``value`` and check it is one of ``allowed``."""

    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    normalised = value.lower()
    if normalised not in allowed:
        raise ValidationError(f"invalid {name}: {value} (valid: {', '.join(allowed)})")
    return normalised


__all__ = [
    "ACTIONS",
    "AUTH_METHODS",
    "LOG_LEVELS",
    "LOG_FORMATS",
    "ToolConfig",
    "ValidationError",
]
