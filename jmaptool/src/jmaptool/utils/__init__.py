"""Expose the shared utility surface for jmaptool.

What:
  Re-export logging and masking helpers so the action flows and the CLI can
  import them without knowing the module layout.

Interfaces:
  ``setup_logging``, ``get_logger``, ``log_fields``, ``mask_username``,
  ``mask_password``, ``mask_access_token`` and ``mask_email``.

Invariants & Safety:
  - Importing this package has no side effects; handlers are only installed
    by an explicit :func:`setup_logging` call.
"""

from .logging import get_logger, log_fields, setup_logging
from .masking import mask_access_token, mask_email, mask_password, mask_username

__all__ = [
    "setup_logging",
    "get_logger",
    "log_fields",
    "mask_username",
    "mask_password",
    "mask_access_token",
    "mask_email",
]
