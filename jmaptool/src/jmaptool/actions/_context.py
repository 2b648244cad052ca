"""Shared context and error type for the action flows."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Sequence

from ..audit import AuditLogger
from ..client import JmapClient
from ..config.schema import ToolConfig
from ..errors import RequestCancelledError

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILURE = "FAILURE"


class ActionError(Exception):
    """Raised when an action fails; the underlying error is chained as ``__cause__``."""

    @property
    def cancelled(self) -> bool:
        """Whether the chained cause is a cancellation rather than a failure."""

        return isinstance(self.__cause__, RequestCancelledError)


@dataclass
class ActionContext:
    """Everything an action flow needs for one run.

    Attributes:
      action: Normalised action name, written to the audit file.
      config: Validated tool configuration.
      client: Client bound to ``config.host``; owned by the caller.
      audit: Open audit logger; owned by the caller.
      cancel: Set by the signal handlers to abort in-flight work.
    """

    action: str
    config: ToolConfig
    client: JmapClient
    audit: AuditLogger
    cancel: threading.Event = field(default_factory=threading.Event)

    def ensure_header(self, columns: Sequence[str]) -> None:
        """Write the audit header unless the file already has content."""

        if self.audit.should_write_header():
            self.audit.write_header(columns)
