"""Error hierarchy raised by the JMAP protocol layer and client.

What:
  Define one exception type per failure kind the core can report: transport
  failures (including cancellation), non-200 HTTP statuses, malformed payloads,
  missing client state, absent primary accounts, server-side method errors and
  invalid Session resources.

Why:
  Action flows and the CLI need to tell a cancelled request from a refused
  connection, or an authentication failure from a malformed Session, without
  parsing message strings. Every error carries the URL (and, where relevant,
  the HTTP status and body) so callers can log it without re-deriving context.

How:
  All types derive from :class:`JmapError`, which stores an optional ``url``.
  Raisers chain the underlying cause with ``raise ... from exc``.

Interfaces:
  :class:`JmapError`, :class:`TransportError`, :class:`RequestCancelledError`,
  :class:`HTTPStatusError`, :class:`ParseError`, :class:`DecodeError`,
  :class:`TypeMismatchError`, :class:`StateError`,
  :class:`NoPrimaryAccountError`, :class:`MethodError`,
  :class:`ValidationError`.

Invariants & Safety:
  - The core raises these errors and never logs or exits on its own.
  - Nothing here is retried; retry policy belongs to the caller.
"""
from __future__ import annotations

from typing import Optional


class JmapError(Exception):
    """Base class for every error raised by the JMAP core."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class TransportError(JmapError):
    """The HTTP exchange failed before a response was received."""


class RequestCancelledError(TransportError):
    """The in-flight request was aborted by a cancellation signal.

    Subclasses :class:`TransportError` so generic handlers still see a transport
    failure, while the CLI can match it first and shut down cleanly.
    """


class HTTPStatusError(JmapError):
    """The server answered with a status other than ``200``."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code
        self.body = body


class ParseError(JmapError):
    """A payload was not valid JSON or did not have the expected shape."""


class DecodeError(ParseError):
    """An invocation tuple or request/response envelope is malformed."""


class TypeMismatchError(ParseError):
    """Method arguments could not be decoded into the requested model."""


class StateError(JmapError):
    """The operation needs a discovered Session and none is cached."""


class NoPrimaryAccountError(JmapError):
    """The Session advertises no primary account for JMAP Mail."""


class MethodError(JmapError):
    """The server returned an ``error`` method response.

    Attributes:
      error_type: The JMAP error ``type`` (e.g. ``accountNotFound``).
      description: Optional free-text description from the server.
      call_id: Call id of the failed invocation.
    """

    def __init__(
        self,
        message: str,
        *,
        error_type: str,
        description: Optional[str] = None,
        call_id: str = "",
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, url=url)
        self.error_type = error_type
        self.description = description
        self.call_id = call_id


class ValidationError(JmapError):
    """A parsed Session resource failed validation."""


__all__ = [
    "JmapError",
    "TransportError",
    "RequestCancelledError",
    "HTTPStatusError",
    "ParseError",
    "DecodeError",
    "TypeMismatchError",
    "StateError",
    "NoPrimaryAccountError",
    "MethodError",
    "ValidationError",
]
