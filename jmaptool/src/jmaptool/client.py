"""Synchronous JMAP client performing discovery and API calls over HTTP.

What:
  Own a single ``httpx.Client`` and at most one discovered :class:`Session`,
  and expose the three operations the action flows need: :meth:`discover`,
  :meth:`api_call` and :meth:`list_mailboxes`.

Why:
  Keeping all network I/O in one class lets the protocol modules stay pure and
  gives tests a single seam (the ``transport`` argument) to replace the
  network with ``httpx.MockTransport``.

How:
  Every request resolves the ``Authorization`` header at send time from the
  configured :class:`Credentials`, enforces a fixed 30 second timeout, and maps
  ``httpx`` failures onto :mod:`jmaptool.errors`. Cancellation is cooperative:
  a set ``cancel`` event stops a request before it is sent, and a
  ``KeyboardInterrupt`` delivered while a request is in flight becomes
  :class:`RequestCancelledError`.

Interfaces:
  :class:`Credentials`, :func:`resolve_auth_method`,
  :func:`authorization_header`, :class:`JmapClient`.

Invariants & Safety:
  - The cached session only changes on a successful :meth:`discover`; there is
    no transition back to "no session".
  - One request in flight at a time, no retries, no logging.
  - Instances are not safe for concurrent use.
"""
from __future__ import annotations

import base64
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import httpx

from .errors import (
    DecodeError,
    HTTPStatusError,
    MethodError,
    NoPrimaryAccountError,
    ParseError,
    RequestCancelledError,
    StateError,
    TransportError,
    TypeMismatchError,
    ValidationError,
)
from .protocol.methods import (
    MethodResponse,
    Request,
    Response,
    decode_mailbox_get_response,
    new_mailbox_get_request,
)
from .protocol.session import DEFAULT_PORT, Session, SessionCheck, discovery_url, parse_session
from .protocol.types import Mailbox, MethodErrorPayload


DEFAULT_TIMEOUT_SECONDS = 30.0

AUTH_AUTO = "auto"
AUTH_BASIC = "basic"
AUTH_BEARER = "bearer"
AUTH_NONE = "none"


@dataclass(frozen=True)
class Credentials:
    """Credentials and the preferred authentication scheme.

    Attributes:
      username: Account name for HTTP Basic authentication.
      password: Password for HTTP Basic authentication.
      access_token: Token for Bearer authentication.
      auth_method: ``auto``, ``basic`` or ``bearer`` (case-insensitive).
    """

    username: str = ""
    password: str = ""
    access_token: str = ""
    auth_method: str = AUTH_AUTO


def resolve_auth_method(credentials: Credentials) -> str:
    """Return the scheme a request would use.

    ``auto`` prefers a token over a password and yields ``none`` when neither
    is configured. Explicit methods are returned lowercased, unknown values
    included.
    """

    method = credentials.auth_method.lower()
    if method == AUTH_AUTO:
        if credentials.access_token:
            return AUTH_BEARER
        if credentials.password:
            return AUTH_BASIC
        return AUTH_NONE
    return method


def authorization_header(credentials: Credentials) -> Optional[str]:
    """Build the ``Authorization`` header value, or ``None`` when none applies."""

    method = resolve_auth_method(credentials)
    if method == AUTH_BEARER:
        if credentials.access_token:
            return f"Bearer {credentials.access_token}"
    elif method == AUTH_BASIC:
        if credentials.username and credentials.password:
            raw = f"{credentials.username}:{credentials.password}".encode("utf-8")
            return "Basic " + base64.b64encode(raw).decode("ascii")
    return None


class JmapClient:
    """JMAP client bound to one server and one set of credentials.

    What:
      Discover the Session resource, cache it, and issue API requests against
      its ``apiUrl`` with the configured authentication.

    Why:
      The diagnostic actions need one object that owns the HTTP connection
      and the discovered state, and that reports every failure as a
      :class:`~jmaptool.errors.JmapError` subclass carrying the URL involved.

    How:
      Wrap a single :class:`httpx.Client` with a fixed timeout. Requests go
      through :meth:`_send`, which adds the ``Authorization`` header, honours
      the cancel event and maps ``httpx`` failures and non-200 statuses onto
      the error hierarchy.

    Args:
      host: Hostname, or a base URL carrying its own scheme.
      port: Port used when ``host`` has no scheme.
      credentials: Authentication settings; anonymous when omitted.
      skip_verify: Disable TLS certificate verification.
      transport: Optional ``httpx`` transport, used by tests.
      user_agent: Optional ``User-Agent`` header value.
      session_checks: Extra policy checks passed to :meth:`Session.check`.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        credentials: Optional[Credentials] = None,
        *,
        skip_verify: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
        user_agent: Optional[str] = None,
        session_checks: Sequence[SessionCheck] = (),
    ) -> None:
        self._host = host
        self._port = port
        self._credentials = credentials or Credentials()
        self._session_checks = tuple(session_checks)
        self._session: Optional[Session] = None
        headers = {"Accept": "application/json"}
        if user_agent:
            headers["User-Agent"] = user_agent
        self._http = httpx.Client(
            verify=not skip_verify,
            timeout=DEFAULT_TIMEOUT_SECONDS,
            transport=transport,
            headers=headers,
        )

    def __enter__(self) -> "JmapClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying HTTP connection pool.

        The cached session stays readable after closing; further requests
        fail with a transport error.
        """

        self._http.close()

    @property
    def session(self) -> Optional[Session]:
        """The last successfully discovered session, if any."""

        return self._session

    @property
    def discovery_url(self) -> str:
        """The ``/.well-known/jmap`` URL derived from host and port."""

        return discovery_url(self._host, self._port)

    @property
    def auth_method(self) -> str:
        """The authentication scheme requests will use, for display and audit."""

        return resolve_auth_method(self._credentials)

    def discover(self, cancel: Optional[threading.Event] = None) -> Session:
        """Fetch, parse and validate the Session resource, then cache it.

        Raises:
          TransportError: Network failure or timeout.
          RequestCancelledError: ``cancel`` was set or the call was interrupted.
          HTTPStatusError: The server answered with a non-200 status.
          ParseError: The body is not valid Session JSON.
          ValidationError: The Session fails validation.
        """

        url = self.discovery_url
        response = self._send("GET", url, cancel)
        try:
            session = parse_session(response.content)
        except ParseError as exc:
            raise ParseError(f"invalid session document from {url}: {exc}", url=url) from exc
        try:
            session.check(*self._session_checks)
        except ValidationError as exc:
            raise ValidationError(f"invalid session from {url}: {exc}", url=url) from exc
        self._session = session
        return session

    def api_call(self, request: Request, cancel: Optional[threading.Event] = None) -> Response:
        """POST ``request`` to the session's API URL and decode the response.

        Raises:
          StateError: No session has been discovered yet.
          TransportError: Network failure, timeout, or cancellation.
          HTTPStatusError: The server answered with a non-200 status.
          DecodeError: The body is not a valid JMAP response envelope.
        """

        if self._session is None:
            raise StateError("no session available; discover() must succeed first")
        url = self._session.api_url
        response = self._send(
            "POST",
            url,
            cancel,
            content=request.encode(),
            headers={"Content-Type": "application/json"},
        )
        try:
            return Response.decode(response.content)
        except DecodeError as exc:
            raise DecodeError(f"invalid API response from {url}: {exc}", url=url) from exc

    def list_mailboxes(self, cancel: Optional[threading.Event] = None) -> List[Mailbox]:
        """Return every mailbox of the primary mail account.

        Discovers the session first when none is cached.

        Raises:
          NoPrimaryAccountError: The session has no primary mail account.
          MethodError: The server answered ``Mailbox/get`` with an error.
          ParseError: The response is empty or does not match ``Mailbox/get``.
          TransportError, HTTPStatusError, ValidationError: As for
            :meth:`discover` and :meth:`api_call`.
        """

        session = self._session if self._session is not None else self.discover(cancel)
        account_id = session.primary_mail_account_id()
        if account_id is None:
            raise NoPrimaryAccountError("no primary mail account found", url=session.api_url)

        response = self.api_call(new_mailbox_get_request(account_id), cancel)
        if not response.method_responses:
            raise ParseError("API response contained no method responses", url=session.api_url)

        first = response.method_responses[0]
        if first.is_error:
            raise _method_error(first, session.api_url)
        try:
            return decode_mailbox_get_response(first).list
        except TypeMismatchError as exc:
            raise TypeMismatchError(
                f"failed to parse mailbox response: {exc}", url=session.api_url
            ) from exc

    def _send(
        self,
        method: str,
        url: str,
        cancel: Optional[threading.Event],
        *,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one authenticated request and return the 200 response.

        What:
          Perform ``method`` on ``url`` and hand back the raw response.

        Why:
          Discovery and API calls share authentication, cancellation and error
          mapping; keeping it in one place keeps their messages consistent.

        How:
          Check ``cancel`` before sending, resolve the ``Authorization`` header
          from the credentials at send time, then translate ``httpx`` timeouts
          and errors into :class:`TransportError`, an interrupt into
          :class:`RequestCancelledError` and any non-200 status into
          :class:`HTTPStatusError` with the response body.
        """

        if cancel is not None and cancel.is_set():
            raise RequestCancelledError(f"{method} {url} cancelled before sending", url=url)

        request_headers = dict(headers or {})
        authorization = authorization_header(self._credentials)
        if authorization is not None:
            request_headers["Authorization"] = authorization

        try:
            response = self._http.request(method, url, content=content, headers=request_headers)
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"{method} {url} timed out after {DEFAULT_TIMEOUT_SECONDS:g}s", url=url
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"{method} {url} failed: {exc}", url=url) from exc
        except KeyboardInterrupt as exc:
            if cancel is not None:
                cancel.set()
            raise RequestCancelledError(f"{method} {url} cancelled", url=url) from exc

        if response.status_code != 200:
            body = response.text
            raise HTTPStatusError(
                f"{method} {url} failed with status {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
                url=url,
            )
        return response


def _method_error(response: MethodResponse, url: str) -> MethodError:
    """Build a :class:`MethodError` from an ``error`` method response.

    Payloads without a string ``type`` still produce an error, typed
    ``unknown`` and carrying the raw JSON as its message.
    """

    try:
        payload = response.arguments.decode(MethodErrorPayload)
    except TypeMismatchError:
        return MethodError(
            f"JMAP error: {response.arguments.payload.decode('utf-8', 'replace')}",
            error_type="unknown",
            call_id=response.call_id,
            url=url,
        )
    message = f"JMAP error: {payload.type}"
    if payload.description:
        message += f": {payload.description}"
    return MethodError(
        message,
        error_type=payload.type,
        description=payload.description,
        call_id=response.call_id,
        url=url,
    )


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "AUTH_AUTO",
    "AUTH_BASIC",
    "AUTH_BEARER",
    "AUTH_NONE",
    "Credentials",
    "resolve_auth_method",
    "authorization_header",
    "JmapClient",
]
