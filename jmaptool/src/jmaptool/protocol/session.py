"""Typed JMAP Session resource with derived queries and validation.

What:
  Parse the Session resource returned by the ``/.well-known/jmap`` endpoint
  (RFC 8620 section 2) into an immutable :class:`Session` model and answer the
  questions the action flows ask of it: which capabilities and accounts exist,
  which account is primary for mail, and whether the resource is usable.

Why:
  Every later request depends on ``apiUrl`` and the primary account map. A
  single parsed, frozen model keeps those answers consistent for the lifetime
  of a client without re-reading the JSON.

How:
  :func:`parse_session` validates the bytes with pydantic and converts any
  failure into :class:`~jmaptool.errors.ParseError`. :meth:`Session.check`
  (alias :meth:`Session.validate`) enforces the two mandatory rules (non-empty
  ``apiUrl`` and at least one capability) and then runs any extra policy
  checks the caller passes in. JSON ``null`` fields take their defaults.

Interfaces:
  :data:`WELL_KNOWN_PATH`, :func:`discovery_url`, :class:`Account`,
  :class:`Session`, :func:`parse_session`, :class:`CoreCapabilityInfo`,
  :class:`MailCapabilityInfo`, :func:`require_core_capability`,
  :func:`require_absolute_urls`.

Invariants & Safety:
  - Sessions are frozen after parsing.
  - Map-derived listings are sorted so output does not depend on the order
    the server serialised its objects in.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, ValidationError as _PydanticValidationError, model_validator
from pydantic.alias_generators import to_camel

from ..errors import ParseError, TypeMismatchError, ValidationError
from .methods import CORE_CAPABILITY, MAIL_CAPABILITY, SUBMISSION_CAPABILITY


WELL_KNOWN_PATH = "/.well-known/jmap"
DEFAULT_PORT = 443


def discovery_url(host: str, port: int = DEFAULT_PORT) -> str:
    """Return the Session discovery URL for ``host``.

    What:
      Build ``<scheme>://<host>[:<port>]/.well-known/jmap``.

    Why:
      Operators pass either a bare hostname or a full base URL (for example a
      plain-HTTP test server); both must reach the well-known endpoint.

    How:
      A host that already carries an ``http://`` or ``https://`` scheme (in
      any letter case) is used verbatim after trimming a trailing ``/``;
      otherwise ``https://`` is assumed and ``:port`` is appended only for
      non-default ports.
    """

    base = host.rstrip("/")
    if not base.lower().startswith(("http://", "https://")):
        if port == DEFAULT_PORT:
            base = f"https://{base}"
        else:
            base = f"https://{base}:{port}"
    return base + WELL_KNOWN_PATH


class _SessionModel(BaseModel):
    """Frozen camelCase model base for the Session document and its parts.

    JSON ``null`` is read as "absent", so nullable servers get the field
    defaults instead of a type error.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Account(_SessionModel):
    """An account the authenticated user can access."""

    name: str = ""
    is_personal: bool = False
    is_read_only: bool = False
    account_capabilities: Dict[str, Any] = {}


class CoreCapabilityInfo(_SessionModel):
    """Limits advertised under ``urn:ietf:params:jmap:core``."""

    max_size_upload: int = 0
    max_concurrent_upload: int = 0
    max_size_request: int = 0
    max_concurrent_requests: int = 0
    max_calls_in_request: int = 0
    max_objects_in_get: int = 0
    max_objects_in_set: int = 0
    collation_algorithms: List[str] = []


class MailCapabilityInfo(_SessionModel):
    """Limits advertised under ``urn:ietf:params:jmap:mail``."""

    max_mailboxes_per_email: Optional[int] = None
    max_mailbox_depth: Optional[int] = None
    max_size_mailbox_name: int = 0
    max_size_attachments_per_email: int = 0
    email_query_sort_options: List[str] = []
    may_create_top_level_mailbox: bool = False


SessionCheck = Callable[["Session"], Optional[str]]


class Session(_SessionModel):
    """The JMAP Session resource.

    Attributes mirror the JSON keys (``apiUrl`` becomes ``api_url`` and so on).
    Capability payloads are kept as opaque mappings; :meth:`core_capability`
    and :meth:`mail_capability` provide typed views on demand.
    """

    capabilities: Dict[str, Any] = {}
    accounts: Dict[str, Account] = {}
    primary_accounts: Dict[str, str] = {}
    username: str = ""
    api_url: str = ""
    download_url: str = ""
    upload_url: str = ""
    event_source_url: str = ""
    state: str = ""

    @classmethod
    def parse(cls, data: Union[bytes, str]) -> "Session":
        """Alternate constructor delegating to :func:`parse_session`."""

        return parse_session(data)

    def check(self, *checks: SessionCheck) -> None:
        """Raise :class:`ValidationError` unless the session is usable.

        What:
          Enforce the two rules every client relies on, then run optional
          policy checks.

        Why:
          A Session without ``apiUrl`` or capabilities cannot serve any method
          call; failing at discovery gives a clearer error than a later POST to
          an empty URL.

        How:
          ``apiUrl`` must be non-empty and at least one capability must be
          present. Each entry of ``checks`` is then called with the session and
          may return an error message to reject it.
        """

        if not self.api_url:
            raise ValidationError("session missing apiUrl")
        if not self.capabilities:
            raise ValidationError("session missing capabilities")
        for check in checks:
            problem = check(self)
            if problem:
                raise ValidationError(problem)

    def validate(self, *checks: SessionCheck) -> None:  # type: ignore[override]
        """Alias of :meth:`check` kept for callers using the protocol's name.

        This shadows pydantic's deprecated ``BaseModel.validate`` classmethod;
        use :meth:`model_validate` to build a Session from a mapping.
        """

        self.check(*checks)

    def account_count(self) -> int:
        """Return the number of accounts the credentials can access."""

        return len(self.accounts)

    def account_names(self) -> List[str]:
        """Return account display names ordered by account id."""

        return [self.accounts[account_id].name for account_id in sorted(self.accounts)]

    def capability_names(self) -> List[str]:
        """Return the advertised capability URIs in sorted order.

        Sorting keeps console output and audit rows identical across runs,
        whatever order the server serialised its capability map in.
        """

        return sorted(self.capabilities)

    def has_capability(self, uri: str) -> bool:
        """Return ``True`` when ``uri`` is a key of the capability map."""

        return uri in self.capabilities

    def has_mail_capability(self) -> bool:
        """Return ``True`` when the server advertises JMAP Mail (RFC 8621)."""

        return self.has_capability(MAIL_CAPABILITY)

    def has_submission_capability(self) -> bool:
        """Return ``True`` when the server advertises email submission."""

        return self.has_capability(SUBMISSION_CAPABILITY)

    def primary_mail_account_id(self) -> Optional[str]:
        """Return the primary account id for mail, or ``None`` when not advertised."""

        return self.primary_accounts.get(MAIL_CAPABILITY)

    def core_capability(self) -> Optional[CoreCapabilityInfo]:
        """Return the typed core limits, or ``None`` when core is absent.

        Raises:
          TypeMismatchError: If the capability payload has the wrong shape.
        """

        return self._capability_view(CORE_CAPABILITY, CoreCapabilityInfo)

    def mail_capability(self) -> Optional[MailCapabilityInfo]:
        """Return the typed mail limits, or ``None`` when mail is absent.

        Raises:
          TypeMismatchError: If the capability payload has the wrong shape.
        """

        return self._capability_view(MAIL_CAPABILITY, MailCapabilityInfo)

    def _capability_view(self, uri: str, model: type) -> Any:
        if uri not in self.capabilities:
            return None
        try:
            return model.model_validate(self.capabilities[uri])
        except _PydanticValidationError as exc:
            raise TypeMismatchError(f"malformed capability {uri}") from exc

    def summary(self) -> str:
        """Return a short multi-line description for verbose output.

        What:
          List the username, API URL, account count and capabilities, one per
          line, ending with a newline.

        Why:
          Gives operators the key facts of a Session without dumping the whole
          JSON document.
        """

        lines = [
            f"Username: {self.username}",
            f"API URL: {self.api_url}",
            f"Accounts: {self.account_count()}",
            f"Capabilities: {', '.join(self.capability_names())}",
        ]
        return "\n".join(lines) + "\n"


def parse_session(data: Union[bytes, str]) -> Session:
    """Parse Session JSON.

    Raises:
      ParseError: On malformed JSON, a non-object document, or fields of the
        wrong type. Absent and ``null`` fields take empty defaults; use
        :meth:`Session.check` for the stronger checks.
    """

    try:
        return Session.model_validate_json(data)
    except _PydanticValidationError as exc:
        raise ParseError(f"failed to parse session: {exc}") from exc


def require_core_capability(session: Session) -> Optional[str]:
    """Reject sessions that do not advertise ``urn:ietf:params:jmap:core``."""

    if not session.has_capability(CORE_CAPABILITY):
        return "session missing core capability"
    return None


def require_absolute_urls(session: Session) -> Optional[str]:
    """Reject sessions whose advertised endpoints are not absolute http(s) URLs."""

    endpoints = {
        "apiUrl": session.api_url,
        "downloadUrl": session.download_url,
        "uploadUrl": session.upload_url,
        "eventSourceUrl": session.event_source_url,
    }
    for key, value in endpoints.items():
        if not value:
            continue
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return f"session {key} is not an absolute URL: {value}"
    return None


__all__ = [
    "WELL_KNOWN_PATH",
    "DEFAULT_PORT",
    "discovery_url",
    "Account",
    "CoreCapabilityInfo",
    "MailCapabilityInfo",
    "Session",
    "SessionCheck",
    "parse_session",
    "require_core_capability",
    "require_absolute_urls",
]
