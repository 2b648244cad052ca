"""JMAP request/response envelopes and the invocation tuple codec.

What:
  Map :class:`MethodCall`, :class:`MethodResponse`, :class:`Request` and
  :class:`Response` to and from JMAP's wire JSON (RFC 8620 section 3), where an
  invocation is a 3-element array ``[name, arguments, callId]`` rather than an
  object.

Why:
  The argument element is polymorphic. Outgoing calls carry typed request
  models, while incoming responses can only be typed once the method name is
  known. Keeping the argument as a tagged union (model or
  :class:`RawArguments`) makes that decision explicit at the decode boundary
  instead of passing untyped dictionaries around.

How:
  Invocations encode through :meth:`MethodCall.to_wire`. Decoding splits the
  array with :func:`_split_invocation`, which rejects anything that is not a
  3-element array with string name and call id, and wraps the argument
  element in :class:`RawArguments`. Typed decoders validate those bytes into
  the pydantic models from :mod:`jmaptool.protocol.types`.

Interfaces:
  Capability and method constants, :class:`RawArguments`, :class:`MethodCall`,
  :class:`MethodResponse`, :class:`Request`, :class:`Response`,
  :func:`new_mailbox_get_request`, :func:`new_email_query_request`,
  :func:`decode_mailbox_get_response`, :func:`decode_email_query_response`,
  :func:`decode_email_get_response`, :func:`decode_response_arguments`,
  :func:`is_error_response`.

Invariants & Safety:
  - Invocation arrays with a length other than 3 raise :class:`DecodeError`.
  - Call and response order is preserved; nothing here reorders by call id.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as _PydanticValidationError

from ..errors import DecodeError, TypeMismatchError
from .types import (
    GetEmailsResponse,
    GetMailboxesResponse,
    GetRequest,
    MethodErrorPayload,
    QueryEmailsResponse,
    QueryRequest,
)


CORE_CAPABILITY = "urn:ietf:params:jmap:core"
MAIL_CAPABILITY = "urn:ietf:params:jmap:mail"
SUBMISSION_CAPABILITY = "urn:ietf:params:jmap:submission"

METHOD_MAILBOX_GET = "Mailbox/get"
METHOD_MAILBOX_QUERY = "Mailbox/query"
METHOD_EMAIL_GET = "Email/get"
METHOD_EMAIL_QUERY = "Email/query"
METHOD_EMAIL_SET = "Email/set"

ERROR_RESPONSE_NAME = "error"
DEFAULT_CALL_ID = "0"

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class RawArguments:
    """Undecoded JSON for an invocation's argument element."""

    payload: bytes

    @classmethod
    def from_value(cls, value: Any) -> "RawArguments":
        """Serialise an already-decoded JSON value into compact raw arguments."""

        return cls(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))

    def to_value(self) -> Any:
        """Return the payload parsed back into Python objects."""

        return json.loads(self.payload)

    def decode(self, model: Type[ModelT]) -> ModelT:
        """Validate the payload into ``model``.

        Raises:
          TypeMismatchError: When the JSON does not fit the model.
        """

        try:
            return model.model_validate_json(self.payload)
        except _PydanticValidationError as exc:
            raise TypeMismatchError(
                f"arguments do not match {model.__name__}: {exc.error_count()} error(s)"
            ) from exc


Arguments = Union[BaseModel, RawArguments]


def _arguments_to_wire(arguments: Arguments) -> Any:
    """Return the JSON value of ``arguments``, typed or raw."""

    if isinstance(arguments, RawArguments):
        return arguments.to_value()
    if hasattr(arguments, "to_wire"):
        return arguments.to_wire()
    return arguments.model_dump(mode="json", by_alias=True, exclude_none=True)


def _split_invocation(value: Any, kind: str) -> Tuple[str, RawArguments, str]:
    """Split a decoded invocation array into ``(name, arguments, call_id)``.

    Raises:
      DecodeError: If ``value`` is not a 3-element array with string name and
        call id.
    """

    if not isinstance(value, list):
        raise DecodeError(f"{kind} must be a JSON array, got {type(value).__name__}")
    if len(value) != 3:
        raise DecodeError(f"{kind} must have exactly 3 elements, got {len(value)}")
    name, arguments, call_id = value
    if not isinstance(name, str):
        raise DecodeError(f"{kind} name must be a string")
    if not isinstance(call_id, str):
        raise DecodeError(f"{kind} call id must be a string")
    return name, RawArguments.from_value(arguments), call_id


def _load_json(data: Union[bytes, str], kind: str) -> Any:
    """Parse ``data`` as JSON, reporting failures as :class:`DecodeError`."""

    try:
        return json.loads(data)
    except (ValueError, UnicodeDecodeError) as exc:
        raise DecodeError(f"{kind} is not valid JSON: {exc}") from exc


@dataclass(frozen=True)
class MethodCall:
    """A method invocation: ``[name, arguments, callId]`` on the wire.

    What:
      Pair a method name and client-chosen call id with its arguments, which
      are either a typed pydantic model or :class:`RawArguments`.

    Why:
      JMAP encodes invocations as positional arrays rather than objects; a
      named type keeps that detail out of request builders.
    """

    name: str
    arguments: Arguments
    call_id: str

    def to_wire(self) -> List[Any]:
        """Return the invocation as the three-element JSON array."""

        return [self.name, _arguments_to_wire(self.arguments), self.call_id]

    def encode(self) -> bytes:
        """Serialise the invocation alone as compact UTF-8 JSON."""

        return json.dumps(self.to_wire(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_wire(cls, value: Any) -> "MethodCall":
        """Build a call from an already-parsed invocation array.

        What:
          Accept the ``[name, arguments, callId]`` value found inside a
          request's ``methodCalls``.

        Why:
          Envelope decoding parses the whole body once and hands each element
          here; re-serialising to bytes first would be wasted work.

        How:
          Shape checks live in :func:`_split_invocation`; the argument element
          is kept as :class:`RawArguments` so unknown methods still round-trip.

        Raises:
          DecodeError: If the value is not a 3-element array with string name
            and call id.
        """

        name, arguments, call_id = _split_invocation(value, "method call")
        return cls(name=name, arguments=arguments, call_id=call_id)

    @classmethod
    def decode(cls, data: Union[bytes, str]) -> "MethodCall":
        """Parse one invocation from JSON bytes; see :meth:`from_wire`."""

        return cls.from_wire(_load_json(data, "method call"))


@dataclass(frozen=True)
class MethodResponse:
    """A method response; arguments stay raw until the caller picks a model."""

    name: str
    arguments: RawArguments
    call_id: str

    def to_wire(self) -> List[Any]:
        """Return the invocation as the three-element JSON array."""

        return [self.name, self.arguments.to_value(), self.call_id]

    @classmethod
    def from_wire(cls, value: Any) -> "MethodResponse":
        """Build a response from an already-parsed invocation array."""

        name, arguments, call_id = _split_invocation(value, "method response")
        return cls(name=name, arguments=arguments, call_id=call_id)

    @classmethod
    def decode(cls, data: Union[bytes, str]) -> "MethodResponse":
        """Parse one response invocation from JSON bytes.

        Raises:
          DecodeError: On invalid JSON or an invocation of the wrong shape.
        """

        return cls.from_wire(_load_json(data, "method response"))

    @property
    def is_error(self) -> bool:
        """``True`` when the server answered with an ``error`` invocation."""

        return is_error_response(self.name)


@dataclass
class Request:
    """A JMAP API request envelope (RFC 8620 section 3.3)."""

    using: List[str]
    method_calls: List[MethodCall]
    created_ids: Optional[Dict[str, str]] = None

    def to_wire(self) -> Dict[str, Any]:
        """Return the envelope mapping; ``createdIds`` only appears when set."""

        payload: Dict[str, Any] = {
            "using": list(self.using),
            "methodCalls": [call.to_wire() for call in self.method_calls],
        }
        if self.created_ids is not None:
            payload["createdIds"] = dict(self.created_ids)
        return payload

    def encode(self) -> bytes:
        """Serialise the request as compact UTF-8 JSON for the POST body."""

        return json.dumps(self.to_wire(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def decode(cls, data: Union[bytes, str]) -> "Request":
        """Parse a request envelope, mainly for tests and fake servers.

        Raises:
          DecodeError: If ``using`` or ``methodCalls`` is missing or malformed,
            or any call fails :meth:`MethodCall.from_wire`.
        """

        payload = _load_json(data, "request")
        if not isinstance(payload, dict):
            raise DecodeError("request must be a JSON object")
        using = payload.get("using")
        calls = payload.get("methodCalls")
        if not isinstance(using, list) or not all(isinstance(uri, str) for uri in using):
            raise DecodeError("request 'using' must be an array of strings")
        if not isinstance(calls, list):
            raise DecodeError("request 'methodCalls' must be an array")
        return cls(
            using=using,
            method_calls=[MethodCall.from_wire(call) for call in calls],
            created_ids=_created_ids(payload, "request"),
        )


@dataclass
class Response:
    """A JMAP API response envelope (RFC 8620 section 3.4)."""

    method_responses: List[MethodResponse] = field(default_factory=list)
    created_ids: Optional[Dict[str, str]] = None
    session_state: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Return the envelope mapping; optional keys only appear when set."""

        payload: Dict[str, Any] = {
            "methodResponses": [response.to_wire() for response in self.method_responses],
        }
        if self.created_ids is not None:
            payload["createdIds"] = dict(self.created_ids)
        if self.session_state is not None:
            payload["sessionState"] = self.session_state
        return payload

    @classmethod
    def decode(cls, data: Union[bytes, str]) -> "Response":
        """Parse a response envelope returned by the API endpoint.

        What:
          Produce a :class:`Response` whose method responses keep their
          arguments raw.

        Why:
          The caller knows which method it invoked and picks the argument model
          afterwards, so envelope parsing must not guess types.

        How:
          Require an object with a ``methodResponses`` array, accept optional
          ``createdIds`` and ``sessionState``, and split every element through
          :meth:`MethodResponse.from_wire`.

        Raises:
          DecodeError: On invalid JSON or a malformed envelope.
        """

        payload = _load_json(data, "response")
        if not isinstance(payload, dict):
            raise DecodeError("response must be a JSON object")
        responses = payload.get("methodResponses")
        if not isinstance(responses, list):
            raise DecodeError("response 'methodResponses' must be an array")
        session_state = payload.get("sessionState")
        if session_state is not None and not isinstance(session_state, str):
            raise DecodeError("response 'sessionState' must be a string")
        return cls(
            method_responses=[MethodResponse.from_wire(item) for item in responses],
            created_ids=_created_ids(payload, "response"),
            session_state=session_state,
        )


def _created_ids(payload: Dict[str, Any], kind: str) -> Optional[Dict[str, str]]:
    """Return the optional ``createdIds`` map, checking it is string to string."""

    created = payload.get("createdIds")
    if created is None:
        return None
    if not isinstance(created, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in created.items()
    ):
        raise DecodeError(f"{kind} 'createdIds' must map strings to strings")
    return created


def new_mailbox_get_request(
    account_id: str,
    properties: Optional[Sequence[str]] = None,
) -> Request:
    """Build a single-call ``Mailbox/get`` request for every mailbox of ``account_id``.

    ``properties`` restricts the returned fields; ``None`` asks for all of them.
    """

    arguments = GetRequest(
        account_id=account_id,
        properties=list(properties) if properties is not None else None,
    )
    return Request(
        using=[CORE_CAPABILITY, MAIL_CAPABILITY],
        method_calls=[MethodCall(METHOD_MAILBOX_GET, arguments, DEFAULT_CALL_ID)],
    )


def new_email_query_request(
    account_id: str,
    filter: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    calculate_total: bool = True,
) -> Request:
    """Build a single-call ``Email/query`` request."""

    arguments = QueryRequest(
        account_id=account_id,
        filter=filter,
        limit=limit,
        calculate_total=calculate_total,
    )
    return Request(
        using=[CORE_CAPABILITY, MAIL_CAPABILITY],
        method_calls=[MethodCall(METHOD_EMAIL_QUERY, arguments, DEFAULT_CALL_ID)],
    )


def decode_mailbox_get_response(response: MethodResponse) -> GetMailboxesResponse:
    """Decode ``Mailbox/get`` arguments.

    Raises:
      TypeMismatchError: When the arguments do not fit :class:`GetMailboxesResponse`.
    """

    return response.arguments.decode(GetMailboxesResponse)


def decode_email_query_response(response: MethodResponse) -> QueryEmailsResponse:
    """Decode ``Email/query`` arguments into :class:`QueryEmailsResponse`."""

    return response.arguments.decode(QueryEmailsResponse)


def decode_email_get_response(response: MethodResponse) -> GetEmailsResponse:
    """Decode ``Email/get`` arguments into :class:`GetEmailsResponse`."""

    return response.arguments.decode(GetEmailsResponse)


RESPONSE_MODELS: Dict[str, Type[BaseModel]] = {
    METHOD_MAILBOX_GET: GetMailboxesResponse,
    METHOD_EMAIL_QUERY: QueryEmailsResponse,
    METHOD_EMAIL_GET: GetEmailsResponse,
    ERROR_RESPONSE_NAME: MethodErrorPayload,
}


def decode_response_arguments(response: MethodResponse) -> BaseModel:
    """Decode ``response`` with the model registered for its method name.

    Raises:
      TypeMismatchError: When no model is registered for the name or the
        arguments do not fit it.
    """

    model = RESPONSE_MODELS.get(response.name)
    if model is None:
        raise TypeMismatchError(f"no decoder registered for method {response.name!r}")
    return response.arguments.decode(model)


def is_error_response(name: str) -> bool:
    """Return ``True`` only for the reserved ``error`` response name."""

    return name == ERROR_RESPONSE_NAME


__all__ = [
    "CORE_CAPABILITY",
    "MAIL_CAPABILITY",
    "SUBMISSION_CAPABILITY",
    "METHOD_MAILBOX_GET",
    "METHOD_MAILBOX_QUERY",
    "METHOD_EMAIL_GET",
    "METHOD_EMAIL_QUERY",
    "METHOD_EMAIL_SET",
    "ERROR_RESPONSE_NAME",
    "DEFAULT_CALL_ID",
    "RawArguments",
    "Arguments",
    "MethodCall",
    "MethodResponse",
    "Request",
    "Response",
    "RESPONSE_MODELS",
    "new_mailbox_get_request",
    "new_email_query_request",
    "decode_mailbox_get_response",
    "decode_email_query_response",
    "decode_email_get_response",
    "decode_response_arguments",
    "is_error_response",
]
