"""JMAP protocol package: data types, wire codec, and the Session model.

What:
  Re-export the supported surface of :mod:`jmaptool.protocol.types`,
  :mod:`jmaptool.protocol.methods` and :mod:`jmaptool.protocol.session` so the
  client and the action flows import from one place.

Invariants:
  - Nothing in this package performs network I/O; that is the job of
    :mod:`jmaptool.client`.
"""

from .methods import (
    CORE_CAPABILITY,
    DEFAULT_CALL_ID,
    ERROR_RESPONSE_NAME,
    MAIL_CAPABILITY,
    METHOD_EMAIL_GET,
    METHOD_EMAIL_QUERY,
    METHOD_EMAIL_SET,
    METHOD_MAILBOX_GET,
    METHOD_MAILBOX_QUERY,
    SUBMISSION_CAPABILITY,
    MethodCall,
    MethodResponse,
    RawArguments,
    Request,
    Response,
    decode_email_get_response,
    decode_email_query_response,
    decode_mailbox_get_response,
    decode_response_arguments,
    is_error_response,
    new_email_query_request,
    new_mailbox_get_request,
)
from .session import (
    WELL_KNOWN_PATH,
    Account,
    CoreCapabilityInfo,
    MailCapabilityInfo,
    Session,
    discovery_url,
    parse_session,
    require_absolute_urls,
    require_core_capability,
)
from .types import (
    Email,
    EmailAddress,
    GetEmailsResponse,
    GetMailboxesResponse,
    GetRequest,
    Mailbox,
    MailboxRights,
    MethodErrorPayload,
    QueryEmailsResponse,
    QueryRequest,
    SortOrder,
)

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
    "MethodCall",
    "MethodResponse",
    "Request",
    "Response",
    "new_mailbox_get_request",
    "new_email_query_request",
    "decode_mailbox_get_response",
    "decode_email_query_response",
    "decode_email_get_response",
    "decode_response_arguments",
    "is_error_response",
    "WELL_KNOWN_PATH",
    "discovery_url",
    "Account",
    "Session",
    "CoreCapabilityInfo",
    "MailCapabilityInfo",
    "parse_session",
    "require_core_capability",
    "require_absolute_urls",
    "Mailbox",
    "MailboxRights",
    "Email",
    "EmailAddress",
    "GetRequest",
    "QueryRequest",
    "SortOrder",
    "GetMailboxesResponse",
    "QueryEmailsResponse",
    "GetEmailsResponse",
    "MethodErrorPayload",
]
