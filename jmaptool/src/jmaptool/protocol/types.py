"""Pydantic models describing JMAP data types and method argument shapes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class JmapModel(BaseModel):
    """Base model mapping snake_case attributes to JMAP camelCase keys.

    What:
      Give every JMAP object and argument set the same alias rules and a
      :meth:`to_wire` serialiser.

    Why:
      Servers may send ``null`` for properties they do not track (RFC 8620
      allows ``null`` for many of them); reading those as absent keeps one
      odd field from failing a whole response.

    How:
      A ``mode="before"`` validator drops ``null`` entries so the field
      defaults apply; required fields still fail when they are ``null``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_wire(self) -> Dict[str, Any]:
        """Return the JSON-ready mapping sent on the wire, without ``None`` fields."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MailboxRights(JmapModel):
    """Permissions the authenticated user holds on a mailbox."""

    may_read_items: bool = False
    may_add_items: bool = False
    may_remove_items: bool = False
    may_set_seen: bool = False
    may_set_keywords: bool = False
    may_create_child: bool = False
    may_rename: bool = False
    may_delete: bool = False
    may_submit: bool = False


class Mailbox(JmapModel):
    """A JMAP Mailbox object (RFC 8621 section 2)."""

    id: str
    name: str
    parent_id: Optional[str] = None
    role: Optional[str] = None
    sort_order: int = 0
    total_emails: int = 0
    unread_emails: int = 0
    total_threads: int = 0
    unread_threads: int = 0
    my_rights: Optional[MailboxRights] = None
    is_subscribed: bool = False


class EmailAddress(JmapModel):
    """A parsed address with an optional display name."""

    name: Optional[str] = None
    email: str = ""


class Email(JmapModel):
    """A JMAP Email object, limited to metadata and header convenience fields."""

    id: str
    blob_id: Optional[str] = None
    thread_id: Optional[str] = None
    mailbox_ids: Dict[str, bool] = {}
    keywords: Dict[str, bool] = {}
    size: int = 0
    received_at: Optional[str] = None
    message_id: Optional[List[str]] = None
    in_reply_to: Optional[List[str]] = None
    references: Optional[List[str]] = None
    sender: Optional[List[EmailAddress]] = None
    from_: Optional[List[EmailAddress]] = None
    to: Optional[List[EmailAddress]] = None
    cc: Optional[List[EmailAddress]] = None
    bcc: Optional[List[EmailAddress]] = None
    reply_to: Optional[List[EmailAddress]] = None
    subject: Optional[str] = None
    sent_at: Optional[str] = None
    preview: Optional[str] = None
    has_attachment: bool = False

    # ``from`` is a keyword; alias it explicitly instead of relying on the generator.
    model_config = ConfigDict(
        alias_generator=lambda name: "from" if name == "from_" else to_camel(name),
        populate_by_name=True,
        extra="ignore",
    )


class SortOrder(JmapModel):
    """A single comparator for ``/query`` sorting."""

    property: str
    is_ascending: bool = True


class GetRequest(JmapModel):
    """Arguments for a standard ``/get`` method."""

    account_id: str
    ids: Optional[List[str]] = None
    properties: Optional[List[str]] = None


class QueryRequest(JmapModel):
    """Arguments for a standard ``/query`` method."""

    account_id: str
    filter: Optional[Dict[str, Any]] = None
    sort: Optional[List[SortOrder]] = None
    position: Optional[int] = None
    anchor: Optional[str] = None
    anchor_offset: Optional[int] = None
    limit: Optional[int] = None
    calculate_total: Optional[bool] = None


class GetMailboxesResponse(JmapModel):
    """Response arguments of ``Mailbox/get``."""

    account_id: str = ""
    state: str = ""
    list: List[Mailbox] = []
    not_found: List[str] = []


class QueryEmailsResponse(JmapModel):
    """Response arguments of ``Email/query``."""

    account_id: str = ""
    query_state: str = ""
    can_calculate_changes: bool = False
    position: int = 0
    total: Optional[int] = None
    ids: List[str] = []


class GetEmailsResponse(JmapModel):
    """Response arguments of ``Email/get``."""

    account_id: str = ""
    state: str = ""
    list: List[Email] = []
    not_found: List[str] = []


class MethodErrorPayload(JmapModel):
    """Arguments of an ``error`` method response."""

    type: str
    description: Optional[str] = None


__all__ = [
    "JmapModel",
    "MailboxRights",
    "Mailbox",
    "EmailAddress",
    "Email",
    "SortOrder",
    "GetRequest",
    "QueryRequest",
    "GetMailboxesResponse",
    "QueryEmailsResponse",
    "GetEmailsResponse",
    "MethodErrorPayload",
]
