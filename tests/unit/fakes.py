"""In-memory JMAP server used by unit, wiring and end-to-end tests.

What:
  Answer Session discovery and ``Mailbox/get`` API calls the way a small JMAP
  server would, and record every request for later assertions.

Why:
  Client and CLI tests must exercise real HTTP semantics (status codes,
  headers, bodies) without network access. ``httpx.MockTransport`` covers
  in-process tests; the same responder backs a threaded ``http.server`` for
  subprocess tests.

How:
  :meth:`FakeJmapServer.respond` maps ``(method, path, body)`` to a status and
  body. Knobs on the instance switch on failure modes: non-200 statuses, a
  method-level ``error`` response, raw API bodies, or a broken Session.

Interfaces:
  :class:`FakeJmapServer`, :func:`default_session`, :func:`inbox`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

CORE = "urn:ietf:params:jmap:core"
MAIL = "urn:ietf:params:jmap:mail"
SUBMISSION = "urn:ietf:params:jmap:submission"

BASE_URL = "https://jmap.example.com"
ACCOUNT_ID = "u1"


def default_session(api_url: str = f"{BASE_URL}/api/") -> Dict[str, Any]:
    return {
        "capabilities": {
            CORE: {
                "maxSizeUpload": 50000000,
                "maxConcurrentUpload": 4,
                "maxSizeRequest": 10000000,
                "maxConcurrentRequests": 4,
                "maxCallsInRequest": 16,
                "maxObjectsInGet": 500,
                "maxObjectsInSet": 500,
                "collationAlgorithms": ["i;ascii-casemap"],
            },
            MAIL: {},
        },
        "accounts": {
            ACCOUNT_ID: {
                "name": "user@example.com",
                "isPersonal": True,
                "isReadOnly": False,
                "accountCapabilities": {MAIL: {}},
            }
        },
        "primaryAccounts": {MAIL: ACCOUNT_ID},
        "username": "user@example.com",
        "apiUrl": api_url,
        "downloadUrl": f"{BASE_URL}/download/{{accountId}}/{{blobId}}/{{name}}",
        "uploadUrl": f"{BASE_URL}/upload/{{accountId}}/",
        "eventSourceUrl": f"{BASE_URL}/events/",
        "state": "s1",
    }


def inbox() -> Dict[str, Any]:
    return {
        "id": "mb1",
        "name": "Inbox",
        "role": "inbox",
        "sortOrder": 1,
        "totalEmails": 10,
        "unreadEmails": 2,
        "totalThreads": 8,
        "unreadThreads": 2,
        "myRights": {"mayReadItems": True, "mayAddItems": True},
        "isSubscribed": True,
    }


@dataclass
class FakeJmapServer:
    """Scriptable JMAP server.

    Attributes:
      session: Session document served at ``/.well-known/jmap``.
      mailboxes: Mailbox objects returned by ``Mailbox/get``.
      session_status / api_status: Status codes for the two endpoints.
      session_body / api_body: Raw bodies overriding the generated JSON.
      method_error: When set, ``Mailbox/get`` answers with this error type.
      requests: ``(method, path, headers, body)`` of every request received.
    """

    session: Dict[str, Any] = field(default_factory=default_session)
    mailboxes: List[Dict[str, Any]] = field(default_factory=lambda: [inbox()])
    session_status: int = 200
    api_status: int = 200
    session_body: Optional[bytes] = None
    api_body: Optional[bytes] = None
    method_error: Optional[str] = None
    requests: List[Tuple[str, str, Dict[str, str], bytes]] = field(default_factory=list)

    @property
    def api_path(self) -> str:
        return httpx.URL(self.session.get("apiUrl", f"{BASE_URL}/api/")).path

    def respond(self, method: str, path: str, headers: Dict[str, str], body: bytes) -> Tuple[int, bytes]:
        self.requests.append((method, path, {k.lower(): v for k, v in headers.items()}, body))
        if path == "/.well-known/jmap":
            if method != "GET":
                return 405, b"method not allowed"
            if self.session_status != 200:
                return self.session_status, b"Unauthorized"
            if self.session_body is not None:
                return 200, self.session_body
            return 200, json.dumps(self.session).encode("utf-8")
        if path == self.api_path:
            if method != "POST":
                return 405, b"method not allowed"
            if self.api_status != 200:
                return self.api_status, b"server error"
            if self.api_body is not None:
                return 200, self.api_body
            return 200, json.dumps(self._api_response(json.loads(body))).encode("utf-8")
        return 404, b"not found"

    def _api_response(self, request: Dict[str, Any]) -> Dict[str, Any]:
        responses: List[Any] = []
        for name, arguments, call_id in request["methodCalls"]:
            if name != "Mailbox/get":
                responses.append(["error", {"type": "unknownMethod"}, call_id])
            elif self.method_error is not None:
                responses.append(
                    ["error", {"type": self.method_error, "description": "rejected by fake"}, call_id]
                )
            else:
                responses.append(
                    [
                        "Mailbox/get",
                        {
                            "accountId": arguments["accountId"],
                            "state": "m1",
                            "list": self.mailboxes,
                            "notFound": [],
                        },
                        call_id,
                    ]
                )
        return {"methodResponses": responses, "sessionState": self.session.get("state", "")}

    def handler(self, request: httpx.Request) -> httpx.Response:
        status, body = self.respond(request.method, request.url.path, dict(request.headers), request.content)
        return httpx.Response(status, content=body, headers={"Content-Type": "application/json"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> List[str]:
        return [path for _, path, _, _ in self.requests]

    def last_headers(self) -> Dict[str, str]:
        return self.requests[-1][2]
