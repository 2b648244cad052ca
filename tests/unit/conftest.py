"""Pytest fixtures for unit tests requiring a JMAP server fake.

What:
  Make ``tests/unit`` importable and expose a :class:`FakeJmapServer` plus a
  client factory wired to it through ``httpx.MockTransport``.

Why:
  Most client tests only differ in how the server misbehaves. A shared fixture
  keeps each test focused on that difference.

Interfaces:
  :func:`jmap_server`, :func:`make_client` (pytest fixtures).

Invariants & Safety:
  - No fixture opens a socket; every request is served in-process.
  - Clients created through :func:`make_client` are closed after the test.
"""

import sys
from pathlib import Path

import pytest

from jmaptool.client import Credentials, JmapClient

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeJmapServer


@pytest.fixture
def jmap_server() -> FakeJmapServer:
    return FakeJmapServer()


@pytest.fixture
def make_client(jmap_server: FakeJmapServer):
    """Return a factory building clients that talk to ``jmap_server``.

    Keyword arguments are forwarded to :class:`JmapClient`; ``credentials``
    defaults to a username/password pair.
    """

    clients = []

    def _factory(**kwargs) -> JmapClient:
        kwargs.setdefault("credentials", Credentials(username="user@example.com", password="secret"))
        kwargs.setdefault("transport", jmap_server.transport())
        client = JmapClient("jmap.example.com", **kwargs)
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()
