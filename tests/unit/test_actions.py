"""
Module: tests/unit/test_actions.py

What:
    Run each action flow against the fake server and assert on console output,
    audit rows and the errors raised on failure.

Why:
    The flows are what operators see; their output format and audit columns
    are the tool's contract with scripts that parse them.

Invariants & Safety Rules:
    - Exactly one audit row per outcome (one per mailbox for getmailboxes).
    - Usernames are masked; passwords never appear in output or audit files.
"""

import csv
import threading

import pytest

from fakes import FakeJmapServer

from jmaptool.actions import ACTIONS, ActionContext, ActionError, execute_action
from jmaptool.audit import CsvAuditLogger
from jmaptool.client import Credentials, JmapClient
from jmaptool.config import ToolConfig


def _context(tmp_path, server: FakeJmapServer, action: str, **config_values) -> ActionContext:
    values = {"host": "jmap.example.com", "username": "user@example.com", "password": "hunter22"}
    values.update(config_values)
    config = ToolConfig(**values)
    client = JmapClient(
        config.host,
        config.port,
        Credentials(username=config.username, password=config.password, access_token=config.access_token),
        transport=server.transport(),
    )
    audit = CsvAuditLogger("jmaptool", action, tmp_path)
    return ActionContext(action=action, config=config, client=client, audit=audit)


def _rows(context: ActionContext):
    context.audit.close()
    context.client.close()
    with context.audit.path.open(newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


def test_registry_lists_all_actions():
    assert sorted(ACTIONS) == ["getmailboxes", "testauth", "testconnect"]


def test_unknown_action_rejected(tmp_path):
    context = _context(tmp_path, FakeJmapServer(), "sendmail")

    with pytest.raises(ActionError, match="unknown action"):
        execute_action(context)
    _rows(context)


def test_testconnect_success(tmp_path, capsys):
    context = _context(tmp_path, FakeJmapServer(), "testconnect")

    execute_action(context)

    out = capsys.readouterr().out
    assert "Discovery URL: https://jmap.example.com/.well-known/jmap" in out
    assert "✓ JMAP session discovered successfully" in out
    assert "    - urn:ietf:params:jmap:core" in out
    assert "  u1: user@example.com" in out
    rows = _rows(context)
    assert rows[0][1:] == [
        "Action",
        "Status",
        "Server",
        "Port",
        "Discovery_URL",
        "API_URL",
        "Capabilities",
        "Accounts",
        "Error",
    ]
    assert rows[1][1:] == [
        "testconnect",
        "SUCCESS",
        "jmap.example.com",
        "443",
        "https://jmap.example.com/.well-known/jmap",
        "https://jmap.example.com/api/",
        "urn:ietf:params:jmap:core; urn:ietf:params:jmap:mail",
        "1",
        "",
    ]


def test_testconnect_failure_writes_failure_row(tmp_path):
    server = FakeJmapServer(session_status=503)
    context = _context(tmp_path, server, "testconnect")

    with pytest.raises(ActionError, match="JMAP discovery failed") as excinfo:
        execute_action(context)

    assert not excinfo.value.cancelled
    row = _rows(context)[1]
    assert row[2] == "FAILURE"
    assert "503" in row[-1]


def test_testauth_success_masks_username(tmp_path, capsys):
    server = FakeJmapServer()
    server.session["capabilities"]["urn:ietf:params:jmap:submission"] = {}
    context = _context(tmp_path, server, "testauth")

    execute_action(context)

    out = capsys.readouterr().out
    assert "Auth method: basic" in out
    assert "Username: us****om" in out
    assert "  ✓ Mail capability supported" in out
    assert "  ✓ Submission capability supported" in out
    assert "  u1: user@example.com (personal)" in out
    assert "Primary mail account: u1" in out
    assert "hunter22" not in out
    rows = _rows(context)
    assert rows[1][1:] == [
        "testauth",
        "SUCCESS",
        "jmap.example.com",
        "443",
        "us****om",
        "basic",
        "https://jmap.example.com/api/",
        "1",
        "",
    ]


def test_testauth_failure(tmp_path):
    context = _context(tmp_path, FakeJmapServer(session_status=401), "testauth", access_token="tok")

    with pytest.raises(ActionError, match="JMAP authentication failed"):
        execute_action(context)

    row = _rows(context)[1]
    assert row[1:7] == ["testauth", "FAILURE", "jmap.example.com", "443", "us****om", "bearer"]


def test_getmailboxes_prints_table_and_rows(tmp_path, capsys):
    server = FakeJmapServer()
    server.mailboxes.append({"id": "mb2", "name": "Receipts", "parentId": "mb1", "totalEmails": 120})
    context = _context(tmp_path, server, "getmailboxes")

    execute_action(context)

    out = capsys.readouterr().out
    assert "Found 2 mailboxes:" in out
    assert "  Inbox                              inbox              10        2" in out
    assert "  Receipts                           -                 120        0" in out
    rows = _rows(context)
    assert [row[1:] for row in rows[1:]] == [
        ["getmailboxes", "SUCCESS", "jmap.example.com", "mb1", "Inbox", "inbox", "10", "2", "", ""],
        ["getmailboxes", "SUCCESS", "jmap.example.com", "mb2", "Receipts", "-", "120", "0", "mb1", ""],
    ]


def test_getmailboxes_method_error(tmp_path):
    context = _context(tmp_path, FakeJmapServer(method_error="forbidden"), "getmailboxes")

    with pytest.raises(ActionError, match="failed to get mailboxes: JMAP error: forbidden"):
        execute_action(context)

    row = _rows(context)[1]
    assert row[1:3] == ["getmailboxes", "FAILURE"]
    assert "forbidden" in row[-1]


def test_cancelled_action_is_flagged(tmp_path):
    context = _context(tmp_path, FakeJmapServer(), "testconnect")
    context.cancel = threading.Event()
    context.cancel.set()

    with pytest.raises(ActionError) as excinfo:
        execute_action(context)

    assert excinfo.value.cancelled
    _rows(context)
