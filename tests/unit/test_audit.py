"""
Module: tests/unit/test_audit.py

What:
    Check file naming, permissions, header handling and row formats of the CSV
    and JSON-lines audit loggers.

Why:
    Audit files accumulate across runs; a duplicated header or a mismatched
    JSON row would make the history unreadable for the operator.
"""

import csv
import json
import os
import stat
from datetime import datetime

import pytest

from jmaptool.audit import (
    AuditLogError,
    CsvAuditLogger,
    JsonAuditLogger,
    _AuditLogger,
    audit_path,
    open_audit_logger,
)

COLUMNS = ["Action", "Status", "Error"]


def test_audit_path_format(tmp_path):
    path = audit_path("jmaptool", "testauth", "csv", tmp_path, now=datetime(2026, 1, 9, 12, 0))

    assert path == tmp_path / "_jmaptool_testauth_2026-01-09.csv"


def test_default_directory_is_tempdir(isolated_environment):
    with open_audit_logger("csv", "jmaptool", "testconnect") as audit:
        assert audit.path.parent == isolated_environment
        assert audit.path.name.startswith("_jmaptool_testconnect_")
        assert audit.path.suffix == ".csv"


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
def test_file_is_private(tmp_path):
    with open_audit_logger("csv", "jmaptool", "testconnect", tmp_path) as audit:
        mode = stat.S_IMODE(audit.path.stat().st_mode)

    assert mode == 0o600


def test_csv_header_written_once_across_runs(tmp_path):
    for status in ("SUCCESS", "FAILURE"):
        with CsvAuditLogger("jmaptool", "testconnect", tmp_path) as audit:
            if audit.should_write_header():
                audit.write_header(COLUMNS)
            audit.write_row(["testconnect", status, ""])

    with audit.path.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))

    assert rows[0] == ["Timestamp", *COLUMNS]
    assert [row[2] for row in rows[1:]] == ["SUCCESS", "FAILURE"]
    assert len(rows) == 3
    datetime.strptime(rows[1][0], "%Y-%m-%d %H:%M:%S")


def test_csv_quotes_values_with_commas(tmp_path):
    with CsvAuditLogger("jmaptool", "testconnect", tmp_path) as audit:
        audit.write_header(COLUMNS)
        audit.write_row(["testconnect", "FAILURE", 'bad "value", with comma'])

    with audit.path.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))

    assert rows[1][3] == 'bad "value", with comma'


def test_csv_rows_flush_every_ten(tmp_path):
    audit = CsvAuditLogger("jmaptool", "getmailboxes", tmp_path)
    audit.write_header(COLUMNS)
    header_size = audit.path.stat().st_size
    for index in range(9):
        audit.write_row(["getmailboxes", "SUCCESS", str(index)])
    assert audit.path.stat().st_size == header_size

    audit.write_row(["getmailboxes", "SUCCESS", "9"])
    assert audit.path.stat().st_size > header_size
    audit.close()


def test_json_rows_are_keyed_by_columns(tmp_path):
    with JsonAuditLogger("jmaptool", "testauth", tmp_path) as audit:
        assert audit.path.suffix == ".jsonl"
        assert audit.should_write_header()
        audit.write_header(COLUMNS)
        assert not audit.should_write_header()
        audit.write_row(["testauth", "SUCCESS", ""])
        audit.write_row(["testauth", "FAILURE", "boom"])

    lines = audit.path.read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]

    assert len(records) == 2
    assert set(records[0]) == {"timestamp", *COLUMNS}
    assert records[1]["Status"] == "FAILURE"
    assert records[1]["Error"] == "boom"


def test_json_requires_header_for_each_instance(tmp_path):
    with JsonAuditLogger("jmaptool", "testauth", tmp_path) as audit:
        audit.write_header(COLUMNS)
        audit.write_row(["testauth", "SUCCESS", ""])

    with JsonAuditLogger("jmaptool", "testauth", tmp_path) as audit:
        assert audit.should_write_header()
        with pytest.raises(AuditLogError, match="header"):
            audit.write_row(["testauth", "SUCCESS", ""])


def test_json_rejects_length_mismatch(tmp_path):
    with JsonAuditLogger("jmaptool", "testauth", tmp_path) as audit:
        audit.write_header(COLUMNS)
        with pytest.raises(AuditLogError, match="3 columns"):
            audit.write_row(["testauth", "SUCCESS"])


def test_unknown_format_rejected(tmp_path):
    with pytest.raises(AuditLogError, match="invalid log format"):
        open_audit_logger("xml", "jmaptool", "testauth", tmp_path)


def test_write_after_close_rejected(tmp_path):
    audit = open_audit_logger("csv", "jmaptool", "testauth", tmp_path)
    audit.close()
    audit.close()

    assert audit.closed
    with pytest.raises(AuditLogError, match="closed"):
        audit.write_row(["testauth", "SUCCESS", ""])


def test_unwritable_directory_raises(tmp_path):
    with pytest.raises(AuditLogError, match="could not create"):
        open_audit_logger("csv", "jmaptool", "testauth", tmp_path / "missing" / "dir")


def test_base_logger_requires_a_format(tmp_path):
    with pytest.raises(TypeError):
        _AuditLogger("jmaptool", "testauth", tmp_path)

    assert list(tmp_path.iterdir()) == []
