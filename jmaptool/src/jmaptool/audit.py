"""Per-action audit files in CSV or JSON-lines format.

What:
  Append one record per action outcome to a daily file named
  ``_<tool>_<action>_<YYYY-MM-DD>.csv`` (or ``.jsonl``) in the temporary
  directory, so repeated diagnostic runs accumulate a reviewable history.

Why:
  Console output scrolls away and stderr diagnostics are free-form. A stable
  tabular record lets operators compare runs across a day or hand the file to
  someone else, while still keeping secrets out because callers write masked
  values only.

How:
  Files are opened in append mode with ``0600`` permissions. The CSV variant
  uses :mod:`csv` and prepends a ``Timestamp`` column to the header and every
  row. The JSON variant keeps the column names in memory and writes one object
  per row keyed by those names plus ``timestamp``. Both flush every
  :data:`FLUSH_EVERY` rows and on close.

Interfaces:
  :class:`AuditLogError`, :class:`CsvAuditLogger`, :class:`JsonAuditLogger`,
  :func:`audit_path`, :func:`open_audit_logger`.

Invariants & Safety:
  - The file is created owner read/write only, whatever the umask.
  - A CSV header is written only to an empty file, so appending runs never
    repeat it.
  - JSON rows are rejected until columns are registered, and must match the
    number of columns exactly.
"""
from __future__ import annotations

import csv
import json
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

from .utils.logging import get_logger


FLUSH_EVERY = 10
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_FILE_MODE = 0o600

LOGGER = get_logger("audit")


class AuditLogError(Exception):
    """Raised when an audit file cannot be opened, written, or is misused.

    What:
      Signal I/O failures and protocol misuse (rows before a JSON header, a
      row/column count mismatch, writes after close).

    Why:
      The CLI treats an unwritable audit trail as a failed run and exits with
      code 1 instead of silently losing records.
    """


def audit_path(
    tool: str,
    action: str,
    extension: str,
    directory: Optional[Union[Path, str]] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Return the daily audit file path for ``tool`` and ``action``.

    What:
      Build ``<directory>/_<tool>_<action>_<YYYY-MM-DD>.<extension>``.

    Why:
      One file per action and day groups related runs while keeping each file
      small enough to read by eye.

    How:
      ``directory`` defaults to :func:`tempfile.gettempdir`; ``now`` defaults to
      the current local time and exists so tests can pin the date.
    """

    base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
    stamp = (now or datetime.now()).strftime("%Y-%m-%d")
    return base / f"_{tool}_{action}_{stamp}.{extension}"


def _open_private(path: Path) -> IO[str]:
    """Open ``path`` for appending with owner-only permissions.

    The mode is passed to :func:`os.open` and then enforced with
    :func:`os.chmod`, because the first only applies when the file is created
    and is filtered by the umask.
    """

    try:
        fd = os.open(path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, _FILE_MODE)
    except OSError as exc:
        raise AuditLogError(f"could not create audit log file {path}: {exc}") from exc
    try:
        os.chmod(path, _FILE_MODE)
    except OSError as exc:
        LOGGER.warning("audit_chmod_failed path=%s error=%s", path, exc)
    return os.fdopen(fd, "a", encoding="utf-8", newline="")


class _AuditLogger(ABC):
    """Shared file handling for the CSV and JSON-lines audit formats.

    What:
      Own the append-mode stream, the row counter driving periodic flushes,
      and the closed state. Subclasses define :attr:`extension`,
      :meth:`write_header` and :meth:`write_row`.

    Why:
      Both formats must honour the same file naming, permission and flush
      rules; keeping those here means the formats differ only in how a record
      is serialised.

    How:
      The constructor resolves the path through :func:`audit_path` and opens
      it with :func:`_open_private`. Subclasses call :meth:`_row_written` after
      each row so the stream is flushed every ``flush_every`` rows.
    """

    extension = ""

    def __init__(
        self,
        tool: str,
        action: str,
        directory: Optional[Union[Path, str]] = None,
        *,
        flush_every: int = FLUSH_EVERY,
    ) -> None:
        self.path = audit_path(tool, action, self.extension, directory)
        self._stream: Optional[IO[str]] = _open_private(self.path)
        self._flush_every = max(1, flush_every)
        self._rows = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._stream is None

    def should_write_header(self) -> bool:
        """Return ``True`` when the file is still empty.

        What:
          Tell the caller whether this run is the first to touch today's file.

        Why:
          Appending runs must not repeat the header line.

        How:
          Flush pending writes, then compare the descriptor's size with zero.
        """

        stream = self._require_stream()
        try:
            stream.flush()
            return os.fstat(stream.fileno()).st_size == 0
        except OSError as exc:
            raise AuditLogError(f"could not stat audit log file {self.path}: {exc}") from exc

    @abstractmethod
    def write_header(self, columns: Sequence[str]) -> None:
        """Register the column names for this file."""

    @abstractmethod
    def write_row(self, values: Sequence[object]) -> None:
        """Append one record whose values follow the header's column order."""

    def close(self) -> None:
        """Flush and close the stream; later calls are no-ops.

        Raises:
          AuditLogError: If the final flush fails. The stream is closed anyway.
        """

        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        try:
            stream.flush()
        except OSError as exc:
            raise AuditLogError(f"error flushing audit log {self.path} on close: {exc}") from exc
        finally:
            stream.close()

    def _require_stream(self) -> IO[str]:
        if self._stream is None:
            raise AuditLogError(f"audit log {self.path} is closed")
        return self._stream

    def _row_written(self) -> None:
        self._rows += 1
        if self._rows % self._flush_every == 0:
            try:
                self._require_stream().flush()
            except OSError as exc:
                raise AuditLogError(f"failed to flush audit log {self.path}: {exc}") from exc

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().strftime(_TIMESTAMP_FORMAT)


class CsvAuditLogger(_AuditLogger):
    """Audit log writing comma-separated rows with a leading ``Timestamp`` column.

    What:
      Serialise the header and rows with :func:`csv.writer` so values holding
      commas or quotes stay in one cell.

    Why:
      CSV opens directly in spreadsheets, which is how most operators read
      the history.
    """

    extension = "csv"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._writer = csv.writer(self._require_stream(), lineterminator="\n")

    def write_header(self, columns: Sequence[str]) -> None:
        """Write ``Timestamp`` plus ``columns`` and flush immediately."""

        stream = self._require_stream()
        try:
            self._writer.writerow(["Timestamp", *columns])
            stream.flush()
        except OSError as exc:
            raise AuditLogError(f"failed to write CSV header to {self.path}: {exc}") from exc

    def write_row(self, values: Sequence[object]) -> None:
        """Write the current local time followed by ``values``."""

        self._require_stream()
        try:
            self._writer.writerow([self._timestamp(), *values])
        except OSError as exc:
            raise AuditLogError(f"failed to write CSV row to {self.path}: {exc}") from exc
        self._row_written()


class JsonAuditLogger(_AuditLogger):
    """Audit log writing one JSON object per line.

    Column names live in memory only, so unlike the CSV variant a header must
    be registered by every logger instance before rows are written.
    """

    extension = "jsonl"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._columns: Optional[List[str]] = None

    def should_write_header(self) -> bool:
        """Return ``True`` until this instance has registered its columns."""

        self._require_stream()
        return self._columns is None

    def write_header(self, columns: Sequence[str]) -> None:
        """Remember ``columns`` as the keys of subsequent records."""

        self._require_stream()
        self._columns = list(columns)

    def write_row(self, values: Sequence[object]) -> None:
        """Write ``values`` as an object keyed by the registered columns.

        What:
          Emit ``{"timestamp": <ISO-8601>, <column>: <str(value)>, ...}`` on a
          single line.

        Why:
          JSON lines stay machine-readable when values contain commas or
          newlines, which error messages often do.

        How:
          Validate that a header exists and that the value count matches it,
          then serialise compactly and count the row for periodic flushing.

        Raises:
          AuditLogError: Without a header, on a length mismatch, or on I/O
            failure.
        """

        stream = self._require_stream()
        if self._columns is None:
            raise AuditLogError("header must be written before rows")
        if len(values) != len(self._columns):
            raise AuditLogError(
                f"row has {len(values)} values but header has {len(self._columns)} columns"
            )
        record = {"timestamp": datetime.now().astimezone().isoformat()}
        record.update((column, str(value)) for column, value in zip(self._columns, values))
        try:
            stream.write(json.dumps(record, separators=(",", ":"), ensure_ascii=False))
            stream.write("\n")
        except OSError as exc:
            raise AuditLogError(f"failed to write JSON row to {self.path}: {exc}") from exc
        self._row_written()


AuditLogger = Union[CsvAuditLogger, JsonAuditLogger]


def open_audit_logger(
    log_format: str,
    tool: str,
    action: str,
    directory: Optional[Union[Path, str]] = None,
) -> AuditLogger:
    """Open the audit file for ``tool``/``action`` in the requested format.

    Raises:
      AuditLogError: If the format is unknown or the file cannot be created.
    """

    fmt = log_format.lower()
    if fmt == "csv":
        return CsvAuditLogger(tool, action, directory)
    if fmt == "json":
        return JsonAuditLogger(tool, action, directory)
    raise AuditLogError(f"invalid log format: {log_format} (valid: csv, json)")


__all__ = [
    "FLUSH_EVERY",
    "AuditLogError",
    "AuditLogger",
    "CsvAuditLogger",
    "JsonAuditLogger",
    "audit_path",
    "open_audit_logger",
]
