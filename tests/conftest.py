"""Pytest configuration shared by every suite.

What:
  Establish project import paths and isolate each test from the operator's
  environment: ``JMAP*`` variables, config files and the temp directory used
  for audit logs.

Why:
  The CLI reads options from environment variables and default config
  locations. Without isolation, a developer's shell or home directory could
  change test outcomes, and audit files would pile up in the real temp
  directory.

How:
  Prepend ``jmaptool/src`` to ``sys.path`` when the source tree is present.
  The autouse fixture removes every recognised variable, moves the working
  directory and ``HOME`` into ``tmp_path``, and points :mod:`tempfile` at a
  per-test directory. Handlers installed on the ``jmaptool`` logger are removed
  again afterwards.

Interfaces:
  :func:`isolated_environment` (autouse fixture), :data:`ENV_VARS`.
"""

import logging
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "jmaptool" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

ENV_VARS = (
    "JMAPHOST",
    "JMAPPORT",
    "JMAPUSERNAME",
    "JMAPPASSWORD",
    "JMAPACCESSTOKEN",
    "JMAPAUTHMETHOD",
    "JMAPSKIPVERIFY",
    "JMAPVERBOSE",
    "JMAPLOGLEVEL",
    "JMAPLOGFORMAT",
    "JMAPACTION",
    "JMAPTOOL_CONFIG",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run each test without inherited configuration.

    Yields:
      The directory audit files are written to.
    """

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    audit_dir = tmp_path / "audit"
    audit_dir.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(tempfile, "tempdir", str(audit_dir))
    tool_logger = logging.getLogger("jmaptool")
    handlers, level = list(tool_logger.handlers), tool_logger.level
    yield audit_dir
    tool_logger.handlers[:] = handlers
    tool_logger.setLevel(level)
