"""
Module: jmaptool.__init__

What:
  Aggregate package exports for the JMAP diagnostic tool and expose the
  namespace segments (protocol codec, HTTP client, configuration, action flows,
  and utilities) together with the release version.

Why:
  The CLI, the tests, and scripts importing the library all need a stable
  place to read ``__version__`` and to discover which subpackages form the
  supported surface.

How:
  Declare ``__version__`` and an explicit ``__all__`` that enumerates the
  public subpackages. Subpackages are not imported eagerly so ``--version``
  stays cheap.

Interfaces:
  - protocol: JMAP data types, wire codec and Session model.
  - client: The only module performing network I/O.
  - config: Tool configuration schema and YAML loader.
  - actions: ``testconnect``, ``testauth`` and ``getmailboxes`` flows.
  - audit / utils: Audit files, logging and credential masking.

Invariants:
  - ``__version__`` is the single source of the release number; the client
    only sees it through the ``User-Agent`` string the CLI builds.
"""

__version__ = "2.1.0"

__all__ = [
    "__version__",
    "actions",
    "audit",
    "client",
    "config",
    "errors",
    "protocol",
    "utils",
]
