"""jmaptool command-line interface.

What:
  Provide the Typer entry point for the JMAP diagnostic actions
  (``testconnect``, ``testauth``, ``getmailboxes``). Global options configure
  the server, credentials and logging; each has an environment variable
  fallback, and a YAML file can supply defaults for all of them.

Why:
  The tool runs unattended in scripts as often as interactively. Keeping
  option parsing, configuration merging, signal handling and exit codes in one
  module gives every action identical plumbing and leaves the flows in
  :mod:`jmaptool.actions` free of process concerns.

How:
  The Typer callback collects the global options into overrides and merges
  them with the config file through :func:`jmaptool.config.load_config`. A
  subcommand selects the action; without one, ``--action``/``JMAPACTION`` does.
  :func:`_run_action` validates the configuration for that action, installs
  SIGINT/SIGTERM handlers, opens the audit log and client, and maps failures
  onto exit codes.

Interfaces:
  ``app`` (Typer application), ``testconnect``, ``testauth``,
  ``getmailboxes``, :func:`main`.

Invariants & Safety:
  - Exit codes: ``0`` success, ``1`` configuration or action failure, ``130``
    when a signal cancelled the action.
  - Signal handlers are restored once the action returns.
  - Credentials are only logged through :func:`log_fields`, which redacts them.
"""
from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from . import __version__
from .actions import ActionContext, ActionError, execute_action
from .audit import AuditLogError, open_audit_logger
from .client import Credentials, JmapClient
from .config import ACTIONS, ConfigLoadError, ToolConfig, ValidationError, load_config
from .protocol.session import require_core_capability
from .utils.logging import get_logger, log_fields, setup_logging
from .utils.masking import mask_username


TOOL_NAME = "jmaptool"
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

app = typer.Typer(help="JMAP testing tool for server connectivity and operations")

LOGGER = get_logger("cli")


@dataclass
class _CliState:
    """Settings resolved by the callback and shared with the subcommands."""

    config: ToolConfig
    action: Optional[str]


def _version_callback(value: bool) -> None:
    """Print the version and stop before any other option is processed."""

    if value:
        typer.echo(f"{TOOL_NAME} version {__version__}")
        raise typer.Exit()


def _build_client(config: ToolConfig) -> JmapClient:
    """Create the protocol client for ``config``.

    What:
      Translate the merged settings into :class:`Credentials` and a
      :class:`JmapClient`.

    Why:
      The CLI is the only place that knows the tool's version and which
      Session policies a diagnostic run enforces; the client itself stays
      policy-free.

    How:
      Stamp ``jmaptool/<version>`` as the User-Agent and require the core
      capability on every discovered Session.
    """

    credentials = Credentials(
        username=config.username,
        password=config.password,
        access_token=config.access_token,
        auth_method=config.auth_method,
    )
    return JmapClient(
        config.host,
        config.port,
        credentials,
        skip_verify=config.skip_verify,
        user_agent=f"{TOOL_NAME}/{__version__}",
        session_checks=(require_core_capability,),
    )


def _install_signal_handlers(cancel: threading.Event) -> Dict[int, Any]:
    """Route SIGINT and SIGTERM to ``cancel`` and interrupt the main thread."""

    if threading.current_thread() is not threading.main_thread():
        return {}

    def _handler(signum: int, frame: Any) -> None:
        typer.echo("\nReceived interrupt signal, shutting down...", err=True)
        cancel.set()
        raise KeyboardInterrupt

    previous: Dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    return previous


def _restore_signal_handlers(previous: Dict[int, Any]) -> None:
    """Reinstall the handlers returned by :func:`_install_signal_handlers`."""

    for signum, handler in previous.items():
        signal.signal(signum, handler)


def _run_action(config: ToolConfig, requested: str) -> None:
    """Validate, run and audit one action, mapping failures to exit codes.

    What:
      Execute ``requested`` with a fresh client and audit logger.

    Why:
      Subcommands and ``--action`` must behave identically, including the
      exit code contract scripts rely on.

    How:
      Check the settings the action needs, configure logging, install signal
      handlers, then open the audit file and client as context managers so
      both are closed on every path. :class:`ActionError` becomes exit 1, or
      130 when a signal cancelled the run; :class:`AuditLogError` becomes
      exit 1.

    Raises:
      typer.Exit: Always on failure; success returns normally.
    """

    try:
        action = config.validate_for_action(requested)
    except ValidationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILURE) from exc

    setup_logging(config.verbose, config.log_level)
    log_fields(
        LOGGER,
        logging.DEBUG,
        "action_starting",
        version=__version__,
        action=action,
        host=config.host,
        port=config.port,
        username=mask_username(config.username),
        password=config.password,
        access_token=config.access_token,
        auth_method=config.auth_method,
        skip_verify=config.skip_verify,
    )

    cancel = threading.Event()
    previous = _install_signal_handlers(cancel)
    try:
        with open_audit_logger(config.log_format, TOOL_NAME, action) as audit:
            typer.echo(f"Logging to: {audit.path}\n")
            with _build_client(config) as client:
                execute_action(
                    ActionContext(
                        action=action,
                        config=config,
                        client=client,
                        audit=audit,
                        cancel=cancel,
                    )
                )
    except ActionError as exc:
        if exc.cancelled or cancel.is_set():
            log_fields(LOGGER, logging.WARNING, "action_cancelled", action=action)
            raise typer.Exit(code=EXIT_CANCELLED) from exc
        log_fields(LOGGER, logging.ERROR, "Action failed", action=action, error=exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    except AuditLogError as exc:
        log_fields(LOGGER, logging.ERROR, "audit_log_failed", action=action, error=exc)
        typer.echo(f"Failed to write audit log: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    except KeyboardInterrupt:
        log_fields(LOGGER, logging.WARNING, "action_cancelled", action=action)
        raise typer.Exit(code=EXIT_CANCELLED) from None
    finally:
        _restore_signal_handlers(previous)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", envvar="JMAPHOST", help="JMAP server hostname or base URL"),
    # Parsed by ToolConfig so a bad value is a configuration error (exit 1).
    port: Optional[str] = typer.Option(None, "--port", envvar="JMAPPORT", help="JMAP server port [default: 443]"),
    username: Optional[str] = typer.Option(None, "--username", envvar="JMAPUSERNAME", help="Username for authentication"),
    password: Optional[str] = typer.Option(None, "--password", envvar="JMAPPASSWORD", help="Password for authentication"),
    access_token: Optional[str] = typer.Option(
        None, "--accesstoken", envvar="JMAPACCESSTOKEN", help="Access token for Bearer authentication"
    ),
    auth_method: Optional[str] = typer.Option(
        None, "--authmethod", envvar="JMAPAUTHMETHOD", help="Authentication method: auto, basic, bearer [default: auto]"
    ),
    skip_verify: bool = typer.Option(False, "--skipverify", envvar="JMAPSKIPVERIFY", help="Skip TLS certificate verification"),
    verbose: bool = typer.Option(False, "--verbose", envvar="JMAPVERBOSE", help="Enable debug diagnostics"),
    log_level: Optional[str] = typer.Option(
        None, "--loglevel", envvar="JMAPLOGLEVEL", help="Log level: debug, info, warn, error [default: info]"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--logformat", envvar="JMAPLOGFORMAT", help="Audit log format: csv, json [default: csv]"
    ),
    action: Optional[str] = typer.Option(
        None, "--action", envvar="JMAPACTION", help="Action to run when no command is given"
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", envvar="JMAPTOOL_CONFIG", help="Path to a YAML configuration file"
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version information"
    ),
) -> None:
    """Test JMAP server connectivity, authentication and mailboxes."""

    overrides: Dict[str, Any] = {
        "host": host,
        "port": port,
        "username": username,
        "password": password,
        "access_token": access_token,
        "auth_method": auth_method,
        "log_level": log_level,
        "log_format": log_format,
        # Unset flags must not mask values from the config file.
        "skip_verify": True if skip_verify else None,
        "verbose": True if verbose else None,
    }
    try:
        config = load_config(config_path, overrides)
    except ConfigLoadError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILURE) from exc

    ctx.obj = _CliState(config=config, action=action)
    if ctx.invoked_subcommand is not None:
        return
    if not action:
        typer.echo(
            f"Error: an action is required: use a command or --action ({', '.join(ACTIONS)})",
            err=True,
        )
        raise typer.Exit(code=EXIT_FAILURE)
    _run_action(config, action)


@app.command("testconnect")
def testconnect(ctx: typer.Context) -> None:
    """Test JMAP server connectivity and discover the session."""

    _run_action(ctx.obj.config, "testconnect")


@app.command("testauth")
def testauth(ctx: typer.Context) -> None:
    """Test authentication against the session endpoint."""

    _run_action(ctx.obj.config, "testauth")


@app.command("getmailboxes")
def getmailboxes(ctx: typer.Context) -> None:
    """List the mailboxes of the primary mail account."""

    _run_action(ctx.obj.config, "getmailboxes")


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
