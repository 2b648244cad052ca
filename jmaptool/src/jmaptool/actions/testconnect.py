"""``testconnect``: check that the server publishes a usable Session resource."""
from __future__ import annotations

import logging

import typer

from ..errors import JmapError
from ..utils.logging import get_logger, log_fields
from ._context import STATUS_FAILURE, STATUS_SUCCESS, ActionContext, ActionError

LOGGER = get_logger("actions.testconnect")

COLUMNS = [
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


def run(context: ActionContext) -> None:
    """Check that the server publishes a usable Session resource.

    What:
      Fetch and validate the Session, then print its API URL, capabilities
      and accounts.

    Why:
      Connectivity is the first thing to rule out when a client cannot reach
      its mail; this flow needs no credentials when the server allows it.

    How:
      Write one audit row with the outcome. On failure the protocol error is
      logged, audited and re-raised as :class:`ActionError`.

    Raises:
      ActionError: Discovery failed.
    """

    config = context.config
    discovery_url = context.client.discovery_url
    typer.echo(f"Testing JMAP connectivity to {config.host}...")
    typer.echo(f"Discovery URL: {discovery_url}")
    context.ensure_header(COLUMNS)

    try:
        session = context.client.discover(context.cancel)
    except JmapError as exc:
        log_fields(LOGGER, logging.ERROR, "JMAP discovery failed", error=exc, host=config.host)
        context.audit.write_row(
            [context.action, STATUS_FAILURE, config.host, config.port, discovery_url, "", "", "", str(exc)]
        )
        raise ActionError(f"JMAP discovery failed: {exc}") from exc

    capabilities = session.capability_names()
    typer.echo("✓ JMAP session discovered successfully")
    typer.echo("\nSession Information:")
    typer.echo(f"  API URL:      {session.api_url}")
    typer.echo(f"  Username:     {session.username}")
    typer.echo(f"  Accounts:     {session.account_count()}")
    typer.echo(f"  Capabilities: {len(capabilities)}")
    for capability in capabilities:
        typer.echo(f"    - {capability}")

    if session.account_count():
        typer.echo("\nAccounts:")
        for account_id in sorted(session.accounts):
            typer.echo(f"  {account_id}: {session.accounts[account_id].name}")

    context.audit.write_row(
        [
            context.action,
            STATUS_SUCCESS,
            config.host,
            config.port,
            discovery_url,
            session.api_url,
            "; ".join(capabilities),
            session.account_count(),
            "",
        ]
    )
    log_fields(
        LOGGER,
        logging.INFO,
        "JMAP connectivity test completed",
        host=config.host,
        api_url=session.api_url,
        capabilities=len(capabilities),
        accounts=session.account_count(),
    )
    typer.echo("\n✓ JMAP connectivity test completed")
