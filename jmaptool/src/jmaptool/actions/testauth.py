"""``testauth``: discover the Session with credentials to prove they are accepted."""
from __future__ import annotations

import logging

import typer

from ..errors import JmapError
from ..utils.logging import get_logger, log_fields
from ..utils.masking import mask_username
from ._context import STATUS_FAILURE, STATUS_SUCCESS, ActionContext, ActionError

LOGGER = get_logger("actions.testauth")

COLUMNS = [
    "Action",
    "Status",
    "Server",
    "Port",
    "Username",
    "Auth_Method",
    "API_URL",
    "Accounts",
    "Error",
]


def run(context: ActionContext) -> None:
    """Prove the configured credentials are accepted by the server.

    What:
      Discover the Session with the ``Authorization`` header attached and
      report the account it grants access to.

    Why:
      Servers commonly answer an anonymous Session request, so a successful
      authenticated discovery is the cheapest signal that credentials work.

    How:
      Print and audit the masked username and the resolved auth method, never
      the secret. A rejected request is logged, audited as ``FAILURE`` and
      re-raised as :class:`ActionError`.

    Raises:
      ActionError: Discovery failed or the credentials were rejected.
    """

    config = context.config
    client = context.client
    discovery_url = client.discovery_url
    auth_method = client.auth_method
    masked_user = mask_username(config.username)

    typer.echo(f"Testing JMAP authentication to {config.host}...")
    typer.echo(f"Discovery URL: {discovery_url}")
    context.ensure_header(COLUMNS)
    typer.echo(f"Username: {masked_user}")
    typer.echo(f"Auth method: {auth_method}")

    try:
        session = client.discover(context.cancel)
    except JmapError as exc:
        log_fields(
            LOGGER,
            logging.ERROR,
            "JMAP authentication failed",
            error=exc,
            host=config.host,
            username=masked_user,
            auth_method=auth_method,
        )
        context.audit.write_row(
            [context.action, STATUS_FAILURE, config.host, config.port, masked_user, auth_method, "", "", str(exc)]
        )
        raise ActionError(f"JMAP authentication failed: {exc}") from exc

    typer.echo("✓ Authentication successful")
    typer.echo("\nSession Information:")
    typer.echo(f"  API URL:      {session.api_url}")
    typer.echo(f"  Username:     {session.username}")
    typer.echo(f"  Accounts:     {session.account_count()}")
    typer.echo(f"  Capabilities: {len(session.capability_names())}")
    if session.has_mail_capability():
        typer.echo("  ✓ Mail capability supported")
    if session.has_submission_capability():
        typer.echo("  ✓ Submission capability supported")

    if session.account_count():
        typer.echo("\nAccounts:")
        for account_id in sorted(session.accounts):
            account = session.accounts[account_id]
            line = f"  {account_id}: {account.name}"
            if account.is_personal:
                line += " (personal)"
            if account.is_read_only:
                line += " (read-only)"
            typer.echo(line)

    primary = session.primary_mail_account_id()
    if primary is not None:
        typer.echo(f"\nPrimary mail account: {primary}")

    context.audit.write_row(
        [
            context.action,
            STATUS_SUCCESS,
            config.host,
            config.port,
            masked_user,
            auth_method,
            session.api_url,
            session.account_count(),
            "",
        ]
    )
    log_fields(
        LOGGER,
        logging.INFO,
        "JMAP authentication test completed",
        host=config.host,
        username=masked_user,
        auth_method=auth_method,
        accounts=session.account_count(),
        has_mail=session.has_mail_capability(),
    )
    typer.echo("\n✓ JMAP authentication test completed")
