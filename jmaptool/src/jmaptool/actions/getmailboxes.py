"""``getmailboxes``: list the primary mail account's mailboxes with counts."""
from __future__ import annotations

import logging

import typer

from ..errors import JmapError
from ..utils.logging import get_logger, log_fields
from ._context import STATUS_FAILURE, STATUS_SUCCESS, ActionContext, ActionError

LOGGER = get_logger("actions.getmailboxes")

COLUMNS = [
    "Action",
    "Status",
    "Server",
    "Mailbox_Id",
    "Mailbox_Name",
    "Role",
    "Total_Emails",
    "Unread_Emails",
    "Parent_Id",
    "Error",
]

_ROW_FORMAT = "  {name:<34} {role:<14} {total:>6}   {unread:>6}"


def _fail(context: ActionContext, message: str, exc: JmapError) -> ActionError:
    """Log and audit a failed step, returning the error to raise."""

    config = context.config
    log_fields(LOGGER, logging.ERROR, message, error=exc, host=config.host)
    context.audit.write_row(
        [context.action, STATUS_FAILURE, config.host, "", "", "", "", "", "", str(exc)]
    )
    return ActionError(f"{message}: {exc}")


def run(context: ActionContext) -> None:
    """List every mailbox of the primary mail account.

    What:
      Discover the Session, fetch all mailboxes with ``Mailbox/get`` and print
      a table of names, roles and counts.

    Why:
      Reading mailboxes exercises the whole path an email client depends on:
      discovery, authentication, the API endpoint and method decoding.

    How:
      Write one ``SUCCESS`` audit row per mailbox, or a single ``FAILURE`` row
      for the step that failed. Discovery and listing failures are logged and
      re-raised as :class:`ActionError` chained to the protocol error.

    Raises:
      ActionError: Discovery or ``Mailbox/get`` failed.
    """

    config = context.config
    client = context.client
    typer.echo(f"Getting mailboxes from {config.host}...")
    typer.echo(f"Discovery URL: {client.discovery_url}")
    context.ensure_header(COLUMNS)

    try:
        session = client.discover(context.cancel)
    except JmapError as exc:
        raise _fail(context, "JMAP discovery failed", exc) from exc

    typer.echo("✓ Session discovered")
    typer.echo(f"  API URL: {session.api_url}")

    try:
        mailboxes = client.list_mailboxes(context.cancel)
    except JmapError as exc:
        raise _fail(context, "failed to get mailboxes", exc) from exc

    typer.echo(f"\nFound {len(mailboxes)} mailboxes:")
    typer.echo("  Name                              Role            Total   Unread")
    typer.echo("  ----                              ----            -----   ------")
    for mailbox in mailboxes:
        role = mailbox.role or "-"
        typer.echo(
            _ROW_FORMAT.format(
                name=mailbox.name,
                role=role,
                total=mailbox.total_emails,
                unread=mailbox.unread_emails,
            )
        )
        context.audit.write_row(
            [
                context.action,
                STATUS_SUCCESS,
                config.host,
                mailbox.id,
                mailbox.name,
                role,
                mailbox.total_emails,
                mailbox.unread_emails,
                mailbox.parent_id or "",
                "",
            ]
        )

    log_fields(
        LOGGER,
        logging.INFO,
        "Get mailboxes completed",
        host=config.host,
        mailbox_count=len(mailboxes),
    )
    typer.echo("\n✓ Get mailboxes completed")
