"""Diagnostic action flows built on the JMAP client.

What:
  Implement the three operator-facing checks (``testconnect``, ``testauth``,
  ``getmailboxes``) and dispatch to them by name.

Why:
  The flows are where protocol results meet the operator: console output,
  audit rows and diagnostics. Keeping them out of :mod:`jmaptool.client`
  leaves the client free of presentation concerns and lets the CLI stay a thin
  layer of option parsing and exit-code mapping.

How:
  Each flow receives an :class:`ActionContext` carrying the configuration, an
  open client and audit logger, and the cancellation event. It prints progress
  with ``typer.echo``, writes one audit row per outcome, logs a completion or
  failure line, and raises :class:`ActionError` chained to the protocol error
  on failure.

Interfaces:
  :data:`ACTIONS`, :func:`execute_action`, :class:`ActionContext`,
  :class:`ActionError`.

Invariants & Safety:
  - Usernames reach the console, logs and audit files masked; passwords and
    tokens never reach them at all.
  - Flows do not close the client or audit logger they were given.
"""
from __future__ import annotations

from typing import Callable, Dict

from . import getmailboxes, testauth, testconnect
from ._context import STATUS_FAILURE, STATUS_SUCCESS, ActionContext, ActionError

ActionFn = Callable[[ActionContext], None]

ACTIONS: Dict[str, ActionFn] = {
    "testconnect": testconnect.run,
    "testauth": testauth.run,
    "getmailboxes": getmailboxes.run,
}


def execute_action(context: ActionContext) -> None:
    """Run the flow named by ``context.action``.

    Raises:
      ActionError: If the action is unknown or the flow fails.
    """

    try:
        flow = ACTIONS[context.action]
    except KeyError:
        raise ActionError(f"unknown action: {context.action}") from None
    flow(context)


__all__ = [
    "ACTIONS",
    "STATUS_SUCCESS",
    "STATUS_FAILURE",
    "ActionContext",
    "ActionError",
    "execute_action",
]
