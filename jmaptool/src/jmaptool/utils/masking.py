"""Credential masking for console output, log lines and audit rows.

What:
  Reduce usernames, passwords, access tokens and email addresses to a short
  recognisable fragment so operators can tell which credential was used
  without the value itself being written anywhere.

Invariants & Safety:
  - Values of four characters or fewer are never partially revealed, except
    access tokens, which always keep both halves around ``...``.
  - Empty passwords and tokens stay empty so "not configured" remains visible.
"""
from __future__ import annotations


MASK = "****"
_TOKEN_SEPARATOR = "..."


def mask_username(username: str) -> str:
    """Keep the first and last two characters: ``alice@x.io`` -> ``al****io``.

    Values of four characters or fewer become :data:`MASK` so short names are
    not revealed by their ends.
    """

    if len(username) <= 4:
        return MASK
    return username[:2] + MASK + username[-2:]


def mask_password(password: str) -> str:
    """Mask like :func:`mask_username`, but keep an empty password empty."""

    if not password:
        return ""
    return mask_username(password)


def mask_access_token(token: str) -> str:
    """Keep the first 8 and last 4 characters of long tokens.

    Tokens of 16 characters or fewer are split in half around ``...``.
    """

    if not token:
        return ""
    if len(token) <= 16:
        middle = len(token) // 2
        return token[:middle] + _TOKEN_SEPARATOR + token[middle:]
    return token[:8] + _TOKEN_SEPARATOR + token[-4:]


def mask_email(email: str) -> str:
    """Mask both halves of an address: ``user@example.com`` -> ``us****@ex****``."""

    if not email:
        return ""
    local, sep, domain = email.partition("@")
    if not sep:
        return mask_username(email)
    masked_local = local[:2] + MASK if len(local) > 2 else MASK
    masked_domain = domain[:2] + MASK if len(domain) > 2 else MASK
    return f"{masked_local}@{masked_domain}"


__all__ = [
    "MASK",
    "mask_username",
    "mask_password",
    "mask_access_token",
    "mask_email",
]
