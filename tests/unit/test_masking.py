"""Masking tables for credentials shown in output, logs and audit files."""

import pytest

from jmaptool.utils.masking import mask_access_token, mask_email, mask_password, mask_username


@pytest.mark.parametrize(
    "value, expected",
    [
        ("user@example.com", "us****om"),
        ("ab@example.com", "ab****om"),
        ("test", "****"),
        ("ab", "****"),
        ("a", "****"),
    ],
)
def test_mask_username(value, expected):
    assert mask_username(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("secretpassword", "se****rd"),
        ("password", "pa****rd"),
        ("test", "****"),
        ("ab", "****"),
        ("", ""),
    ],
)
def test_mask_password(value, expected):
    assert mask_password(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("ya29.a0ARrdaM_1234567890abcdefghij", "ya29.a0A...ghij"),
        ("short", "sh...ort"),
        ("1234", "12...34"),
        ("abc", "a...bc"),
        ("ab", "a...b"),
        ("a", "...a"),
        ("", ""),
    ],
)
def test_mask_access_token(value, expected):
    assert mask_access_token(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("user@example.com", "us****@ex****"),
        ("ab@cd", "****@****"),
        ("plainuser", "pl****er"),
        ("", ""),
    ],
)
def test_mask_email(value, expected):
    assert mask_email(value) == expected
