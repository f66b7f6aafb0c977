# Authority Register // GPL-3.0-or-later
"""Token validation for register requests.

A token is a two-letter class prefix followed by a number:

    FA250   Functional authority 250
    ga28    General authority 28 (prefix is case-insensitive)
    AR7     Appraisal report 7

Register requests only need the class; any characters after the prefix
are ignored. Every other request needs the number as well.
"""

import re
from enum import Enum

# Largest value an SQLite INTEGER PRIMARY KEY can hold.
MAX_ID = 2 ** 63 - 1

_DIGITS = re.compile(r"[0-9]+")


class IdentifierClass(str, Enum):
    """The three register tables."""

    FA = "FA"
    GA = "GA"
    AR = "AR"

    def __str__(self):
        return self.value

    @property
    def label(self):
        return _LABELS[self]


_LABELS = {
    IdentifierClass.FA: "Functional authorities",
    IdentifierClass.GA: "General authorities",
    IdentifierClass.AR: "Appraisal reports",
}


class InvalidTokenError(ValueError):
    """A token does not name a FA/GA/AR class, or its number is malformed."""

    def __init__(self, token, reason):
        super().__init__(f"Invalid token {token!r}: {reason}")
        self.token = token
        self.reason = reason


def parse_class(token) -> IdentifierClass:
    """Return the class named by the first two characters of *token*."""
    if not token or len(token) < 2:
        raise InvalidTokenError(token, "expected a class prefix (FA, GA or AR)")
    prefix = token[:2].upper()
    try:
        return IdentifierClass(prefix)
    except ValueError:
        raise InvalidTokenError(
            token, f"unknown class {prefix!r}, expected FA, GA or AR"
        ) from None


def parse_id(token) -> int:
    """Return the number following the two-character prefix of *token*.

    Only ASCII digits are accepted. Leading zeros are allowed ("FA007" is 7).
    """
    digits = token[2:] if token else ""
    if not _DIGITS.fullmatch(digits):
        raise InvalidTokenError(token, "expected digits after the class prefix")
    value = int(digits)
    if value > MAX_ID:
        raise InvalidTokenError(token, "number is outside the storable range")
    return value


def parse_token(token):
    """Split a token such as "FA250" into (IdentifierClass.FA, 250)."""
    return parse_class(token), parse_id(token)
