"""Parsers for the text values PostgreSQL returns for booleans and integers.

Values that arrive as text (``::text`` casts, ``SHOW`` output, simple-protocol
results) keep their PostgreSQL literal form. These helpers convert them when
the caller already knows the intended type, and reject anything unexpected
instead of guessing.
"""

from __future__ import annotations

import re

from .errors import ParseError

SQL_TRUE = "t"
SQL_FALSE = "f"

_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_bool(raw: object) -> bool:
    """Return the boolean for PostgreSQL's ``t``/``f`` literals."""

    if raw == SQL_TRUE:
        return True
    if raw == SQL_FALSE:
        return False
    raise ParseError("Not a boolean value", raw)


def parse_int(raw: object) -> int:
    """Return the integer for a signed decimal literal.

    At least one digit is required, so an empty string or a bare sign is
    rejected.
    """

    if isinstance(raw, str) and _INTEGER.fullmatch(raw):
        return int(raw)
    raise ParseError("Not an integer value", raw)


__all__ = ["SQL_FALSE", "SQL_TRUE", "parse_bool", "parse_int"]
