"""Query template interpolation.

Templates embed ``$name`` placeholders that are replaced textually before a
query is sent. Values are sanitized but never quoted: a placeholder may stand
for a table name or a SQL fragment as well as a string literal, so quoting
string literals is left to the template::

    SELECT * FROM $table WHERE name = '$name';

``$$`` produces a literal ``$``.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Mapping

LOG = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\$|[A-Za-z_][A-Za-z0-9_]*)")


def sanitize_value(value: object) -> str:
    """Convert a template value to the text spliced into the query."""

    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            value = value.decode("latin-1")
    if isinstance(value, str):
        text = unicodedata.normalize("NFC", value)
        if "\x00" in text:
            raise ValueError("PostgreSQL strings cannot contain NUL characters")
        return text.replace("'", "''")
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def substitute(template: str, values: Mapping[str, object]) -> str:
    """Replace ``$name`` placeholders in ``template`` with sanitized values.

    The template is scanned once, so a placeholder is always matched by its
    full name (``$a`` never matches the start of ``$age``) and substituted
    text is never expanded again. Placeholders without a value are left as
    they are.
    """

    if not isinstance(values, Mapping):
        raise TypeError(f"Template values must be a mapping, not {type(values).__name__}")
    replacements: dict[str, str] = {}
    for name, value in values.items():
        if not isinstance(name, str):
            raise TypeError(f"Template value names must be strings, got {name!r}")
        replacements[name] = sanitize_value(value)

    unresolved: set[str] = set()

    def _replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if token == "$":
            return "$"
        if token in replacements:
            return replacements[token]
        unresolved.add(token)
        return match.group(0)

    query = _PLACEHOLDER.sub(_replace, template)
    if unresolved:
        LOG.debug("Unresolved template placeholders", extra={"placeholders": sorted(unresolved)})
    return query


__all__ = ["sanitize_value", "substitute"]
