"""Writing mappings back out as dotenv text.

Each value is written in the simplest form that parses back to the same
string without triggering expansion: unquoted, then single-quoted, then
double-quoted with control characters escaped.
"""

from __future__ import annotations

from typing import Mapping

from .exceptions import SerializationError
from .expander import find_references
from .parser import ESCAPE_PATTERN, KEY_PATTERN, QUOTE_KINDS

CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _is_plain(value: str) -> bool:
    return (
        value == value.strip()
        and "\n" not in value
        and "#" not in value
        and "$" not in value
        and value[:1] not in QUOTE_KINDS
    )


def quote_value(value: str) -> str:
    """Return value in a form that parses back to exactly value.

    Raises:
        SerializationError: If no form round-trips.
    """
    if _is_plain(value):
        return value

    if "'" not in value and not value.startswith("\n") and not value.endswith("\n"):
        return f"'{value}'"

    if '"' not in value and not ESCAPE_PATTERN.search(value) and not find_references(value):
        escaped = "".join(CONTROL_ESCAPES.get(ch, ch) for ch in value)
        return f'"{escaped}"'

    raise SerializationError("No quote form preserves this value")


def stringify(values: Mapping[str, str], *, export: bool = False) -> str:
    """Serialize a mapping as dotenv text, one assignment per line.

    Args:
        values: Keys and values to write.
        export: Prefix every line with ``export``.

    Returns:
        The text, ending with a newline unless values is empty.

    Raises:
        SerializationError: If a key is not a valid name or a value cannot
            be represented.
    """
    prefix = "export " if export else ""
    lines = []
    for key, value in values.items():
        if not KEY_PATTERN.fullmatch(key):
            raise SerializationError("Invalid variable name", key=key)
        try:
            quoted = quote_value(value)
        except SerializationError as e:
            raise SerializationError(e.message, key=key, cause=e) from e
        lines.append(f"{prefix}{key}={quoted}")

    return "".join(f"{line}\n" for line in lines)
