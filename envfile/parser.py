"""Dotenv text parsing.

Scans raw text for ``[export ]KEY=VALUE`` assignments. Values come in three
forms, tried in this order at every assignment:

- Single-quoted: taken verbatim, never expanded
- Double-quoted: ``\\n``, ``\\r`` and ``\\t`` escapes processed, then expanded
- Unquoted: cut at the first ``#`` or newline, stripped, then expanded

Quoted values may span several lines. Anything that does not look like an
assignment is skipped without error.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator

from .environment import ProcessEnvironment
from .expander import expand
from .models import QuoteKind, RawEntry
from .ports import EnvironmentProtocol

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
EXPORT_PATTERN = re.compile(r"export\s+")
ESCAPE_PATTERN = re.compile(r"\\([nrt])")

COMMENT_MARKER = "#"
QUOTE_KINDS = {"'": QuoteKind.SINGLE, '"': QuoteKind.DOUBLE}
ESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


def unescape(value: str) -> str:
    """Replace the two-character sequences \\n, \\r and \\t with control characters.

    Any other backslash is left untouched.
    """
    return ESCAPE_PATTERN.sub(lambda m: ESCAPES[m.group(1)], value)


class LineScanner:
    """Single-pass scanner over dotenv text.

    The scanner works on the whole text rather than line by line so that a
    quoted value can run over several lines. After each assignment it resumes
    at the end of the line holding the value's last character.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        # Line count up to _counted_pos, advanced as keys are found
        self._counted_pos = 0
        self._counted_lines = 1

    def __iter__(self) -> Iterator[RawEntry]:
        text = self.text
        pos = 0
        self._counted_pos = 0
        self._counted_lines = 1

        while pos < len(text):
            pos = self._skip_whitespace(pos)
            if pos >= len(text):
                break

            parsed = self._scan_assignment(pos)
            if parsed is None:
                # Not an assignment, drop the rest of this line
                pos = self._line_end(pos) + 1
                continue

            entry, pos = parsed
            yield entry

    def _skip_whitespace(self, pos: int) -> int:
        text = self.text
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos

    def _skip_blanks(self, pos: int) -> int:
        text = self.text
        while pos < len(text) and text[pos] in " \t":
            pos += 1
        return pos

    def _line_end(self, pos: int) -> int:
        end = self.text.find("\n", pos)
        return len(self.text) if end == -1 else end

    def _line_number(self, pos: int) -> int:
        if pos < self._counted_pos:
            self._counted_pos = 0
            self._counted_lines = 1
        self._counted_lines += self.text.count("\n", self._counted_pos, pos)
        self._counted_pos = pos
        return self._counted_lines

    def _scan_assignment(self, pos: int) -> tuple[RawEntry, int] | None:
        """Try to read ``[export ]KEY=`` at pos, then the value."""
        starts = []
        export = EXPORT_PATTERN.match(self.text, pos)
        if export:
            starts.append(export.end())
        # ``export=1`` and ``export FOO`` without '=' fall back to a plain key
        starts.append(pos)

        for key_pos in starts:
            key_match = KEY_PATTERN.match(self.text, key_pos)
            if not key_match:
                continue

            eq_pos = self._skip_whitespace(key_match.end())
            if eq_pos < len(self.text) and self.text[eq_pos] == "=":
                return self._scan_value(
                    key_match.group(),
                    self._line_number(key_pos),
                    eq_pos + 1,
                )

        return None

    def _scan_value(self, key: str, line: int, pos: int) -> tuple[RawEntry, int]:
        text = self.text
        pos = self._skip_blanks(pos)

        quote = text[pos] if pos < len(text) else ""
        if quote in QUOTE_KINDS:
            close = text.find(quote, pos + 1)
            if close != -1:
                value = text[pos + 1 : close]
                # One newline hugging either quote is not part of the value
                if value.startswith("\n"):
                    value = value[1:]
                if value.endswith("\n"):
                    value = value[:-1]

                kind = QUOTE_KINDS[quote]
                if kind is QuoteKind.DOUBLE:
                    value = unescape(value)

                return RawEntry(key, kind, value, line), self._line_end(close + 1)

        # Unquoted, including a quote that is never closed
        end = pos
        while end < len(text) and text[end] not in ("\n", COMMENT_MARKER):
            end += 1

        value = text[pos:end].strip()
        return RawEntry(key, QuoteKind.UNQUOTED, value, line), self._line_end(end)


def parse_entries(text: str) -> list[RawEntry]:
    """Scan text for assignments.

    Args:
        text: Raw dotenv content.

    Returns:
        Every assignment in source order, duplicate keys included.
    """
    return list(LineScanner(text))


def parse(
    text: str,
    environment: EnvironmentProtocol | None = None,
) -> dict[str, str]:
    """Parse dotenv content into a mapping of expanded values.

    References in unquoted and double-quoted values are resolved against the
    parsed values overlaid with the environment snapshot, so the environment
    wins when both define a name. When a key appears more than once the last
    assignment decides both the value and whether it is expanded.

    Args:
        text: Raw dotenv content.
        environment: Variable source for expansion. Defaults to the
            process environment; it is only read, never written.

    Returns:
        A new dictionary of key to final value.

    Raises:
        ExpansionError: If a reference is cyclic or never settles.
    """
    raw: dict[str, str] = {}
    kinds: dict[str, QuoteKind] = {}
    for entry in LineScanner(text):
        if entry.key in raw:
            logger.debug("%s reassigned on line %d", entry.key, entry.line)
        raw[entry.key] = entry.raw_value
        kinds[entry.key] = entry.quote_kind

    if environment is None:
        environment = ProcessEnvironment()
    variables = {**raw, **environment.snapshot()}

    result = dict(raw)
    for key, kind in kinds.items():
        if kind.expandable:
            result[key] = expand(raw[key], variables)

    logger.debug("Parsed %d keys", len(result))
    return result
