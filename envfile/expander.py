"""Variable expansion for dotenv values.

Resolves ``${NAME}``, ``${NAME:-DEFAULT}``, ``$NAME`` and ``$NAME:-DEFAULT``
references against a variable mapping. Defaults may contain references of
their own. A ``$`` preceded by a backslash is not treated as a bare reference.
"""

from __future__ import annotations

import re
from typing import Mapping

from .exceptions import ExpansionCycleError, ExpansionLimitError
from .models import ExpansionMatch

DEFAULT_MAX_PASSES = 32
# Nested resolutions (variable values and defaults) allowed below one value
DEFAULT_MAX_DEPTH = 128
DEFAULT_MARKER = ":-"

# ASCII word characters only, as in keys
WORD_PATTERN = re.compile(r"[A-Za-z0-9_]+")


# =============================================================================
# Reference Scanning
# =============================================================================


def _match_braced(value: str, start: int) -> ExpansionMatch | None:
    """Match ``${NAME}`` or ``${NAME:-DEFAULT}`` with the ``$`` at start."""
    name_start = start + 2
    pos = name_start
    while pos < len(value):
        ch = value[pos]
        if ch == "\n":
            return None
        if ch == "}" or value.startswith(DEFAULT_MARKER, pos):
            break
        pos += 1
    else:
        return None

    name = value[name_start:pos]
    if not name:
        return None
    if value[pos] == "}":
        return ExpansionMatch(name, None, start, pos + 1)

    # Default runs to the brace that closes this reference
    default_start = pos + len(DEFAULT_MARKER)
    depth = 0
    for pos in range(default_start, len(value)):
        ch = value[pos]
        if ch == "\n":
            return None
        if ch == "{":
            depth += 1
        elif ch == "}":
            if depth == 0:
                return ExpansionMatch(name, value[default_start:pos], start, pos + 1)
            depth -= 1
    return None


def _match_bare(value: str, start: int) -> ExpansionMatch | None:
    """Match ``$NAME`` or ``$NAME:-DEFAULT`` with the ``$`` at start."""
    if start > 0 and value[start - 1] == "\\":
        return None

    word = WORD_PATTERN.match(value, start + 1)
    if not word:
        return None

    end = word.end()
    default = None
    if value.startswith(DEFAULT_MARKER, end):
        # A bare default takes the rest of the line
        line_end = value.find("\n", end)
        if line_end == -1:
            line_end = len(value)
        if line_end > end + len(DEFAULT_MARKER):
            default = value[end + len(DEFAULT_MARKER) : line_end]
            end = line_end

    return ExpansionMatch(word.group(), default, start, end)


def find_references(value: str) -> list[ExpansionMatch]:
    """Find the references in value, left to right, without overlaps."""
    matches: list[ExpansionMatch] = []
    pos = 0
    while True:
        start = value.find("$", pos)
        if start == -1:
            return matches

        if value.startswith("${", start):
            match = _match_braced(value, start)
        else:
            match = _match_bare(value, start)

        if match is None:
            pos = start + 1
        else:
            matches.append(match)
            pos = match.end


# =============================================================================
# Expansion
# =============================================================================


class Expander:
    """Expands values against a fixed variable mapping.

    Each referenced variable is expanded recursively while the chain of names
    being resolved is tracked, so a reference that leads back to itself raises
    ExpansionCycleError instead of recursing forever. Resolutions may nest at
    most max_depth levels, counting defaults as well as variable values. After
    substitution the value is scanned again, and max_passes bounds how often
    that may happen. Successful resolutions are cached per name.
    """

    def __init__(
        self,
        variables: Mapping[str, str],
        *,
        max_passes: int = DEFAULT_MAX_PASSES,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.variables = variables
        self.max_passes = max_passes
        self.max_depth = max_depth
        self._resolved: dict[str, str] = {}

    def expand(self, value: str, stack: tuple[str, ...] = (), depth: int = 0) -> str:
        if depth > self.max_depth:
            raise ExpansionLimitError(
                f"Variable references nest deeper than {self.max_depth} levels",
                max_depth=self.max_depth,
                context={"variable": stack[-1]} if stack else None,
            )

        passes = 0
        while True:
            matches = find_references(value)
            if not matches:
                return value
            if passes >= self.max_passes:
                raise ExpansionLimitError(
                    f"References remain after {self.max_passes} expansion passes",
                    max_passes=self.max_passes,
                )

            value = self._substitute(value, matches, stack, depth)
            passes += 1

    def _substitute(
        self,
        value: str,
        matches: list[ExpansionMatch],
        stack: tuple[str, ...],
        depth: int,
    ) -> str:
        parts: list[str] = []
        pos = 0
        for match in matches:
            parts.append(value[pos : match.start])
            parts.append(self._resolve(match, stack, depth))
            pos = match.end
        parts.append(value[pos:])
        return "".join(parts)

    def _resolve(self, match: ExpansionMatch, stack: tuple[str, ...], depth: int) -> str:
        name = match.name
        found = self.variables.get(name)

        if found:
            if name in self._resolved:
                return self._resolved[name]
            if name in stack:
                raise ExpansionCycleError([*stack[stack.index(name) :], name])

            resolved = self.expand(found, (*stack, name), depth + 1)
            self._resolved[name] = resolved
            return resolved

        if match.default is not None:
            return self.expand(match.default, stack, depth + 1)
        return ""


def expand(
    value: str,
    variables: Mapping[str, str],
    *,
    max_passes: int = DEFAULT_MAX_PASSES,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Expand every reference in value.

    A variable that is set to a non-empty string is substituted (after its own
    references are expanded); otherwise the expanded default is used, or the
    empty string when there is no default.

    Args:
        value: Text that may contain references.
        variables: Lookup table for reference names. Not modified.
        max_passes: How many times the value may be rescanned before giving up.
        max_depth: How deeply variable values and defaults may nest.

    Returns:
        The value with no references left.

    Raises:
        ExpansionCycleError: If a variable refers back to itself.
        ExpansionLimitError: If references remain after max_passes rescans,
            or resolution nests deeper than max_depth.
    """
    return Expander(variables, max_passes=max_passes, max_depth=max_depth).expand(value)
