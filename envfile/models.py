"""Core dataclasses for parsed entries, expansion matches and loader options.

Options are designed for JSON serialization using dacite.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

import dacite


# =============================================================================
# Parser Models
# =============================================================================


class QuoteKind(Enum):
    """How a value was written in the source text."""

    UNQUOTED = "unquoted"  # Trimmed, comment-stripped, expandable
    SINGLE = "single"  # Verbatim, never expanded
    DOUBLE = "double"  # Escapes processed, expandable

    @property
    def expandable(self) -> bool:
        """Whether values of this kind go through variable expansion."""
        return self is not QuoteKind.SINGLE


@dataclass(frozen=True)
class RawEntry:
    """One KEY=VALUE assignment found by the parser."""

    key: str
    quote_kind: QuoteKind
    raw_value: str  # Escapes already processed for DOUBLE
    line: int = 1  # 1-based line of the key


# =============================================================================
# Expansion Models
# =============================================================================


@dataclass(frozen=True)
class ExpansionMatch:
    """A single ``${NAME}`` / ``$NAME`` reference inside a value."""

    name: str
    default: str | None  # Unexpanded default expression, if any
    start: int  # Offset of the ``$``
    end: int  # Offset just past the reference


# =============================================================================
# Loader Options
# =============================================================================


@dataclass
class ConfigOptions:
    """Options for assembling a configuration from dotenv files."""

    path: str = ".env"  # Primary file
    export: bool = False  # Write results into the environment
    safe: bool = False  # Validate against the example file
    example: str = ".env.example"
    allow_empty_values: bool = False
    defaults: str = ".env.defaults"  # Empty string disables defaults


# =============================================================================
# Serialization Helpers
# =============================================================================


def options_from_dict(data: dict) -> ConfigOptions:
    """Load ConfigOptions from a dictionary (parsed JSON).

    Unknown keys are rejected so that typos in an options file surface.
    """
    return dacite.from_dict(
        data_class=ConfigOptions,
        data=data,
        config=dacite.Config(strict=True),
    )


def _convert_enums(obj: object) -> object:
    """Recursively convert Enum values to their string values."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _convert_enums(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_enums(item) for item in obj]
    return obj


def model_to_dict(obj: object) -> dict:
    """Convert a dataclass model to a dictionary for JSON serialization."""
    data = asdict(obj)  # type: ignore[arg-type]
    return _convert_enums(data)  # type: ignore[return-value]
