"""Exception hierarchy for envfile.

Every error raised by the package derives from EnvfileError and carries:
- a human-readable message
- a context dict of names, paths and limits (never variable values)
- the underlying cause, if any

Missing-key reports from safe mode carry the keys as data on the exception
rather than only in the message text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class EnvfileError(Exception):
    """Base exception for all envfile errors.

    Attributes:
        message: Human-readable error description.
        context: Names, paths and limits describing where the error arose.
        cause: The exception that triggered this one, if any.
        timestamp: When the error was created.
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        **details: Any,
    ) -> None:
        self.message = message
        self.context = dict(context or {})
        # Keyword details fill the context, skipping those not given
        self.context.update({k: v for k, v in details.items() if v is not None})
        self.cause = cause
        self.timestamp = datetime.now()
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(EnvfileError):
    """Base class for errors about files and loader options."""


class ConfigLoadError(ConfigError):
    """An options file could not be read or decoded."""

    def __init__(
        self,
        message: str = "Failed to load options",
        *,
        file_path: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, file_path=file_path or None, **kwargs)


class ConfigValidationError(ConfigError):
    """Loader options do not have the expected shape."""

    def __init__(
        self,
        message: str = "Options validation failed",
        *,
        field: str | None = None,
        value: Any = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            field=field or None,
            value=None if value is None else str(value)[:100],
            expected=expected or None,
            **kwargs,
        )


class MissingEnvVarsError(ConfigError):
    """Safe mode found example keys that are not set anywhere.

    Attributes:
        missing: Every offending key, in example-file order.
        allow_empty_values: Whether empty values were accepted during the check.
    """

    def __init__(
        self,
        message: str,
        *,
        missing: list[str],
        allow_empty_values: bool = False,
        example_path: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.missing = list(missing)
        self.allow_empty_values = allow_empty_values
        super().__init__(message, example_path=example_path or None, **kwargs)


# =============================================================================
# Expansion Errors
# =============================================================================


class ExpansionError(EnvfileError):
    """Base class for variable expansion errors."""


class ExpansionCycleError(ExpansionError):
    """A variable reference leads back to a variable being resolved."""

    def __init__(self, chain: list[str], **kwargs: Any) -> None:
        self.chain = list(chain)
        super().__init__(
            f"Cyclic variable reference: {self.chain[0]}",
            chain=" -> ".join(self.chain),
            **kwargs,
        )


class ExpansionLimitError(ExpansionError):
    """Expansion hit its pass limit or its nesting limit."""

    def __init__(
        self,
        message: str = "Variable expansion did not settle",
        *,
        max_passes: int | None = None,
        max_depth: int | None = None,
        **kwargs: Any,
    ) -> None:
        self.max_passes = max_passes
        self.max_depth = max_depth
        super().__init__(
            message, max_passes=max_passes, max_depth=max_depth, **kwargs
        )


# =============================================================================
# Environment and Serialization Errors
# =============================================================================


class EnvironmentSetError(EnvfileError):
    """A variable cannot be written to the process environment."""

    def __init__(
        self,
        message: str = "Failed to set environment variable",
        *,
        key: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, key=key, **kwargs)


class SerializationError(EnvfileError):
    """A value has no dotenv form that parses back unchanged."""

    def __init__(
        self,
        message: str = "Value cannot be written as a dotenv line",
        *,
        key: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, key=key, **kwargs)


# =============================================================================
# Error Statistics
# =============================================================================


@dataclass
class ErrorStats:
    """Counts of errors seen by the loader, by exception type."""

    total_count: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    recent_errors: list[tuple[datetime, str, str]] = field(default_factory=list)
    max_recent: int = 100

    def record(self, error: Exception) -> None:
        """Count error and remember a truncated description of it."""
        type_name = type(error).__name__
        self.total_count += 1
        self.by_type[type_name] = self.by_type.get(type_name, 0) + 1
        self.recent_errors.append((datetime.now(), type_name, str(error)[:200]))
        del self.recent_errors[: -self.max_recent]

    def reset(self) -> None:
        """Forget all recorded errors."""
        self.total_count = 0
        self.by_type.clear()
        self.recent_errors.clear()


error_stats = ErrorStats()


def record_error(error: Exception) -> None:
    """Record error in the module-wide error_stats."""
    error_stats.record(error)
