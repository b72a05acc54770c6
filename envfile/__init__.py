"""Dotenv file parsing and loading.

Parses ``KEY=VALUE`` files with single-quoted, double-quoted and unquoted
values, comments and ``${VAR}`` / ``$VAR`` interpolation, then merges them
with a defaults file, checks them against an example file and optionally
exports them into the process environment.

Public API Usage:
    # Parse text directly
    from envfile import parse

    values = parse("HOST=localhost\\nURL=http://${HOST}:${PORT:-8000}")

    # Load .env, fill from .env.defaults, verify against .env.example
    from envfile import ConfigOptions, load_config_sync

    conf = load_config_sync(ConfigOptions(safe=True, export=True))

    # Same from async code
    from envfile import load_config_async

    conf = await load_config_async(ConfigOptions(path=".env.local"))
"""

__version__ = "0.1.0"

# =============================================================================
# Parsing and Expansion
# =============================================================================

from envfile.parser import (
    LineScanner,
    parse,
    parse_entries,
    unescape,
)
from envfile.expander import (
    Expander,
    expand,
    find_references,
)
from envfile.writer import stringify

# =============================================================================
# Data Models
# =============================================================================

from envfile.models import (
    ConfigOptions,
    ExpansionMatch,
    QuoteKind,
    RawEntry,
)

# =============================================================================
# Configuration Assembly
# =============================================================================

from envfile.config import (
    assert_safe,
    export_config,
    fill_defaults,
    load_config_async,
    load_config_sync,
    load_options,
    merge_options,
    parse_file,
    parse_file_async,
    read_entries,
)

# =============================================================================
# Collaborators
# =============================================================================

from envfile.environment import LocalFileReader, ProcessEnvironment
from envfile.ports import EnvironmentProtocol, FileReaderProtocol

# =============================================================================
# Errors
# =============================================================================

from envfile.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    EnvfileError,
    EnvironmentSetError,
    ExpansionCycleError,
    ExpansionError,
    ExpansionLimitError,
    MissingEnvVarsError,
    SerializationError,
)

# =============================================================================
# Public API Exports
# =============================================================================

__all__ = [
    "__version__",
    # Parsing and expansion
    "LineScanner",
    "parse",
    "parse_entries",
    "unescape",
    "Expander",
    "expand",
    "find_references",
    "stringify",
    # Data models
    "ConfigOptions",
    "ExpansionMatch",
    "QuoteKind",
    "RawEntry",
    # Configuration assembly
    "assert_safe",
    "export_config",
    "fill_defaults",
    "load_config_async",
    "load_config_sync",
    "load_options",
    "merge_options",
    "parse_file",
    "parse_file_async",
    "read_entries",
    # Collaborators
    "LocalFileReader",
    "ProcessEnvironment",
    "EnvironmentProtocol",
    "FileReaderProtocol",
    # Errors
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "EnvfileError",
    "EnvironmentSetError",
    "ExpansionCycleError",
    "ExpansionError",
    "ExpansionLimitError",
    "MissingEnvVarsError",
    "SerializationError",
]
