"""Config assembly: primary file, defaults fill, safe-mode check, export.

Provides the high-level loaders built on the parser, together with loading
and merging of the loader's own options.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any

import dacite

from .environment import LocalFileReader, ProcessEnvironment
from .exceptions import (
    ConfigLoadError,
    ConfigValidationError,
    ExpansionError,
    MissingEnvVarsError,
    record_error,
)
from .models import ConfigOptions, RawEntry, options_from_dict
from .parser import parse, parse_entries
from .ports import EnvironmentProtocol, FileReaderProtocol

logger = logging.getLogger(__name__)


# =============================================================================
# File Parsing
# =============================================================================


def _parse_content(
    content: str | None,
    path: str | Path,
    environment: EnvironmentProtocol,
) -> dict[str, str]:
    if content is None:
        return {}
    try:
        return parse(content, environment)
    except ExpansionError as e:
        logger.error("Variable expansion failed in %s: %s", path, e)
        record_error(e)
        raise


def parse_file(
    path: str | Path,
    *,
    environment: EnvironmentProtocol | None = None,
    reader: FileReaderProtocol | None = None,
) -> dict[str, str]:
    """Read and parse a dotenv file.

    Args:
        path: File to read.
        environment: Variable source for expansion (default: process environment).
        reader: File reader (default: LocalFileReader).

    Returns:
        The parsed mapping, or an empty dict if the file doesn't exist.

    Raises:
        OSError: If the file exists but cannot be read.
        ExpansionError: If a reference in the file is cyclic.
    """
    if environment is None:
        environment = ProcessEnvironment()
    if reader is None:
        reader = LocalFileReader()
    try:
        content = reader.read(path)
    except OSError as e:
        logger.error("Failed to read %s: %s", path, e)
        record_error(e)
        raise
    return _parse_content(content, path, environment)


async def parse_file_async(
    path: str | Path,
    *,
    environment: EnvironmentProtocol | None = None,
    reader: FileReaderProtocol | None = None,
) -> dict[str, str]:
    """Async variant of parse_file(); only the read is awaited."""
    if environment is None:
        environment = ProcessEnvironment()
    if reader is None:
        reader = LocalFileReader()
    try:
        content = await reader.read_async(path)
    except OSError as e:
        logger.error("Failed to read %s: %s", path, e)
        record_error(e)
        raise
    return _parse_content(content, path, environment)


def read_entries(
    path: str | Path,
    *,
    reader: FileReaderProtocol | None = None,
) -> list[RawEntry]:
    """Read a dotenv file and return its assignments without expanding them.

    Returns:
        Every assignment in source order, or an empty list if the file
        doesn't exist.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    if reader is None:
        reader = LocalFileReader()
    try:
        content = reader.read(path)
    except OSError as e:
        logger.error("Failed to read %s: %s", path, e)
        record_error(e)
        raise
    return parse_entries(content) if content is not None else []


# =============================================================================
# Assembly Steps
# =============================================================================


def fill_defaults(conf: dict[str, str], defaults: dict[str, str]) -> dict[str, str]:
    """Return conf with keys it lacks taken from defaults.

    A key present in conf is kept even if its value is empty.
    """
    result = dict(conf)
    for key, value in defaults.items():
        if key not in result:
            result[key] = value
    return result


def find_missing(
    conf: dict[str, str],
    example: dict[str, str],
    allow_empty_values: bool,
    environment: EnvironmentProtocol,
) -> list[str]:
    """List example keys not provided by the environment or conf.

    Values from conf take precedence over the environment. Unless
    allow_empty_values is set, a key whose value is empty counts as missing.
    """
    # Not all the variables have to be defined in the file, they can be
    # supplied externally
    available = {**environment.snapshot(), **conf}
    if not allow_empty_values:
        available = {k: v for k, v in available.items() if v}
    return [key for key in example if key not in available]


def assert_safe(
    conf: dict[str, str],
    example: dict[str, str],
    allow_empty_values: bool = False,
    environment: EnvironmentProtocol | None = None,
    *,
    example_path: str | None = None,
) -> None:
    """Check that every key of the example is available.

    Raises:
        MissingEnvVarsError: Listing every missing key at once.
    """
    if environment is None:
        environment = ProcessEnvironment()
    missing = find_missing(conf, example, allow_empty_values, environment)
    if not missing:
        return

    messages = [
        "The following variables were defined in the example file but are "
        f"not present in the environment:\n  {', '.join(missing)}",
        "Make sure to add them to your env file.",
    ]
    if not allow_empty_values:
        messages.append(
            "If you expect any of these variables to be empty, you can set "
            "the allow_empty_values option to true."
        )

    error = MissingEnvVarsError(
        "\n\n".join(messages),
        missing=missing,
        allow_empty_values=allow_empty_values,
        example_path=example_path,
    )
    logger.error("Safe mode check failed, missing: %s", ", ".join(missing))
    record_error(error)
    raise error


def export_config(
    conf: dict[str, str],
    environment: EnvironmentProtocol | None = None,
) -> list[str]:
    """Write conf into the environment without overwriting anything.

    Returns:
        The keys that were actually set.
    """
    if environment is None:
        environment = ProcessEnvironment()
    exported = []
    for key, value in conf.items():
        if environment.get(key) is not None:
            logger.debug("Not exporting %s, already defined", key)
            continue
        environment.set(key, value)
        exported.append(key)

    logger.info("Exported %d of %d variables", len(exported), len(conf))
    return exported


def _finish(
    options: ConfigOptions,
    conf: dict[str, str],
    defaults: dict[str, str] | None,
    example: dict[str, str] | None,
    environment: EnvironmentProtocol,
) -> dict[str, str]:
    if defaults is not None:
        conf = fill_defaults(conf, defaults)

    if example is not None:
        assert_safe(
            conf,
            example,
            options.allow_empty_values,
            environment,
            example_path=options.example,
        )

    if options.export:
        export_config(conf, environment)

    return conf


# =============================================================================
# Loaders
# =============================================================================


def load_config_sync(
    options: ConfigOptions | None = None,
    *,
    environment: EnvironmentProtocol | None = None,
    reader: FileReaderProtocol | None = None,
) -> dict[str, str]:
    """
    Load configuration from dotenv files.

    Steps:
    - Parse options.path
    - Fill absent keys from options.defaults (skipped if empty)
    - If options.safe, check the keys of options.example are all available
    - If options.export, set every key not already in the environment

    Missing files count as empty.

    Args:
        options: Loader options (default: ConfigOptions()).
        environment: Environment used for expansion, the safe check and
            export (default: process environment).
        reader: File reader (default: LocalFileReader).

    Returns:
        The assembled configuration.

    Raises:
        OSError: If a file exists but cannot be read.
        MissingEnvVarsError: If safe mode finds missing keys.
        ExpansionError: If a reference is cyclic.
    """
    options = options or ConfigOptions()
    if environment is None:
        environment = ProcessEnvironment()
    if reader is None:
        reader = LocalFileReader()
    kwargs: dict[str, Any] = {"environment": environment, "reader": reader}

    conf = parse_file(options.path, **kwargs)
    logger.debug("Loaded %d keys from %s", len(conf), options.path)

    defaults = parse_file(options.defaults, **kwargs) if options.defaults else None
    example = parse_file(options.example, **kwargs) if options.safe else None

    return _finish(options, conf, defaults, example, environment)


async def load_config_async(
    options: ConfigOptions | None = None,
    *,
    environment: EnvironmentProtocol | None = None,
    reader: FileReaderProtocol | None = None,
) -> dict[str, str]:
    """Async variant of load_config_sync() with the same semantics.

    File reads run through the reader's read_async().
    """
    options = options or ConfigOptions()
    if environment is None:
        environment = ProcessEnvironment()
    if reader is None:
        reader = LocalFileReader()
    kwargs: dict[str, Any] = {"environment": environment, "reader": reader}

    conf = await parse_file_async(options.path, **kwargs)
    logger.debug("Loaded %d keys from %s", len(conf), options.path)

    defaults = None
    if options.defaults:
        defaults = await parse_file_async(options.defaults, **kwargs)
    example = None
    if options.safe:
        example = await parse_file_async(options.example, **kwargs)

    return _finish(options, conf, defaults, example, environment)


# =============================================================================
# Loader Options
# =============================================================================


def merge_options(options: ConfigOptions, overrides: dict[str, Any]) -> ConfigOptions:
    """
    Apply overrides on top of options.

    Rules:
    - None in overrides: keeps the existing value
    - Anything else: replaces it

    Raises:
        ConfigValidationError: If an override names an unknown option.
    """
    known = {f.name for f in dataclasses.fields(ConfigOptions)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigValidationError(f"Unknown option: {key}", field=key)
        if value is not None:
            changes[key] = value
    return dataclasses.replace(options, **changes)


def load_options(path: str | Path) -> ConfigOptions:
    """
    Load loader options from a JSON file.

    Args:
        path: JSON file holding an object with ConfigOptions fields

    Returns:
        ConfigOptions instance

    Raises:
        ConfigLoadError: If the file cannot be read or is not valid JSON.
        ConfigValidationError: If the content does not match ConfigOptions.
    """
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Loaded options from %s", path)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in options file: %s", e)
        record_error(e)
        raise ConfigLoadError(
            f"Invalid JSON in options file at line {e.lineno}",
            file_path=str(path),
            context={"line": e.lineno, "column": e.colno},
            cause=e,
        ) from e
    except OSError as e:
        logger.error("Failed to read options file: %s", e)
        record_error(e)
        raise ConfigLoadError(
            "Failed to read options file",
            file_path=str(path),
            cause=e,
        ) from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            "Options file must contain a JSON object",
            expected="object",
            context={"file_path": str(path)},
        )

    try:
        return options_from_dict(data)
    except dacite.DaciteError as e:
        logger.error("Options schema validation failed: %s", e)
        record_error(e)
        raise ConfigValidationError(
            f"Options schema validation failed: {e}",
            context={"file_path": str(path)},
            cause=e,
        ) from e
