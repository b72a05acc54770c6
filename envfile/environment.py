"""Adapters for the process environment and the local filesystem."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from .exceptions import EnvironmentSetError

logger = logging.getLogger(__name__)


class ProcessEnvironment:
    """The real process environment, backed by os.environ."""

    def snapshot(self) -> dict[str, str]:
        return dict(os.environ)

    def get(self, key: str) -> str | None:
        return os.environ.get(key)

    def set(self, key: str, value: str) -> None:
        """Set a variable in os.environ.

        Raises:
            EnvironmentSetError: If the key is empty or contains '=' or NUL,
                or the value contains NUL.
        """
        if not key or "=" in key or "\0" in key:
            raise EnvironmentSetError("Invalid environment variable name", key=key)
        if "\0" in value:
            raise EnvironmentSetError(
                "Environment variable value contains a NUL character", key=key
            )

        try:
            os.environ[key] = value
        except (OSError, ValueError) as e:
            raise EnvironmentSetError(
                "Failed to set environment variable", key=key, cause=e
            ) from e


class LocalFileReader:
    """Reads UTF-8 dotenv files from disk.

    A missing file reads as None. Every other OSError, and decoding errors,
    propagate unchanged.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def read(self, path: str | Path) -> str | None:
        try:
            content = Path(path).read_text(encoding=self.encoding)
        except FileNotFoundError:
            logger.debug("No file at %s", path)
            return None
        logger.debug("Read %s", path)
        return content

    async def read_async(self, path: str | Path) -> str | None:
        """Read a file in a worker thread.

        Uses asyncio.to_thread to avoid blocking the event loop during file I/O.
        """
        return await asyncio.to_thread(self.read, path)
