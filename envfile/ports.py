"""Collaborator abstraction layer.

This module defines protocols (interfaces) for the two things the loader
needs from the outside world: a variable environment and a file reader.
Keeping them behind protocols lets the parser and loader run against the
real process environment, or against in-memory mocks in tests, without code
changes.

The abstraction follows the "ports and adapters" pattern: ports are defined
here, adapters live in environment.py and envfile.testing.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class EnvironmentProtocol(Protocol):
    """Protocol for a mutable set of environment variables."""

    @abstractmethod
    def snapshot(self) -> dict[str, str]:
        """Return a copy of all variables.

        Changes to the returned dictionary must not affect the environment.
        """
        ...

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return a variable's value, or None if it is not defined."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Define or replace a variable.

        Raises:
            EnvironmentSetError: If the key or value cannot be stored.
        """
        ...


@runtime_checkable
class FileReaderProtocol(Protocol):
    """Protocol for reading dotenv files as text."""

    @abstractmethod
    def read(self, path: str | Path) -> str | None:
        """Read a file.

        Returns:
            The file's text, or None if the file does not exist.

        Raises:
            OSError: For any failure other than a missing file.
        """
        ...

    @abstractmethod
    async def read_async(self, path: str | Path) -> str | None:
        """Read a file without blocking the event loop.

        Same contract as read().
        """
        ...
