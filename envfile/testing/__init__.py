"""Testing utilities for envfile.

This package provides in-memory implementations of the environment and file
reader protocols, so loaders can be exercised without touching os.environ or
the filesystem.
"""

from envfile.testing.mocks import (
    MockEnvironment,
    MockFileReader,
)

__all__ = [
    "MockEnvironment",
    "MockFileReader",
]
