"""
Error types and command results.

Storage problems are raised by adapters as exceptions and absorbed by the
stores; missing or rejected targets are returned as result values so the
presentation layer can render them without try/except.
"""

from dataclasses import dataclass


class UnburdenError(Exception):
    """Base class for all Unburden errors."""


class StorageError(UnburdenError):
    """A storage adapter could not read a value."""


class StorageWriteFailure(StorageError):
    """A storage adapter rejected a write."""


class StorageCorruption(StorageError):
    """A persisted value could not be parsed."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupt value for '{key}': {reason}")
        self.key = key
        self.reason = reason


class ConfigError(UnburdenError):
    """The settings file is invalid."""


@dataclass(frozen=True)
class NotFound:
    """No entry with the requested id exists."""

    id: str


@dataclass(frozen=True)
class Rejected:
    """A command was refused before anything changed."""

    reason: str
