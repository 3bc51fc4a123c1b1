"""
Storage adapter module.

Provides a pluggable key-value interface shared by the thought store and
the breathing session history.
"""

from unburden.storage.base import StorageAdapter
from unburden.storage.memory_adapter import MemoryStorage
from unburden.storage.sqlite_adapter import SQLiteStorage

__all__ = [
    "StorageAdapter",
    "MemoryStorage",
    "SQLiteStorage",
]
