"""
In-memory storage adapter.

Used for tests and for sessions that should leave nothing on disk.
"""

from typing import Optional

from unburden.storage.base import StorageAdapter


class MemoryStorage(StorageAdapter):
    """Dict-backed storage adapter."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value

    async def remove(self, key: str) -> None:
        self.values.pop(key, None)
