"""
Abstract base class for storage adapters.

Every persistence backend (SQLite, in-memory) implements this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageAdapter(ABC):
    """
    Abstract base class for storage adapters.

    Adapters store opaque string values under string keys. Each call is
    atomic for its key; nothing groups writes to different keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key.

        Returns:
            The stored string, or None if the key is absent.

        Raises:
            StorageError: If the backend cannot be read.
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: Storage key.
            value: String to store.

        Raises:
            StorageWriteFailure: If the backend rejects the write.
        """

    @abstractmethod
    async def remove(self, key: str) -> None:
        """
        Delete a key. Removing an absent key does nothing.

        Args:
            key: Storage key.

        Raises:
            StorageWriteFailure: If the backend rejects the delete.
        """

    async def close(self) -> None:
        """Release any resources held by the adapter."""
