"""
Persistent store for journaled thoughts.

Keeps the ordered thought collection (newest first) and the lifetime
"thoughts released" counter, both persisted through a storage adapter.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from unburden.config import RECENT_THOUGHTS_LIMIT, THOUGHT_COUNT_KEY, THOUGHTS_KEY
from unburden.errors import NotFound, Rejected, StorageCorruption, StorageError
from unburden.storage.base import StorageAdapter
from unburden.storage.codec import decode_counter, encode_counter
from unburden.thoughts.age import relative_age
from unburden.thoughts.models import (
    ThoughtEntry,
    decode_thoughts,
    encode_thoughts,
    make_entry_id,
)
from unburden.utils.timezone import get_current_time_for_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreWarning:
    """A non-fatal storage problem the user may want to know about."""

    kind: str  # "corruption", "read_failure" or "write_failure"
    key: str
    message: str


class ThoughtStore:
    """
    Ordered, persisted collection of thoughts.

    In-memory state is the source of truth once loaded. Every mutation
    persists the full collection; a failed write is recorded as a warning
    and the in-memory change is kept. Mutations are serialized by a lock so
    concurrent commands never write from a stale snapshot.

    The collection and the counter are separate keys, so a crash between
    the two writes of add() can leave them out of step. The counter is a
    display statistic and that drift is tolerated.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        timezone_str: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the thought store.

        Args:
            storage: Adapter holding the collection and counter.
            timezone_str: User timezone used to stamp new entries.
            clock: Returns the current time; overrides timezone_str.
        """
        self.storage = storage
        self._clock = clock or (lambda: get_current_time_for_user(timezone_str))
        self._entries: list[ThoughtEntry] = []
        self._released = 0
        self._loaded = False
        self._unreadable: set[str] = set()
        self._lock = asyncio.Lock()
        self._warnings: list[StoreWarning] = []

    @property
    def entries(self) -> tuple[ThoughtEntry, ...]:
        return tuple(self._entries)

    @property
    def thoughts_released(self) -> int:
        return self._released

    async def load(self) -> tuple[ThoughtEntry, ...]:
        """
        Read the collection and counter from storage, replacing memory.

        Corrupt or unreadable values are logged and treated as empty. A key
        that could not be read is never overwritten: the next operation
        retries the read, and until one succeeds changes stay in memory.

        Returns:
            Snapshot of the loaded entries, newest first.
        """
        async with self._lock:
            await self._load_locked()
            return tuple(self._entries)

    async def load_all(self) -> tuple[ThoughtEntry, ...]:
        """
        Get all thoughts, newest first.

        Loads from storage on first use; afterwards returns the in-memory
        collection.
        """
        async with self._lock:
            await self._ensure_loaded()
            return tuple(self._entries)

    async def add(self, text: str) -> Optional[ThoughtEntry]:
        """
        Record a new thought.

        Args:
            text: Thought text. Blank text is ignored.

        Returns:
            The new entry, or None if the text was blank.
        """
        if not text.strip():
            logger.debug("Ignoring blank thought")
            return None

        async with self._lock:
            await self._ensure_loaded()

            now = self._clock()
            entry = ThoughtEntry(
                id=make_entry_id(now, (e.id for e in self._entries)),
                text=text,
                created_at=now,
            )
            self._entries.insert(0, entry)
            self._released += 1

            await self._write(THOUGHTS_KEY, encode_thoughts(self._entries))
            await self._write(THOUGHT_COUNT_KEY, encode_counter(self._released))

        logger.info(f"Added thought {entry.id} ({self._released} released)")
        return entry

    async def update(
        self, entry_id: str, new_text: str
    ) -> Union[ThoughtEntry, NotFound, Rejected]:
        """
        Replace the text of a thought, keeping its id, date and position.

        Args:
            entry_id: Id of the thought to edit.
            new_text: Replacement text; must not be blank.

        Returns:
            The updated entry, NotFound, or Rejected for blank text.
        """
        if not new_text.strip():
            return Rejected("Thought text cannot be empty")

        async with self._lock:
            await self._ensure_loaded()

            index = self._index_of(entry_id)
            if index is None:
                logger.debug(f"Update skipped, no thought {entry_id}")
                return NotFound(entry_id)

            entry = self._entries[index].with_text(new_text)
            self._entries[index] = entry
            await self._write(THOUGHTS_KEY, encode_thoughts(self._entries))

        logger.info(f"Updated thought {entry_id}")
        return entry

    async def remove(self, entry_id: str) -> Union[ThoughtEntry, NotFound]:
        """
        Permanently delete a thought. The lifetime counter is untouched.

        Args:
            entry_id: Id of the thought to delete.

        Returns:
            The removed entry, or NotFound if it was already gone.
        """
        async with self._lock:
            await self._ensure_loaded()

            index = self._index_of(entry_id)
            if index is None:
                logger.debug(f"Remove skipped, no thought {entry_id}")
                return NotFound(entry_id)

            entry = self._entries.pop(index)
            await self._write(THOUGHTS_KEY, encode_thoughts(self._entries))

        logger.info(f"Removed thought {entry_id}")
        return entry

    def get(self, entry_id: str) -> Optional[ThoughtEntry]:
        index = self._index_of(entry_id)
        return None if index is None else self._entries[index]

    def recent(self, limit: int = RECENT_THOUGHTS_LIMIT) -> tuple[ThoughtEntry, ...]:
        return tuple(self._entries[:limit])

    def relative_age(self, entry: ThoughtEntry, now: Optional[datetime] = None) -> str:
        return relative_age(entry.created_at, now or self._clock())

    def drain_warnings(self) -> list[StoreWarning]:
        """Return and clear warnings collected since the last call."""
        warnings, self._warnings = self._warnings, []
        return warnings

    def _index_of(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return None

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self._load_locked()

    async def _load_locked(self) -> None:
        self._unreadable.clear()
        try:
            self._entries = decode_thoughts(THOUGHTS_KEY, await self.storage.get(THOUGHTS_KEY))
        except StorageError as e:
            self._record_read_error(THOUGHTS_KEY, e)
            self._entries = []

        try:
            self._released = decode_counter(
                THOUGHT_COUNT_KEY, await self.storage.get(THOUGHT_COUNT_KEY)
            )
        except StorageError as e:
            self._record_read_error(THOUGHT_COUNT_KEY, e)
            self._released = 0

        # Retry on the next operation if a key could not be read at all
        self._loaded = not self._unreadable
        logger.debug(f"Loaded {len(self._entries)} thoughts, {self._released} released")

    async def _write(self, key: str, value: str) -> bool:
        if key in self._unreadable:
            logger.warning(f"Not saving '{key}': stored value could not be read")
            self._warnings.append(
                StoreWarning("write_failure", key, "stored value could not be read")
            )
            return False
        try:
            await self.storage.set(key, value)
        except (StorageError, OSError) as e:
            logger.warning(f"Could not save '{key}': {e}; keeping changes in memory")
            self._warnings.append(StoreWarning("write_failure", key, str(e)))
            return False
        return True

    def _record_read_error(self, key: str, error: StorageError) -> None:
        if isinstance(error, StorageCorruption):
            kind = "corruption"
            logger.warning(f"{error}; treating as empty")
        else:
            kind = "read_failure"
            self._unreadable.add(key)
            logger.warning(f"Could not read '{key}': {error}; treating as empty")
        self._warnings.append(StoreWarning(kind, key, str(error)))
