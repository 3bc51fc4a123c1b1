"""
Completed breathing session count.
"""

import asyncio
import logging

from unburden.breathing.phases import FinalizeResult, SessionResult
from unburden.config import MIN_CYCLES_FOR_CREDIT, ZEN_SESSIONS_KEY
from unburden.errors import StorageCorruption, StorageError
from unburden.storage.base import StorageAdapter
from unburden.storage.codec import decode_counter, encode_counter

logger = logging.getLogger(__name__)


class SessionHistory:
    """
    Persisted count of breathing sessions that lasted long enough to count.

    A session is credited once it reaches MIN_CYCLES_FOR_CREDIT cycles.
    """

    def __init__(self, storage: StorageAdapter):
        self.storage = storage
        self._lock = asyncio.Lock()

    async def total(self) -> int:
        """Number of credited sessions; 0 if unset or unreadable."""
        async with self._lock:
            total, _ = await self._read()
            return total

    async def finalize(self, result: SessionResult) -> FinalizeResult:
        """
        Credit a finished session if it completed enough cycles.

        Sessions below the threshold cause no write. If the stored total
        cannot be read (other than being corrupt) the write is skipped so a
        transient failure never resets the count.

        Args:
            result: Result returned by BreathingSession.stop().

        Returns:
            Whether the session counted, and the resulting total.
        """
        async with self._lock:
            total, readable = await self._read()

            if result.cycles_completed < MIN_CYCLES_FOR_CREDIT:
                logger.info(
                    f"Session not credited ({result.cycles_completed} of "
                    f"{MIN_CYCLES_FOR_CREDIT} cycles)"
                )
                return FinalizeResult(credited_as_complete=False, total_sessions=total)

            total += 1
            if not readable:
                return FinalizeResult(
                    credited_as_complete=True, total_sessions=total, write_failed=True
                )

            try:
                await self.storage.set(ZEN_SESSIONS_KEY, encode_counter(total))
            except (StorageError, OSError) as e:
                logger.warning(f"Could not save session count: {e}")
                return FinalizeResult(
                    credited_as_complete=True, total_sessions=total, write_failed=True
                )

            logger.info(f"Session credited, {total} completed in total")
            return FinalizeResult(credited_as_complete=True, total_sessions=total)

    async def _read(self) -> tuple[int, bool]:
        try:
            blob = await self.storage.get(ZEN_SESSIONS_KEY)
            return decode_counter(ZEN_SESSIONS_KEY, blob), True
        except StorageCorruption as e:
            logger.warning(f"{e}; treating as 0")
            return 0, True
        except StorageError as e:
            logger.warning(f"Could not read session count: {e}")
            return 0, False
