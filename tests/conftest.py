"""
Shared fixtures: a simulated-time event loop and storage doubles.
"""

import asyncio
from typing import Callable, Optional

import pytest

from unburden.errors import StorageError, StorageWriteFailure
from unburden.storage import MemoryStorage


class FakeTimer:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Just enough of an event loop for Scheduler: call_later and time."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self.timers: list[FakeTimer] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        self._seq += 1
        timer = FakeTimer(self.now + delay, self._seq, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Run every timer due within the next `seconds`, in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.timers = [t for t in self.timers if not t.cancelled]
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)


class FlakyStorage(MemoryStorage):
    """Memory storage whose reads or writes can be made to fail."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__(initial)
        self.fail_writes = False
        self.fail_reads = False
        self.writes: list[str] = []

    async def get(self, key):
        if self.fail_reads:
            raise StorageError(f"disk unavailable reading {key}")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise StorageWriteFailure(f"disk full writing {key}")
        self.writes.append(key)
        await super().set(key, value)


class SlowStorage(MemoryStorage):
    """Memory storage that yields to the loop on every call."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value):
        await asyncio.sleep(0)
        await super().set(key, value)


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def flaky_storage() -> FlakyStorage:
    return FlakyStorage()
