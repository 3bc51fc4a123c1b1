"""
Breathing session engine.

A four-phase state machine (inhale, hold-in, exhale, hold-out) advanced by
one cancellable timer. Each completed hold-out counts one cycle. The cycle
repeats until stop() is called.
"""

import asyncio
import logging
from collections import deque
from typing import Callable, Optional

from unburden.breathing.phases import (
    NEXT_PHASE,
    PHASE_DURATIONS_MS,
    Phase,
    PhaseEvent,
    SessionResult,
)
from unburden.scheduler import Scheduler

logger = logging.getLogger(__name__)

PhaseListener = Callable[[PhaseEvent], None]


class PhaseStream:
    """
    Async iterator over the phase events of one session.

    Never ends while the session runs. After stop(), already buffered
    events can still be read and then iteration ends.
    """

    def __init__(self):
        self._events: deque[PhaseEvent] = deque()
        self._closed = False
        self._waiter: Optional[asyncio.Future] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> list[PhaseEvent]:
        """Take every buffered event without waiting."""
        events = list(self._events)
        self._events.clear()
        return events

    def __aiter__(self) -> "PhaseStream":
        return self

    async def __anext__(self) -> PhaseEvent:
        while not self._events:
            if self._closed:
                raise StopAsyncIteration
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                await self._waiter
            finally:
                self._waiter = None
        return self._events.popleft()

    def _push(self, event: PhaseEvent) -> None:
        self._events.append(event)
        self._wake()

    def _close(self) -> None:
        self._closed = True
        self._wake()

    def _wake(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)


class BreathingSession:
    """
    Free-running breathing cycle driven by a Scheduler.

    Only one timer is armed at a time. Calling start() while a session is
    running stops it first and begins a new one from inhale with zero
    cycles; the old stream is closed. Every timer callback carries the
    generation it was armed for, so a callback that fires after stop() or a
    restart changes nothing.
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        listeners: Optional[list[PhaseListener]] = None,
    ):
        """
        Initialize the session engine.

        Args:
            scheduler: Timer source; defaults to one on the running loop.
            listeners: Callbacks invoked synchronously with each event.
        """
        self.scheduler = scheduler or Scheduler()
        self.timer_name = f"breathing-phase-{id(self):x}"
        self._listeners: list[PhaseListener] = list(listeners or [])
        self._phase = Phase.INHALE
        self._cycles = 0
        self._running = False
        self._generation = 0
        self._stream: Optional[PhaseStream] = None

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def cycles_completed(self) -> int:
        return self._cycles

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> PhaseStream:
        """
        Begin a session at inhale with zero cycles.

        Returns:
            Stream of phase events; the first (inhale, 0) is already queued.
        """
        if self._running:
            logger.info(
                f"Restarting breathing session, discarding {self._cycles} cycles"
            )
            self.stop()

        self._generation += 1
        self._phase = Phase.INHALE
        self._cycles = 0
        self._running = True
        self._stream = PhaseStream()

        logger.info("Breathing session started")
        self._emit()
        self._arm_timer()
        return self._stream

    def stop(self) -> SessionResult:
        """
        End the session and cancel the pending phase timer.

        No event is emitted and no cycle is counted after this returns.

        Returns:
            Cycles completed; zero if no session was running.
        """
        if not self._running:
            return SessionResult(cycles_completed=0)

        self._running = False
        self._generation += 1
        self.scheduler.unregister_task(self.timer_name)
        if self._stream is not None:
            self._stream._close()

        logger.info(f"Breathing session stopped after {self._cycles} cycles")
        return SessionResult(cycles_completed=self._cycles)

    def _arm_timer(self) -> None:
        generation = self._generation
        delay_seconds = PHASE_DURATIONS_MS[self._phase] / 1000
        self.scheduler.register_one_time(
            self.timer_name,
            lambda: self._advance(generation),
            delay_seconds,
        )

    def _advance(self, generation: int) -> None:
        if not self._running or generation != self._generation:
            return

        if self._phase is Phase.HOLD_OUT:
            self._cycles += 1
        self._phase = NEXT_PHASE[self._phase]

        logger.debug(f"Phase -> {self._phase.value} (cycles: {self._cycles})")
        self._emit()
        self._arm_timer()

    def _emit(self) -> None:
        event = PhaseEvent(phase=self._phase, cycles_completed=self._cycles)
        if self._stream is not None:
            self._stream._push(event)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Error in phase listener: {e}")
