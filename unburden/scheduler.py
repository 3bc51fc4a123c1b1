"""
Scheduler for named one-shot timers.

Uses the asyncio event loop's call_later for in-process scheduling, so all
callbacks run on the loop thread and cancellation takes effect immediately.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Scheduler:
    """
    In-process scheduler for named one-shot timers.

    Registering a task under a name that is already pending replaces it.
    The loop is looked up lazily so a Scheduler can be built before the
    loop starts; tests pass in a loop that runs on simulated time.
    """

    def __init__(self, loop: Optional[Any] = None):
        """
        Initialize the scheduler.

        Args:
            loop: Object providing call_later() and time(); defaults to
                the running asyncio loop.
        """
        self._loop = loop
        self._running = True
        self.timers: dict[str, asyncio.TimerHandle] = {}
        self.tasks: dict[str, dict[str, Any]] = {}

    @property
    def loop(self) -> Any:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def register_one_time(
        self,
        name: str,
        callback: Callable[[], None],
        delay_seconds: float,
    ) -> None:
        """
        Register a one-time task to run after a delay.

        Args:
            name: Name of the task.
            callback: Function to call.
            delay_seconds: Delay in seconds before calling.
        """

        def run_task():
            # Drop bookkeeping first so the callback may re-register the name
            self.timers.pop(name, None)
            self.tasks.pop(name, None)
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in one-time task '{name}': {e}")

        self.unregister_task(name)
        self._running = True

        timer = self.loop.call_later(delay_seconds, run_task)
        self.timers[name] = timer
        self.tasks[name] = {
            "type": "one_time",
            "delay_seconds": delay_seconds,
            "due_at": self.loop.time() + delay_seconds,
        }

    def unregister_task(self, name: str) -> bool:
        """
        Cancel a pending task by name.

        Args:
            name: Name of the task to unregister.

        Returns:
            True if task was found and removed, False otherwise.
        """
        timer = self.timers.pop(name, None)
        if timer is not None:
            timer.cancel()
        return self.tasks.pop(name, None) is not None

    def is_pending(self, name: str) -> bool:
        return name in self.timers

    def stop(self) -> None:
        """
        Cancel all pending tasks. Registering a new task resumes the scheduler.
        """
        if self.timers:
            logger.debug(f"Cancelling {len(self.timers)} pending timers")
        for timer in self.timers.values():
            timer.cancel()
        self.timers.clear()
        self._running = False
        self.tasks.clear()

    def get_status(self) -> dict[str, Any]:
        """
        Get the current status of the scheduler.

        Returns:
            Dictionary with scheduler status information.
        """
        return {
            "running": self._running,
            "task_count": len(self.tasks),
            "tasks": {
                name: {
                    "type": task["type"],
                    "delay_seconds": task.get("delay_seconds"),
                    "due_at": task.get("due_at"),
                }
                for name, task in self.tasks.items()
            },
        }
