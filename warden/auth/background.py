"""
Detached dispatch for secondary effects (audit, login history).

Work handed to ``BackgroundTasks.spawn`` runs on the event loop without
blocking the caller. Its failures are logged here and never propagate, so
a broken audit sink cannot abort or roll back a login or token operation.
"""

import asyncio
import logging
from asyncio import Task
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str, BaseException], None]


def _log_failure(description: str, error: BaseException) -> None:
    logger.error(f"Background task '{description}' failed: {error!r}")


class BackgroundTasks:
    """
    Registry of fire-and-forget tasks.

    Strong references are held until each task finishes; asyncio only keeps
    weak references to tasks, so an untracked task can be garbage collected
    mid-flight.
    """

    def __init__(self, on_error: ErrorHandler | None = None):
        self._tasks: set[Task] = set()
        self._on_error = on_error or _log_failure

    def spawn(
        self, operation: Callable[[], Awaitable[Any]], description: str
    ) -> Task:
        """
        Schedule ``operation`` on the running loop and return immediately.

        ``operation`` is called inside the task, so a backend that raises
        before returning an awaitable, or returns something that is not
        awaitable, fails the task rather than the caller.

        Must be called from within a running event loop.
        """

        async def run() -> Any:
            return await operation()

        task = asyncio.get_running_loop().create_task(run(), name=description)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return

        error = task.exception()
        if error is None:
            return

        try:
            self._on_error(task.get_name(), error)
        except Exception as handler_error:
            # The error sink itself failed; last resort is the module logger.
            logger.error(f"Background error handler failed: {handler_error!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every task spawned so far. Used on shutdown and in tests."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def run_quietly(
    operation: Callable[[], Awaitable[Any]], description: str
) -> Any:
    """
    Await ``operation`` inline and swallow its failure after logging it.

    For best-effort writes that must complete before the caller continues
    (e.g. resetting the lockout counter) but must not fail the caller.
    """
    try:
        return await operation()
    except Exception as e:
        logger.error(f"Best-effort operation '{description}' failed: {e!r}")
        return None
