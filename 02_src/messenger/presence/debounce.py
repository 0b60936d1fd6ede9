"""Cancel-and-reschedule task used to coalesce bursts of triggers."""

import asyncio
from typing import Awaitable, Callable

from ..logging_config import get_logger

logger = get_logger(__name__)


class DebouncedTask:
    """Runs ``action`` once, ``delay`` seconds after the last ``trigger()``."""

    def __init__(self, action: Callable[[], Awaitable[None]], delay: float):
        self._action = action
        self._delay = delay
        self._task: asyncio.Task | None = None
        self._firing: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        """(Re)start the countdown.

        A run that already woke up is left to finish; only a sleeping one is
        cancelled.
        """
        if self.pending and self._task is not self._firing:
            self._task.cancel()
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self._delay)
        current = asyncio.current_task()
        self._firing = current
        try:
            await self._action()
        except Exception as e:
            logger.error("Debounced action failed: %s", e, exc_info=True)
        finally:
            if self._firing is current:
                self._firing = None

    async def cancel(self) -> None:
        """Drop any scheduled run."""
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
