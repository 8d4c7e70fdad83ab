"""Trailing-edge debouncer for search-as-you-type input."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from petfinder.config import settings

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Run ``callback(value)`` once input has been quiet for ``delay`` seconds.

    Each submit() cancels the previously scheduled call, so only the most
    recent value is ever delivered.
    """

    def __init__(
        self,
        callback: Callable[[Any], Awaitable[None]],
        delay: Optional[float] = None,
    ) -> None:
        self._callback = callback
        self._delay = settings.search_debounce_ms / 1000 if delay is None else delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, value: Any) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire(value))

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def flush(self) -> None:
        """Wait for the scheduled call, if any, to complete."""
        if self._task is not None:
            try:
                await asyncio.shield(self._task)
            except asyncio.CancelledError:
                # Only a cancelled debounced call is expected here
                if not self._task.cancelled():
                    raise

    async def _fire(self, value: Any) -> None:
        await asyncio.sleep(self._delay)
        await self._callback(value)
