"""
Read-through cache for API queries.

Entries are keyed by a tuple such as ("places",) or ("favorites", user_id).
Mutations call invalidate() with a key prefix; the next get() for any key
under that prefix goes back to the loader. Concurrent get() calls for the
same key share one in-flight load.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]
Loader = Callable[[], Awaitable[Any]]


class QueryCache:
    def __init__(self) -> None:
        self._data: dict[QueryKey, Any] = {}
        self._pending: dict[QueryKey, asyncio.Future] = {}
        # Bumped per key on invalidation so a load started before it is not stored
        self._generation: dict[QueryKey, int] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._data

    def peek(self, key: QueryKey, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: QueryKey, value: Any) -> None:
        self._data[key] = value

    async def get(self, key: QueryKey, loader: Loader) -> Any:
        if key in self._data:
            return self._data[key]
        if key in self._pending:
            pending = self._pending[key]
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The load we were sharing was cancelled; run our own
                return await self.get(key, loader)

        generation = self._generation.get(key, 0)
        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            value = await loader()
        except Exception as exc:
            future.set_exception(exc)
            # Nobody else may be waiting; mark retrieved to avoid loop warnings
            future.exception()
            raise
        else:
            if self._generation.get(key, 0) == generation:
                self._data[key] = value
            future.set_result(value)
            return value
        finally:
            self._pending.pop(key, None)
            self._generation.pop(key, None)
            if not future.done():
                future.cancel()

    def invalidate(self, prefix: QueryKey = ()) -> int:
        """Drop every entry whose key starts with prefix. Returns the count."""
        n = len(prefix)
        stale = [k for k in self._data if k[:n] == prefix]
        for key in stale:
            del self._data[key]
        for key in list(self._pending):
            if key[:n] == prefix:
                self._generation[key] = self._generation.get(key, 0) + 1
        if stale:
            logger.debug("Invalidated %d cache entries under %s", len(stale), prefix)
        return len(stale)
