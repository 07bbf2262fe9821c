"""Per-session storage backends for relationship maps.

Both backends expose the subset of the ``redis.asyncio`` client API the
relationship store needs (``get``/``set``/``delete``), so a Redis client can
be passed in directly. Entries expire after the session TTL; the in-memory
backend additionally evicts the least recently used session once it holds
``max_sessions`` keys.
"""

import time
from collections import OrderedDict


class InMemorySessionBackend:
    """Bounded LRU key/value store with per-key expiry."""

    def __init__(self, max_sessions: int = 256, clock=time.monotonic):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._clock = clock
        self._store: OrderedDict[str, tuple[str, float | None]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._store)

    def _expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> str | None:
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._expired(expires_at):
            del self._store[key]
            return None
        self._store.move_to_end(key)
        return value

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        expires_at = self._clock() + ex if ex is not None else None
        self._store[key] = (value, expires_at)
        self._store.move_to_end(key)
        while len(self._store) > self.max_sessions:
            self._store.popitem(last=False)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def aclose(self) -> None:
        self._store.clear()
