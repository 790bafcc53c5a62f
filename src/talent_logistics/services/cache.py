"""In-process TTL cache for project readiness responses."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable
from uuid import UUID

logger = logging.getLogger(__name__)

DEFAULT_TTL = 30


class ReadinessCache:
    """Per-project cache of readiness payloads.

    Entries expire after ttl_seconds. The clock is injectable for tests.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: dict[str, tuple[Any, float]] = {}

    @staticmethod
    def _key(project_id: UUID | str) -> str:
        return f"readiness:{project_id}"

    def get(self, project_id: UUID | str) -> Any | None:
        """Return the cached payload, or None on miss or expiry."""
        key = self._key(project_id)
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires = entry
        if self._clock() >= expires:
            self._store.pop(key, None)
            return None
        return value

    def set(self, project_id: UUID | str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._store[self._key(project_id)] = (value, self._clock() + self.ttl_seconds)

    def invalidate(self, project_id: UUID | str) -> bool:
        """Drop one project's entry. Returns True if an entry was removed."""
        removed = self._store.pop(self._key(project_id), None) is not None
        if removed:
            logger.debug("Invalidated readiness cache for project %s", project_id)
        return removed

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
