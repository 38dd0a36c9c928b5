"""
In-memory cache of provider outcomes, keyed by project directory.

Entries hold either a result or an error, never both. Staleness is decided
per read: the same entry can be fresh for a caller passing a long max_age
and stale for one passing a short max_age.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from agentdeck.tasks.errors import ProviderError
from agentdeck.tasks.types import ProviderResult


@dataclass
class CachedResult:
    """Last known outcome for one project."""
    project_dir: str
    result: Optional[ProviderResult]
    error: Optional[ProviderError]
    fetched_at: float  # Clock reading at write time

    @property
    def ok(self) -> bool:
        return self.error is None


class ResultCache:
    """
    Thread-safe map from project directory to its last provider outcome.

    Usage:
        cache = ResultCache()
        cache.set("/src/app", result=result)
        entry = cache.get("/src/app", max_age=60)
        if entry is None:
            ...  # Missing or stale, run the provider
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CachedResult] = {}

    def get(self, project_dir: str, max_age: float) -> Optional[CachedResult]:
        """Return the entry if present and no older than max_age seconds."""
        with self._lock:
            entry = self._entries.get(project_dir)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at > max_age:
            return None
        return entry

    def set(
        self,
        project_dir: str,
        result: Optional[ProviderResult] = None,
        error: Optional[ProviderError] = None,
    ) -> CachedResult:
        """Replace the entry for project_dir.

        Raises:
            ValueError: Unless exactly one of result/error is given.
        """
        if (result is None) == (error is None):
            raise ValueError("exactly one of result or error must be set")

        entry = CachedResult(
            project_dir=project_dir,
            result=result,
            error=error,
            fetched_at=self._clock(),
        )
        with self._lock:
            self._entries[project_dir] = entry
        return entry

    def invalidate(self, project_dir: str) -> None:
        """Drop the entry for project_dir (manual refresh)."""
        with self._lock:
            self._entries.pop(project_dir, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, project_dir: str) -> bool:
        with self._lock:
            return project_dir in self._entries
