"""Per-project mutual exclusion for count-then-insert sequences."""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator


class ProjectLockRegistry:
    """Keyed locks, one per project id, dropped once nobody holds or waits on them."""

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._refs = defaultdict(int)
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, project_id: str, timeout: float) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(project_id, threading.Lock())
            self._refs[project_id] += 1
        acquired = lock.acquire(timeout=timeout)
        try:
            if not acquired:
                raise TimeoutError(f"timed out after {timeout:.0f}s waiting for project {project_id}")
            yield
        finally:
            if acquired:
                lock.release()
            with self._guard:
                self._refs[project_id] -= 1
                if self._refs[project_id] <= 0:
                    self._refs.pop(project_id, None)
                    self._locks.pop(project_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
