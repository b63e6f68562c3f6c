"""Bounded thread pools shared by concurrent page fetches."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict


class ThreadPoolManager:
    """Hand out executors sized to the request, never above ``max_workers``."""

    def __init__(self, max_workers: int = 8) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self._executors: Dict[int, ThreadPoolExecutor] = {}
        self._lock = Lock()

    def workers_for(self, requested: int) -> int:
        return max(1, min(requested, self.max_workers))

    def get(self, requested: int | None = None) -> ThreadPoolExecutor:
        size = self.workers_for(requested or self.max_workers)
        with self._lock:
            if size not in self._executors:
                self._executors[size] = ThreadPoolExecutor(
                    max_workers=size, thread_name_prefix=f"hn-fetch-{size}"
                )
            return self._executors[size]

    def shutdown(self) -> None:
        with self._lock:
            for executor in self._executors.values():
                executor.shutdown(wait=False)
            self._executors.clear()


__all__ = ["ThreadPoolManager"]
