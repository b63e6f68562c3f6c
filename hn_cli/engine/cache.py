"""Persistent TTL cache keeping one text file per key."""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from threading import Lock
from typing import Callable
from urllib.parse import quote

import structlog

from ..errors import CacheCorruption, CacheUnavailableError
from . import codec
from .codec import CacheEntry
from .records import Payload

CACHE_SUFFIX = ".cache"


class CacheStore:
    """Keyed, TTL-bounded store under a single directory.

    Reads never return stale or malformed entries; both are reported as a miss.
    Writes replace the whole file atomically, so a reader sees either the old
    entry or the new one.
    """

    def __init__(
        self,
        directory: Path,
        clock: Callable[[], float] = time.time,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.clock = clock
        self.logger = logger or structlog.get_logger("hn_cli.cache")
        self._lock = Lock()
        self._ensure_directory()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='-_.')}{CACHE_SUFFIX}"

    def get_fresh(self, key: str) -> Payload | None:
        entry = self.read(key)
        if entry is None:
            return None
        now = self.clock()
        if entry.created > now:
            self.logger.warning(
                "cache_corrupt", key=key, error=f"created {entry.created} is after now {now}"
            )
            return None
        if not entry.is_fresh(now):
            self.logger.debug("cache_stale", key=key, created=entry.created, ttl=entry.ttl)
            return None
        self.logger.debug("cache_hit", key=key)
        return entry.payload

    def read(self, key: str) -> CacheEntry | None:
        """Return the stored entry regardless of freshness, or ``None``."""

        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self.logger.debug("cache_miss", key=key)
            return None
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.warning("cache_unreadable", key=key, path=str(path), error=str(exc))
            return None
        try:
            return codec.decode(text)
        except CacheCorruption as exc:
            self.logger.warning("cache_corrupt", key=key, path=str(path), error=str(exc))
            return None

    def put(self, key: str, payload: Payload, ttl: int) -> None:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        text = codec.encode(payload, created=self.clock(), ttl=ttl)
        path = self.path_for(key)
        with self._lock:
            self._ensure_directory()
            try:
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp"
                )
            except OSError as exc:
                raise CacheUnavailableError(f"Cannot write cache entry {path}: {exc}") from exc
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as stream:
                    stream.write(text)
                os.replace(tmp_name, path)
            except OSError as exc:
                Path(tmp_name).unlink(missing_ok=True)
                raise CacheUnavailableError(f"Cannot write cache entry {path}: {exc}") from exc
        self.logger.debug("cache_put", key=key, ttl=ttl)

    def invalidate(self, key: str) -> bool:
        path = self.path_for(key)
        with self._lock:
            existed = path.exists()
            path.unlink(missing_ok=True)
        if existed:
            self.logger.debug("cache_invalidated", key=key)
        return existed

    def clear(self) -> int:
        removed = 0
        with self._lock:
            for path in self.directory.glob(f"*{CACHE_SUFFIX}"):
                path.unlink(missing_ok=True)
                removed += 1
        self.logger.info("cache_cleared", directory=str(self.directory), removed=removed)
        return removed

    def _ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheUnavailableError(
                f"Cache directory {self.directory} is not usable: {exc}"
            ) from exc


__all__ = ["CACHE_SUFFIX", "CacheStore"]
