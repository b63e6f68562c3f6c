"""Orchestrator wiring transport, parser and cache into get-or-fetch operations."""

from __future__ import annotations

from concurrent.futures import as_completed
from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Any, Callable
from urllib.parse import quote

import structlog
import typer

from .config import Category, Settings
from .engine import CacheStore, Parser, ThreadPoolManager, Transport
from .engine.codec import kind_of
from .engine.records import ItemDetail, ListingRecord, PageKind, Payload, UserProfile
from .errors import (
    AggregateFetchError,
    BrowserLaunchError,
    FetchError,
    FetchReason,
    NetworkError,
    ParseError,
)
from .resolver import RankResolver

BrowserLauncher = Callable[[str], Any]


def listing_key(category: Category, page: int) -> str:
    return f"listing-{category.value}-p{page}"


def item_key(item_id: int) -> str:
    return f"item-{item_id}"


def user_key(username: str) -> str:
    return f"user-{username}"


@dataclass(slots=True)
class PageOutcome:
    """Result slot for one page of a multi-page fetch."""

    page: int
    records: list[ListingRecord] | None = None
    error: FetchError | None = None


@dataclass(slots=True)
class MultiPageResult:
    category: Category
    page_count: int
    records: list[ListingRecord]
    failures: dict[int, FetchError] = field(default_factory=dict)

    @property
    def succeeded_pages(self) -> list[int]:
        return [p for p in range(1, self.page_count + 1) if p not in self.failures]

    @property
    def partial(self) -> bool:
        return bool(self.failures)


class Orchestrator:
    """Central coordinator owning the cache-backed fetch flow and the last listing.

    One instance lives for the whole process. The last listing it keeps is what
    ``open_rank`` and ``resolver`` operate on; it is never rebuilt from the
    on-disk cache by itself.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore,
        transport: Transport,
        parser: Parser | None = None,
        thread_pool: ThreadPoolManager | None = None,
        launcher: BrowserLauncher | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.transport = transport
        self.parser = parser or Parser(
            max_comments=settings.max_comments, comment_width=settings.comment_width
        )
        self.thread_pool = thread_pool or ThreadPoolManager(settings.max_workers)
        self.launcher = launcher or typer.launch
        self.logger = logger or structlog.get_logger("hn_cli").bind(component="orchestrator")
        self._listing_lock = Lock()
        self._last_listing: list[ListingRecord] | None = None
        self._last_category: Category | None = None
        self.resolver = RankResolver(self.last_listing, settings.base_url)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        self.thread_pool.shutdown()
        closer = getattr(self.transport, "close", None)
        if callable(closer):
            closer()

    def __enter__(self) -> "Orchestrator":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Last listing
    # ------------------------------------------------------------------
    def last_listing(self) -> list[ListingRecord] | None:
        with self._listing_lock:
            return self._last_listing

    @property
    def last_category(self) -> Category | None:
        return self._last_category

    def _remember(self, category: Category, records: list[ListingRecord]) -> None:
        with self._listing_lock:
            self._last_listing = list(records)
            self._last_category = category

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def fetch_page(
        self, category: Category, page: int = 1, refresh: bool = False
    ) -> list[ListingRecord]:
        records = self._load_page(category, page, refresh)
        self._remember(category, records)
        return records

    def fetch_pages(
        self, category: Category, page_count: int, refresh: bool = False
    ) -> MultiPageResult:
        if page_count < 1:
            raise ValueError("page_count must be >= 1")
        if page_count > self.settings.max_pages:
            raise ValueError(f"page_count must be <= {self.settings.max_pages}")

        executor = self.thread_pool.get(page_count)
        outcomes: dict[int, PageOutcome] = {}
        futures = {
            executor.submit(self._load_page, category, page, refresh): page
            for page in range(1, page_count + 1)
        }
        for future in as_completed(futures):
            page = futures[future]
            try:
                outcomes[page] = PageOutcome(page=page, records=future.result())
            except FetchError as exc:
                outcomes[page] = PageOutcome(page=page, error=exc)

        merged: list[ListingRecord] = []
        failures: dict[int, FetchError] = {}
        for page in range(1, page_count + 1):
            outcome = outcomes[page]
            if outcome.error is not None:
                failures[outcome.page] = outcome.error
                continue
            offset = len(merged)
            merged.extend(replace(r, rank=r.rank + offset) for r in outcome.records or [])

        if not merged:
            self.logger.error(
                "all_pages_failed", category=category.value, pages=page_count
            )
            raise AggregateFetchError(failures)
        if failures:
            self.logger.warning(
                "partial_fetch",
                category=category.value,
                failed_pages=sorted(failures),
                records=len(merged),
            )
        self._remember(category, merged)
        return MultiPageResult(
            category=category, page_count=page_count, records=merged, failures=failures
        )

    def _load_page(self, category: Category, page: int, refresh: bool) -> list[ListingRecord]:
        if page < 1:
            raise ValueError("page must be >= 1")
        key = listing_key(category, page)
        ttl = self.settings.listing_ttl
        cached = self._cached(key, PageKind.LISTING, ttl, refresh)
        if cached is not None:
            return cached  # type: ignore[return-value]

        url = category.page_url(self.settings.base_url, page)
        try:
            raw = self.transport.fetch(url)
        except NetworkError as exc:
            self.logger.warning(
                "page_failed", category=category.value, page=page, reason="network", error=str(exc)
            )
            raise FetchError(FetchReason.NETWORK, category, page, exc) from exc
        try:
            records = self.parser.parse_listing(raw)
        except ParseError as exc:
            self.logger.warning(
                "page_failed", category=category.value, page=page, reason="parse", error=str(exc)
            )
            raise FetchError(FetchReason.PARSE, category, page, exc) from exc

        if ttl > 0:
            self.cache.put(key, records, ttl)
        self.logger.info("page_fetched", category=category.value, page=page, records=len(records))
        return records

    # ------------------------------------------------------------------
    # Items and users
    # ------------------------------------------------------------------
    def fetch_item(self, item_id: int, refresh: bool = False) -> ItemDetail:
        key = item_key(item_id)
        ttl = self.settings.item_ttl
        cached = self._cached(key, PageKind.ITEM, ttl, refresh)
        if cached is not None:
            return cached  # type: ignore[return-value]
        detail = self.parser.parse_item(
            self.transport.fetch(self.settings.item_url(item_id)), item_id=item_id
        )
        if ttl > 0:
            self.cache.put(key, detail, ttl)
        self.logger.info("item_fetched", item_id=item_id, comments=len(detail.comments))
        return detail

    def fetch_user(self, username: str, refresh: bool = False) -> UserProfile:
        key = user_key(username)
        ttl = self.settings.user_ttl
        cached = self._cached(key, PageKind.USER, ttl, refresh)
        if cached is not None:
            return cached  # type: ignore[return-value]
        url = self.settings.user_url(quote(username, safe=""))
        profile = self.parser.parse_user(self.transport.fetch(url), username=username)
        if ttl > 0:
            self.cache.put(key, profile, ttl)
        self.logger.info("user_fetched", username=username)
        return profile

    def _cached(self, key: str, kind: PageKind, ttl: int, refresh: bool) -> Payload | None:
        if refresh:
            self.cache.invalidate(key)
            return None
        if ttl <= 0:
            return None
        payload = self.cache.get_fresh(key)
        if payload is None:
            return None
        if kind_of(payload) is not kind:
            self.logger.warning("cache_kind_mismatch", key=key, expected=kind.value)
            return None
        return payload

    # ------------------------------------------------------------------
    # Rank shortcuts
    # ------------------------------------------------------------------
    def resolve(self, rank: int) -> str:
        return self.resolver.resolve(rank)

    def open_rank(self, rank: int) -> str:
        url = self.resolver.resolve(rank)
        try:
            status = self.launcher(url)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("browser_open_failed", url=url, error=str(exc))
            raise BrowserLaunchError(url, exc) from exc
        # click.launch reports failure through a non-zero exit status
        if isinstance(status, int) and status != 0:
            self.logger.error("browser_open_failed", url=url, status=status)
            raise BrowserLaunchError(url, f"launcher exited with status {status}")
        self.logger.info("browser_opened", rank=rank, url=url)
        return url


__all__ = [
    "BrowserLauncher",
    "MultiPageResult",
    "Orchestrator",
    "PageOutcome",
    "item_key",
    "listing_key",
    "user_key",
]
