"""Error taxonomy shared by the transport, extractor, cache and orchestrator."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:  # pragma: no cover
    from .config import Category


class HNError(Exception):
    """Base class for every error surfaced by hn-cli."""


class NetworkError(HNError):
    """Transport level failure: timeout, refused connection or bad status."""

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(HNError):
    """Page structure could not be recognised."""

    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(f"Unrecognised {kind} page: {detail}")
        self.kind = kind
        self.detail = detail


class CacheCorruption(HNError):
    """Malformed on-disk cache entry. Always recovered as a cache miss."""


class CacheUnavailableError(HNError):
    """The cache directory cannot be created or written."""


class NotFoundError(HNError):
    """The source reports that the requested entity does not exist."""


class UnknownItemError(NotFoundError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"No such item: {item_id}")
        self.item_id = item_id


class UnknownUserError(NotFoundError):
    def __init__(self, username: str) -> None:
        super().__init__(f"No such user: {username}")
        self.username = username


class FetchReason(str, Enum):
    NETWORK = "network"
    PARSE = "parse"


class FetchError(HNError):
    """A single listing page could not be produced."""

    def __init__(
        self,
        reason: FetchReason,
        category: "Category | None" = None,
        page: int | None = None,
        cause: Exception | None = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            label = category.value if category is not None else "?"
            message = f"Failed to fetch {label} page {page} ({reason.value}): {cause}"
        super().__init__(message)
        self.reason = reason
        self.category = category
        self.page = page
        self.cause = cause


class AggregateFetchError(FetchError):
    """Every page of a multi-page fetch failed."""

    def __init__(self, failures: Mapping[int, FetchError]) -> None:
        self.failures = dict(sorted(failures.items()))
        first = next(iter(self.failures.values()))
        pages = ", ".join(str(page) for page in self.failures)
        super().__init__(
            first.reason,
            category=first.category,
            page=None,
            cause=first.cause,
            message=f"All pages failed ({pages}); first error: {first}",
        )


class RankOutOfRangeError(HNError):
    """Requested rank is not part of the last listing."""

    def __init__(self, rank: int, size: int) -> None:
        if size == 0:
            message = "No listing loaded yet. Run a list command first."
        else:
            message = f"Rank {rank} is out of range (1-{size})."
        super().__init__(message)
        self.rank = rank
        self.size = size


class BrowserLaunchError(HNError):
    def __init__(self, url: str, cause: Exception | str) -> None:
        super().__init__(f"Failed to open {url} in browser: {cause}")
        self.url = url
        self.cause = cause


__all__ = [
    "AggregateFetchError",
    "BrowserLaunchError",
    "CacheCorruption",
    "CacheUnavailableError",
    "FetchError",
    "FetchReason",
    "HNError",
    "NetworkError",
    "NotFoundError",
    "ParseError",
    "RankOutOfRangeError",
    "UnknownItemError",
    "UnknownUserError",
]
