"""Engine components wiring fetch → parse → cache."""

from .cache import CacheStore
from .codec import CacheEntry
from .fetcher import FetchResponse, Fetcher, Transport
from .parser import Parser
from .records import Comment, ItemDetail, ListingRecord, PageKind, UserProfile
from .thread_pool import ThreadPoolManager

__all__ = [
    "CacheEntry",
    "CacheStore",
    "Comment",
    "FetchResponse",
    "Fetcher",
    "ItemDetail",
    "ListingRecord",
    "PageKind",
    "Parser",
    "ThreadPoolManager",
    "Transport",
    "UserProfile",
]
