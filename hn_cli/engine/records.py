"""Typed records produced by the extractor and stored by the cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class PageKind(str, Enum):
    """Kinds of pages the extractor understands."""

    LISTING = "listing"
    ITEM = "item"
    USER = "user"


@dataclass(frozen=True, slots=True)
class ListingRecord:
    """One row of a listing page.

    ``rank`` is positional: it is assigned in extraction order and only has
    meaning inside the result set that produced it.
    """

    rank: int
    item_id: int
    title: str
    url: str | None = None
    score: int | None = None
    comments: int | None = None
    author: str | None = None
    age: str | None = None


@dataclass(frozen=True, slots=True)
class Comment:
    author: str | None
    age: str | None
    text: str


@dataclass(frozen=True, slots=True)
class ItemDetail:
    item_id: int
    title: str
    url: str | None = None
    score: int | None = None
    author: str | None = None
    age: str | None = None
    text: str | None = None
    comment_count: int = 0
    comments: tuple[Comment, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class UserProfile:
    username: str
    karma: int
    created: str
    about: str | None = None


Listing = list[ListingRecord]
Payload = Union[Listing, ItemDetail, UserProfile]


__all__ = [
    "Comment",
    "ItemDetail",
    "Listing",
    "ListingRecord",
    "PageKind",
    "Payload",
    "UserProfile",
]
