"""Pydantic models used across hn-cli configuration flow."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/143.0.0.0 Safari/537.36"
)


class Category(str, Enum):
    """Listing categories offered by the source site."""

    TOP = "top"
    NEW = "new"
    BEST = "best"
    ASK = "ask"
    SHOW = "show"
    JOB = "job"

    @property
    def path(self) -> str:
        return _CATEGORY_PATHS[self]

    def page_url(self, base_url: str, page: int = 1) -> str:
        url = f"{base_url.rstrip('/')}/{self.path}"
        if page > 1:
            url = f"{url}?p={page}"
        return url


_CATEGORY_PATHS = {
    Category.TOP: "news",
    Category.NEW: "newest",
    Category.BEST: "best",
    Category.ASK: "ask",
    Category.SHOW: "show",
    Category.JOB: "jobs",
}


class Settings(BaseModel):
    """Global controls for fetching, caching and presentation."""

    base_url: str = "https://news.ycombinator.com"
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0
    connect_timeout: float = 10.0
    retry_on_fail: int = 0
    retry_delay: float = 0.5
    # TTLs in seconds; 0 disables caching for that lookup kind
    listing_ttl: int = 300
    item_ttl: int = 60
    user_ttl: int = 600
    max_workers: int = 8
    max_pages: int = 10
    max_comments: int = 10
    comment_width: int = Field(default=500, description="Max characters kept per comment excerpt.")

    @field_validator("base_url", mode="before")
    @classmethod
    def _strip_base_url(cls, value: Any) -> str:
        text = str(value).strip().rstrip("/")
        if not text.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return text

    @field_validator("listing_ttl", "item_ttl", "user_ttl", "retry_on_fail")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value must be >= 0")
        return value

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if self.max_comments < 0:
            raise ValueError("max_comments must be >= 0")
        if self.comment_width < 20:
            raise ValueError("comment_width must be >= 20")
        if self.request_timeout <= 0 or self.connect_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        return self

    def item_url(self, item_id: int) -> str:
        return f"{self.base_url}/item?id={item_id}"

    def user_url(self, username: str) -> str:
        return f"{self.base_url}/user?id={username}"


__all__ = ["Category", "DEFAULT_USER_AGENT", "Settings"]
