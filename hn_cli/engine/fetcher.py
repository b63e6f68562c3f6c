"""HTTP fetching over a pooled httpx client."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from ..config import Settings
from ..errors import NetworkError

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


class Transport(Protocol):
    """Anything able to turn a URL into page bytes."""

    def fetch(self, url: str) -> bytes:
        """Return the body of ``url`` or raise ``NetworkError``."""


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    content: bytes


class Fetcher:
    """Execute requests with retry and status classification."""

    def __init__(
        self,
        settings: Settings,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or structlog.get_logger("hn_cli.fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=httpx.Timeout(settings.request_timeout, connect=settings.connect_timeout),
            headers={"User-Agent": settings.user_agent},
            limits=httpx.Limits(max_keepalive_connections=10),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def fetch(self, url: str) -> bytes:
        response = self.request(url)
        if response.url != url:
            self.logger.debug(
                "fetch_redirected", url=url, final_url=response.url, status=response.status_code
            )
        return response.content

    def request(self, url: str) -> FetchResponse:
        max_attempts = self.settings.retry_on_fail + 1
        last_error = NetworkError(url, f"Request to {url} was not attempted")
        for attempt in range(1, max_attempts + 1):
            if attempt > 1 and self.settings.retry_delay:
                time.sleep(min(self.settings.retry_delay * (attempt - 1), 5.0))
            try:
                response = self._client.get(url)
            except httpx.HTTPError as exc:
                self.logger.warning("fetch_error", url=url, attempt=attempt, error=str(exc))
                last_error = NetworkError(url, f"Request to {url} failed: {exc}")
                continue

            if self._is_failure(response):
                self.logger.warning(
                    "fetch_bad_status", url=url, attempt=attempt, status=response.status_code
                )
                last_error = NetworkError(
                    url,
                    f"Unexpected status {response.status_code} for {url}",
                    status_code=response.status_code,
                )
                if response.status_code not in RETRYABLE_STATUSES:
                    break
                continue

            self.logger.debug("fetch_ok", url=url, status=response.status_code)
            return FetchResponse(
                url=str(response.url),
                status_code=response.status_code,
                content=response.content,
            )

        raise last_error

    @staticmethod
    def _is_failure(response: httpx.Response) -> bool:
        return not 200 <= response.status_code < 300


__all__ = ["FetchResponse", "Fetcher", "RETRYABLE_STATUSES", "Transport"]
