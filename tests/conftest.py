"""Pytest configuration providing fake transports, page builders and shared fixtures."""

from __future__ import annotations

import html
from pathlib import Path
from threading import Event, Lock
from typing import Any, Callable, Iterable

import pytest

from hn_cli.config import ConfigLocator, ConfigRepository, Settings
from hn_cli.engine import CacheStore, ThreadPoolManager
from hn_cli.errors import NetworkError
from hn_cli.orchestrator import Orchestrator

BASE_URL = "https://news.ycombinator.com"


class FakeClock:
    """Manually advanced clock used in place of ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """In-memory transport recording every fetched URL.

    ``responses`` maps URLs to bytes, or to an exception instance that will be
    raised. ``gates`` maps URLs to events the fetch waits on before answering,
    which lets tests control completion order across worker threads.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.gates: dict[str, Event] = {}
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.closed = False
        self._lock = Lock()

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def fetch(self, url: str) -> bytes:
        with self._lock:
            self.calls.append(url)
        gate = self.gates.get(url)
        if gate is not None and not gate.wait(timeout=5):
            raise NetworkError(url, "gate timed out")
        try:
            if url not in self.responses:
                raise NetworkError(url, f"Unexpected status 404 for {url}", status_code=404)
            payload = self.responses[url]
            if isinstance(payload, Exception):
                raise payload
            return payload.encode("utf-8") if isinstance(payload, str) else payload
        finally:
            with self._lock:
                self.completed.append(url)

    def close(self) -> None:
        self.closed = True


def _story_rows(story: dict[str, Any]) -> str:
    item_id = story["id"]
    title = html.escape(story.get("title", f"Story {item_id}"))
    href = html.escape(story.get("href", f"https://example.com/{item_id}"))
    head = (
        f'<tr class="athing submission" id="{item_id}">'
        f'<td align="right" valign="top" class="title"><span class="rank">{story.get("rank", "")}.</span></td>'
        f'<td class="title"><span class="titleline"><a href="{href}">{title}</a></span></td>'
        "</tr>\n"
    )
    if story.get("job"):
        subline = f'<span class="age"><a href="item?id={item_id}">{story.get("age", "5 hours ago")}</a></span>'
    else:
        parts = []
        if story.get("score", 1) is not None:
            parts.append(f'<span class="score" id="score_{item_id}">{story.get("score", 1)} points</span> by ')
        author = story.get("author", "alice")
        if author:
            parts.append(f'<a href="user?id={author}" class="hnuser">{author}</a> ')
        parts.append(
            f'<span class="age" title="2024-01-01T00:00:00"><a href="item?id={item_id}">'
            f'{story.get("age", "3 hours ago")}</a></span> '
        )
        parts.append(f'| <a href="hide?id={item_id}&amp;goto=news">hide</a> | ')
        comments = story.get("comments", 0)
        label = "discuss" if comments == 0 else f"{comments}&nbsp;comments"
        parts.append(f'<a href="item?id={item_id}">{label}</a>')
        subline = f'<span class="subline">{"".join(parts)}</span>'
    return (
        head
        + f'<tr><td colspan="2"></td><td class="subtext">{subline}</td></tr>\n'
        + '<tr class="spacer" style="height:5px"></tr>\n'
    )


def render_listing(stories: Iterable[dict[str, Any]], extra_rows: str = "") -> str:
    rows = "".join(_story_rows(story) for story in stories)
    return (
        "<html><head><title>Hacker News</title></head><body><center>"
        '<table id="hnmain"><tr><td><table border="0" class="itemlist">'
        f"{rows}{extra_rows}"
        "</table></td></tr></table></center></body></html>"
    )


def render_item(
    item_id: int = 123,
    title: str = "An item",
    href: str = "https://example.com/a",
    text: str | None = None,
    comments: Iterable[tuple[str | None, int, str]] = (),
) -> str:
    comment_rows = []
    for index, (author, indent, body) in enumerate(comments, start=1):
        author_html = f'<a href="user?id={author}" class="hnuser">{author}</a> ' if author else ""
        comment_rows.append(
            f'<tr class="athing comtr" id="{item_id * 10 + index}"><td><table border="0"><tr>'
            f'<td class="ind" indent="{indent}"><img src="s.gif" height="1" width="{indent * 40}"></td>'
            '<td class="default"><div><span class="comhead">'
            f'{author_html}<span class="age"><a href="item?id=1">{index} hours ago</a></span>'
            "</span></div><br>"
            f'<div class="comment"><div class="commtext c00">{html.escape(body)}</div></div>'
            "</td></tr></table></td></tr>"
        )
    toptext = f'<tr><td colspan="2"></td><td><div class="toptext">{html.escape(text)}</div></td></tr>' if text else ""
    return (
        '<html><body><table id="hnmain"><tr><td>'
        '<table class="fatitem" border="0">'
        f'<tr class="athing submission" id="{item_id}"><td class="title">'
        f'<span class="titleline"><a href="{html.escape(href)}">{html.escape(title)}</a></span></td></tr>'
        '<tr><td colspan="2"></td><td class="subtext"><span class="subline">'
        '<span class="score">42 points</span> by <a href="user?id=op" class="hnuser">op</a> '
        '<span class="age"><a href="item?id=1">1 hour ago</a></span></span></td></tr>'
        f"{toptext}</table>"
        f'<table class="comment-tree" border="0">{"".join(comment_rows)}</table>'
        "</td></tr></table></body></html>"
    )


def render_user(username: str = "pg", karma: str = "157236", about: str | None = "Bug fixer.") -> str:
    about_row = f'<tr><td valign="top">about:</td><td style="overflow:hidden;">{about}</td></tr>' if about else ""
    return (
        '<html><body><table id="hnmain"><tr><td><table border="0">'
        f'<tr class="athing"><td valign="top">user:</td><td timestamp="1160418092">'
        f'<a href="user?id={username}" class="hnuser">{username}</a></td></tr>'
        '<tr><td valign="top">created:</td><td><a href="front?day=2006-10-09">October 9, 2006</a></td></tr>'
        f'<tr><td valign="top">karma:</td><td>{karma}</td></tr>'
        f"{about_row}"
        "</table></td></tr></table></body></html>"
    )


def make_stories(start_id: int, count: int, **overrides: Any) -> list[dict[str, Any]]:
    return [{"id": start_id + offset, **overrides} for offset in range(count)]


@pytest.fixture
def listing_page() -> Callable[..., str]:
    return render_listing


@pytest.fixture
def item_page() -> Callable[..., str]:
    return render_item


@pytest.fixture
def user_page() -> Callable[..., str]:
    return render_user


@pytest.fixture
def stories() -> Callable[..., list[dict[str, Any]]]:
    return make_stories


@pytest.fixture
def settings() -> Settings:
    return Settings(base_url=BASE_URL, retry_delay=0, max_workers=4, max_pages=5)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store(tmp_path: Path, clock: FakeClock) -> CacheStore:
    return CacheStore(tmp_path / "cache", clock=clock)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def launched() -> list[str]:
    return []


@pytest.fixture
def orchestrator(
    settings: Settings, cache_store: CacheStore, transport: FakeTransport, launched: list[str]
) -> Iterable[Orchestrator]:
    orch = Orchestrator(
        settings=settings,
        cache=cache_store,
        transport=transport,
        thread_pool=ThreadPoolManager(settings.max_workers),
        launcher=launched.append,
    )
    yield orch
    orch.close()


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("HN_CLI_HOME", str(tmp_path / "home"))
    return ConfigRepository(ConfigLocator())
