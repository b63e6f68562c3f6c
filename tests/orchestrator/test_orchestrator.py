from __future__ import annotations

import pytest

from conftest import BASE_URL, render_item, render_listing, render_user
from hn_cli.config import Category
from hn_cli.errors import (
    BrowserLaunchError,
    FetchError,
    FetchReason,
    NetworkError,
    RankOutOfRangeError,
    UnknownItemError,
    UnknownUserError,
)
from hn_cli.orchestrator import Orchestrator, item_key, listing_key, user_key

TOP_URL = f"{BASE_URL}/news"


def test_cache_keys() -> None:
    assert listing_key(Category.JOB, 2) == "listing-job-p2"
    assert item_key(7) == "item-7"
    assert user_key("pg") == "user-pg"


def test_fetch_page_parses_and_caches(orchestrator: Orchestrator, transport, stories, cache_store) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 3))
    records = orchestrator.fetch_page(Category.TOP)
    assert [r.item_id for r in records] == [1, 2, 3]
    assert cache_store.get_fresh(listing_key(Category.TOP, 1)) == records
    assert orchestrator.last_listing() == records
    assert orchestrator.last_category is Category.TOP


def test_cache_hit_skips_transport(orchestrator: Orchestrator, transport, stories) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 3))
    first = orchestrator.fetch_page(Category.TOP)
    second = orchestrator.fetch_page(Category.TOP)
    assert first == second
    assert transport.call_count == 1


def test_cache_hit_still_updates_last_listing(orchestrator: Orchestrator, transport, stories) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 2))
    transport.responses[f"{BASE_URL}/newest"] = render_listing(stories(50, 1))
    top = orchestrator.fetch_page(Category.TOP)
    orchestrator.fetch_page(Category.NEW)
    assert orchestrator.fetch_page(Category.TOP) == top
    assert orchestrator.last_listing() == top
    assert transport.call_count == 2


def test_stale_entry_triggers_refetch(orchestrator: Orchestrator, transport, stories, clock, settings) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 2))
    orchestrator.fetch_page(Category.TOP)
    clock.advance(settings.listing_ttl)
    transport.responses[TOP_URL] = render_listing(stories(10, 2))
    records = orchestrator.fetch_page(Category.TOP)
    assert [r.item_id for r in records] == [10, 11]
    assert transport.call_count == 2


def test_refresh_bypasses_cache(orchestrator: Orchestrator, transport, stories) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 2))
    orchestrator.fetch_page(Category.TOP)
    transport.responses[TOP_URL] = render_listing(stories(20, 1))
    records = orchestrator.fetch_page(Category.TOP, refresh=True)
    assert [r.item_id for r in records] == [20]
    assert transport.call_count == 2


def test_corrupted_cache_is_repaired(orchestrator: Orchestrator, transport, stories, cache_store) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 2))
    orchestrator.fetch_page(Category.TOP)
    cache_store.path_for(listing_key(Category.TOP, 1)).write_text("half a head", encoding="utf-8")
    records = orchestrator.fetch_page(Category.TOP)
    assert len(records) == 2
    assert transport.call_count == 2
    assert cache_store.get_fresh(listing_key(Category.TOP, 1)) == records


def test_network_failure_is_fetch_error(orchestrator: Orchestrator, transport, cache_store) -> None:
    transport.responses[TOP_URL] = NetworkError(TOP_URL, "timed out")
    with pytest.raises(FetchError) as excinfo:
        orchestrator.fetch_page(Category.TOP)
    assert excinfo.value.reason is FetchReason.NETWORK
    assert excinfo.value.page == 1
    assert isinstance(excinfo.value.cause, NetworkError)
    assert cache_store.read(listing_key(Category.TOP, 1)) is None
    assert orchestrator.last_listing() is None


def test_parse_failure_is_fetch_error(orchestrator: Orchestrator, transport, cache_store) -> None:
    transport.responses[TOP_URL] = "<html><body>Sorry.</body></html>"
    with pytest.raises(FetchError) as excinfo:
        orchestrator.fetch_page(Category.TOP)
    assert excinfo.value.reason is FetchReason.PARSE
    assert cache_store.read(listing_key(Category.TOP, 1)) is None


def test_zero_ttl_disables_listing_cache(orchestrator: Orchestrator, transport, stories, cache_store) -> None:
    orchestrator.settings = orchestrator.settings.model_copy(update={"listing_ttl": 0})
    transport.responses[TOP_URL] = render_listing(stories(1, 1))
    orchestrator.fetch_page(Category.TOP)
    orchestrator.fetch_page(Category.TOP)
    assert transport.call_count == 2
    assert cache_store.read(listing_key(Category.TOP, 1)) is None


def test_page_number_validation(orchestrator: Orchestrator) -> None:
    with pytest.raises(ValueError):
        orchestrator.fetch_page(Category.TOP, page=0)


def test_fetch_item_is_cached(orchestrator: Orchestrator, transport) -> None:
    transport.responses[f"{BASE_URL}/item?id=123"] = render_item(comments=[("bob", 0, "hi")])
    detail = orchestrator.fetch_item(123)
    assert detail.comments[0].author == "bob"
    assert orchestrator.fetch_item(123) == detail
    assert transport.call_count == 1


def test_fetch_unknown_item(orchestrator: Orchestrator, transport) -> None:
    transport.responses[f"{BASE_URL}/item?id=9"] = "No such item."
    with pytest.raises(UnknownItemError):
        orchestrator.fetch_item(9)


def test_fetch_user_and_refresh(orchestrator: Orchestrator, transport) -> None:
    url = f"{BASE_URL}/user?id=pg"
    transport.responses[url] = render_user(karma="10")
    assert orchestrator.fetch_user("pg").karma == 10
    transport.responses[url] = render_user(karma="11")
    assert orchestrator.fetch_user("pg").karma == 10
    assert orchestrator.fetch_user("pg", refresh=True).karma == 11
    assert transport.call_count == 2


def test_fetch_unknown_user(orchestrator: Orchestrator, transport) -> None:
    transport.responses[f"{BASE_URL}/user?id=ghost"] = "No such user."
    with pytest.raises(UnknownUserError):
        orchestrator.fetch_user("ghost")


def test_resolve_uses_last_listing(orchestrator: Orchestrator, transport, stories) -> None:
    rows = stories(120, 4)
    rows[2]["href"] = "item?id=122"
    transport.responses[TOP_URL] = render_listing(rows)
    orchestrator.fetch_page(Category.TOP)
    assert orchestrator.resolve(3) == f"{BASE_URL}/item?id=122"
    assert orchestrator.resolve(4) == "https://example.com/123"
    with pytest.raises(RankOutOfRangeError):
        orchestrator.resolve(5)


def test_open_rank_launches_browser(orchestrator: Orchestrator, transport, stories, launched) -> None:
    transport.responses[TOP_URL] = render_listing(stories(1, 2))
    orchestrator.fetch_page(Category.TOP)
    assert orchestrator.open_rank(2) == "https://example.com/2"
    assert launched == ["https://example.com/2"]


def test_open_rank_without_listing(orchestrator: Orchestrator, launched) -> None:
    with pytest.raises(RankOutOfRangeError) as excinfo:
        orchestrator.open_rank(1)
    assert "No listing loaded" in str(excinfo.value)
    assert launched == []


def test_open_rank_launcher_failure(orchestrator: Orchestrator, transport, stories) -> None:
    def broken(url: str) -> None:
        raise OSError("no display")

    orchestrator.launcher = broken
    transport.responses[TOP_URL] = render_listing(stories(1, 1))
    orchestrator.fetch_page(Category.TOP)
    with pytest.raises(BrowserLaunchError) as excinfo:
        orchestrator.open_rank(1)
    assert excinfo.value.url == "https://example.com/1"


def test_open_rank_launcher_exit_status(orchestrator: Orchestrator, transport, stories) -> None:
    orchestrator.launcher = lambda url: 1
    transport.responses[TOP_URL] = render_listing(stories(1, 1))
    orchestrator.fetch_page(Category.TOP)
    with pytest.raises(BrowserLaunchError) as excinfo:
        orchestrator.open_rank(1)
    assert "status 1" in str(excinfo.value)


def test_open_rank_accepts_zero_status(orchestrator: Orchestrator, transport, stories) -> None:
    orchestrator.launcher = lambda url: 0
    transport.responses[TOP_URL] = render_listing(stories(1, 1))
    orchestrator.fetch_page(Category.TOP)
    assert orchestrator.open_rank(1) == "https://example.com/1"


def test_close_releases_transport(orchestrator: Orchestrator, transport) -> None:
    orchestrator.close()
    assert transport.closed is True
