"""Typer CLI entrypoint for hn-cli."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence
from urllib.parse import urlparse

import typer
from rich import box
from rich.console import Console
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

from .config import Category, ConfigRepository, Settings
from .engine import CacheStore, Fetcher, ItemDetail, ListingRecord, ThreadPoolManager, UserProfile
from .errors import HNError
from .logging_conf import APP_LOG, configure_logging, tail_log
from .orchestrator import MultiPageResult, Orchestrator

app = typer.Typer(
    help="Browse Hacker News from the terminal.",
    invoke_without_command=True,
    rich_markup_mode=None,
)
cache_app = typer.Typer(name="cache", help="Inspect or clear the page cache.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Show log files.", no_args_is_help=True)
app.add_typer(cache_app, name="cache")
app.add_typer(log_app, name="log")

console = Console()

_LISTING_ALIASES = {
    Category.TOP: "t",
    Category.NEW: "n",
    Category.BEST: "b",
    Category.ASK: "a",
    Category.SHOW: "s",
    Category.JOB: "j",
}
_LISTING_LABELS = {
    Category.TOP: "top stories",
    Category.NEW: "new stories",
    Category.BEST: "best stories",
    Category.ASK: "Ask HN stories",
    Category.SHOW: "Show HN stories",
    Category.JOB: "job postings",
}


@dataclass
class AppState:
    repository: ConfigRepository
    settings: Settings
    cache: CacheStore
    orchestrator: Orchestrator


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    settings = repository.load()
    configure_logging(repository.locator.logs_dir, verbose=verbose)
    cache = CacheStore(repository.locator.cache_dir)
    orchestrator = Orchestrator(
        settings=settings,
        cache=cache,
        transport=Fetcher(settings),
        thread_pool=ThreadPoolManager(settings.max_workers),
        launcher=typer.launch,
    )
    return AppState(repository=repository, settings=settings, cache=cache, orchestrator=orchestrator)


def _get_state(ctx: typer.Context) -> AppState:
    root = ctx.find_root()
    state = root.obj
    if state is None:
        state = build_state(verbose=False)
        root.obj = state
        root.call_on_close(state.orchestrator.close)
    return state


@contextmanager
def _report_errors() -> Iterator[None]:
    try:
        yield
    except HNError as exc:
        console.print(str(exc), style="red", markup=False)
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        console.print(str(exc), style="red", markup=False)
        raise typer.Exit(code=2) from exc


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------
def _domain(url: str) -> str:
    return urlparse(url).netloc or url


def _render_listing(records: Sequence[ListingRecord]) -> None:
    for record in records:
        headline = Text.assemble(
            (f"{record.rank}. ", "bright_black"),
            (record.title, "bold bright_white"),
        )
        if record.url:
            headline.append(f" ({_domain(record.url)})", style="bright_black")
        console.print(headline)

        meta: list[Text] = []
        if record.score is not None:
            meta.append(Text(f"{record.score} points", style="yellow"))
        if record.author:
            meta.append(Text(f"by {record.author}", style="cyan"))
        if record.age:
            meta.append(Text(record.age, style="bright_black"))
        if record.comments is not None:
            meta.append(Text(f"{record.comments} comments", style="green"))
        if meta:
            console.print(Padding(Text(" | ").join(meta), (0, 0, 0, 3)))
        console.print()


def _render_item(detail: ItemDetail) -> None:
    console.print(Text(detail.title, style="bold bright_white"))
    if detail.url:
        console.print(Text.assemble(("Link: ", "bright_cyan"), (detail.url, "cyan underline")))
    meta = [
        part
        for part in (
            f"{detail.score} points" if detail.score is not None else None,
            f"by {detail.author}" if detail.author else None,
            detail.age,
        )
        if part
    ]
    if meta:
        console.print(Text(" | ".join(meta), style="bright_black"))
    console.print()
    if detail.text:
        console.print(Text(detail.text))
        console.print()

    if not detail.comments:
        console.print("No comments yet", style="bright_black")
        return
    console.print(
        Text.assemble(
            ("Comments: ", "bold bright_cyan"),
            (f"({detail.comment_count} total)", "bright_black"),
        )
    )
    console.print()
    for comment in detail.comments:
        console.print(
            Text.assemble(
                ("● ", "bright_black"),
                (comment.author or "[deleted]", "cyan"),
                (f" {comment.age}" if comment.age else "", "bright_black"),
            )
        )
        console.print(Padding(Text(comment.text), (0, 0, 1, 2)))
    remaining = detail.comment_count - len(detail.comments)
    if remaining > 0:
        console.print(f"... {remaining} more comments", style="bright_black")


def _render_user(profile: UserProfile) -> None:
    table = Table(title=f"Profile · {profile.username}", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("Field", style="bright_yellow", no_wrap=True)
    table.add_column("Value", style="bright_white", overflow="fold")
    table.add_row("Username", profile.username)
    table.add_row("Created", profile.created or "-")
    table.add_row("Karma", str(profile.karma))
    if profile.about:
        table.add_row("About", profile.about)
    console.print(table)


def _render_failures(result: MultiPageResult) -> None:
    for page, error in result.failures.items():
        console.print(f"Page {page} failed: {error}", style="yellow", markup=False)


def _load_listing(
    state: AppState, category: Category, page: int, pages: int, refresh: bool = False
) -> None:
    if pages > 1:
        _render_failures(state.orchestrator.fetch_pages(category, pages, refresh=refresh))
    else:
        state.orchestrator.fetch_page(category, page, refresh=refresh)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    state = build_state(verbose=verbose)
    ctx.obj = state
    ctx.call_on_close(state.orchestrator.close)
    if ctx.invoked_subcommand is None:
        with _report_errors():
            records = state.orchestrator.fetch_page(Category.TOP, 1)
        _render_listing(records)


def _listing_command(category: Category):
    def command(
        ctx: typer.Context,
        page: int = typer.Option(1, "--page", "-p", min=1, help="Page number to show."),
        refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
    ) -> None:
        state = _get_state(ctx)
        with _report_errors():
            records = state.orchestrator.fetch_page(category, page, refresh=refresh)
        _render_listing(records)

    command.__name__ = f"list_{category.value}"
    return command


for _category, _alias in _LISTING_ALIASES.items():
    _command = _listing_command(_category)
    app.command(_category.value, help=f"List {_LISTING_LABELS[_category]}.")(_command)
    app.command(_alias, hidden=True)(_command)


def multi(
    ctx: typer.Context,
    category: Category = typer.Option(
        Category.TOP, "--category", "-c", case_sensitive=False, help="Listing to fetch."
    ),
    num_pages: int = typer.Option(3, "--num-pages", "-n", min=1, help="Pages fetched in parallel."),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    """Fetch several pages at once and show them as one ranked listing."""

    state = _get_state(ctx)
    with _report_errors():
        result = state.orchestrator.fetch_pages(category, num_pages, refresh=refresh)
    _render_listing(result.records)
    _render_failures(result)
    console.print(
        Text.assemble(
            ("✓ ", "green"),
            "Fetched ",
            (str(len(result.records)), "bold bright_white"),
            " stories from ",
            (str(len(result.succeeded_pages)), "bold bright_white"),
            f" of {num_pages} pages in parallel",
        )
    )


def details(
    ctx: typer.Context,
    target: int = typer.Argument(..., help="Item id, or a rank when --rank is given."),
    rank: bool = typer.Option(False, "--rank", "-r", help="Treat TARGET as a listing rank."),
    category: Category = typer.Option(Category.TOP, "--category", "-c", case_sensitive=False),
    page: int = typer.Option(1, "--page", "-p", min=1),
    pages: int = typer.Option(1, "--pages", "-n", min=1, help="Rank within the first N pages."),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    """Show an item with its top comments."""

    state = _get_state(ctx)
    with _report_errors():
        item_id = target
        if rank:
            _load_listing(state, category, page, pages)
            item_id = state.orchestrator.resolver.record_at(target).item_id
        detail = state.orchestrator.fetch_item(item_id, refresh=refresh)
    _render_item(detail)


def open_item(
    ctx: typer.Context,
    rank: int = typer.Argument(..., help="Rank of the story in the listing."),
    category: Category = typer.Option(Category.TOP, "--category", "-c", case_sensitive=False),
    page: int = typer.Option(1, "--page", "-p", min=1),
    pages: int = typer.Option(1, "--pages", "-n", min=1, help="Rank within the first N pages."),
) -> None:
    """Open a story (or its discussion page) in the browser."""

    state = _get_state(ctx)
    with _report_errors():
        _load_listing(state, category, page, pages)
        record = state.orchestrator.resolver.record_at(rank)
        url = state.orchestrator.open_rank(rank)
    label = "Opened:" if record.url else "Opened discussion:"
    console.print(Text.assemble((f"{label} ", "green"), url))


def user(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Account name."),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the cache."),
) -> None:
    """Show a user's profile."""

    state = _get_state(ctx)
    with _report_errors():
        profile = state.orchestrator.fetch_user(username, refresh=refresh)
    _render_user(profile)


for _name, _alias, _func in (
    ("multi", "m", multi),
    ("details", "d", details),
    ("open", "o", open_item),
    ("user", "u", user),
):
    app.command(_name)(_func)
    app.command(_alias, hidden=True)(_func)


@cache_app.command("clear", help="Remove every cached page.")
def cache_clear(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    with _report_errors():
        removed = state.cache.clear()
    console.print(f"Removed {removed} cache entries.", style="green")


@cache_app.command("path", help="Print the cache directory.")
def cache_path(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(str(state.cache.directory), markup=False)


@log_app.command("show", help="Print the last lines of the application log.")
def log_show(
    ctx: typer.Context,
    tail: int = typer.Option(100, "--tail", min=1, help="Number of lines to show."),
) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.logs_dir / APP_LOG
    lines = tail_log(path, tail)
    if not lines:
        console.print("Log is empty.", style="dim")
        return
    for line in lines:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
