"""DOM parsing helpers turning source pages into typed records."""

from __future__ import annotations

import re
import textwrap
from typing import Any

from selectolax.parser import HTMLParser, Node

from ..errors import ParseError, UnknownItemError, UnknownUserError
from .records import Comment, ItemDetail, ListingRecord, PageKind, Payload, UserProfile

NO_SUCH_ITEM = "No such item."
NO_SUCH_USER = "No such user."

_LEADING_INT = re.compile(r"\s*(\d+)")


def _decode(raw: bytes | str) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _classes(node: Node) -> list[str]:
    return (node.attributes.get("class") or "").split()


def _text(node: Node | None) -> str | None:
    if node is None:
        return None
    value = node.text(separator=" ", strip=True)
    return value or None


def _to_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _leading_int(value: str | None) -> int | None:
    if not value:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


class Parser:
    """Parse listing, item and user pages.

    Rows are parsed independently: a row missing optional fields still yields a
    record, a row that cannot be recognised at all is skipped, and only a page
    without any recognisable row is reported as a ``ParseError``.
    """

    def __init__(self, max_comments: int = 10, comment_width: int = 500) -> None:
        self.max_comments = max_comments
        self.comment_width = comment_width

    def extract(self, kind: PageKind, raw: bytes | str, subject: Any = None) -> Payload:
        if kind is PageKind.LISTING:
            return self.parse_listing(raw)
        if kind is PageKind.ITEM:
            return self.parse_item(raw, item_id=subject)
        if kind is PageKind.USER:
            return self.parse_user(raw, username=subject)
        raise ValueError(f"Unsupported page kind: {kind}")

    # ------------------------------------------------------------------
    # Listing pages
    # ------------------------------------------------------------------
    def parse_listing(self, raw: bytes | str) -> list[ListingRecord]:
        tree = HTMLParser(_decode(raw))
        records: list[ListingRecord] = []
        for row in tree.css("tr.athing"):
            if "comtr" in _classes(row):
                continue
            record = self._parse_row(row, rank=len(records) + 1)
            if record is not None:
                records.append(record)
        if not records:
            raise ParseError(PageKind.LISTING.value, "no item rows found")
        return records

    def _parse_row(self, row: Node, rank: int) -> ListingRecord | None:
        item_id = _to_int(row.attributes.get("id"))
        link = row.css_first("span.titleline > a")
        if item_id is None or link is None:
            return None
        title = link.text(strip=True)
        if not title:
            return None
        href = (link.attributes.get("href") or "").strip()
        # Relative links point back at the source site (Ask HN, some jobs)
        url = href if href.startswith(("http://", "https://")) else None

        score = comments = author = age = None
        subtext = self._subtext_for(row)
        if subtext is not None:
            score = _leading_int(_text(subtext.css_first("span.score")))
            author = _text(subtext.css_first("a.hnuser"))
            age = _text(subtext.css_first("span.age"))
            comments = self._comment_count(subtext)
        return ListingRecord(
            rank=rank,
            item_id=item_id,
            title=title,
            url=url,
            score=score,
            comments=comments,
            author=author,
            age=age,
        )

    @staticmethod
    def _subtext_for(row: Node) -> Node | None:
        sibling = row.next
        while sibling is not None and sibling.tag != "tr":
            sibling = sibling.next
        if sibling is None or "athing" in _classes(sibling):
            return None
        return sibling.css_first("td.subtext")

    @staticmethod
    def _comment_count(subtext: Node) -> int | None:
        for link in subtext.css("a"):
            label = link.text(strip=True).lower()
            if "comment" in label:
                return _leading_int(label)
            if label == "discuss":
                return 0
        return None

    # ------------------------------------------------------------------
    # Item pages
    # ------------------------------------------------------------------
    def parse_item(self, raw: bytes | str, item_id: int | None = None) -> ItemDetail:
        markup = _decode(raw)
        tree = HTMLParser(markup)
        block = tree.css_first("table.fatitem")
        if block is None:
            if NO_SUCH_ITEM in markup:
                raise UnknownItemError(item_id if item_id is not None else -1)
            raise ParseError(PageKind.ITEM.value, "missing item block")

        link = block.css_first("span.titleline > a")
        if link is None:
            raise ParseError(PageKind.ITEM.value, "missing title")
        row = block.css_first("tr.athing")
        parsed_id = _to_int(row.attributes.get("id")) if row is not None else None
        resolved_id = parsed_id if parsed_id is not None else item_id
        if resolved_id is None:
            raise ParseError(PageKind.ITEM.value, "missing item id")
        href = (link.attributes.get("href") or "").strip()

        comment_rows = tree.css("tr.athing.comtr")
        return ItemDetail(
            item_id=resolved_id,
            title=link.text(strip=True),
            url=href if href.startswith(("http://", "https://")) else None,
            score=_leading_int(_text(block.css_first("span.score"))),
            author=_text(block.css_first("a.hnuser")),
            age=_text(block.css_first("span.age")),
            text=_text(block.css_first("div.toptext")),
            comment_count=len(comment_rows),
            comments=tuple(self._top_level_comments(comment_rows)),
        )

    def _top_level_comments(self, rows: list[Node]) -> list[Comment]:
        comments: list[Comment] = []
        for row in rows:
            if len(comments) >= self.max_comments:
                break
            indent_cell = row.css_first("td.ind")
            indent = _to_int(indent_cell.attributes.get("indent")) if indent_cell is not None else 0
            if indent:
                continue
            body = _text(row.css_first("div.commtext"))
            if body is None:
                continue
            comments.append(
                Comment(
                    author=_text(row.css_first("a.hnuser")),
                    age=_text(row.css_first("span.age")),
                    text=textwrap.shorten(body, width=self.comment_width, placeholder=" ..."),
                )
            )
        return comments

    # ------------------------------------------------------------------
    # User pages
    # ------------------------------------------------------------------
    def parse_user(self, raw: bytes | str, username: str | None = None) -> UserProfile:
        markup = _decode(raw)
        tree = HTMLParser(markup)
        fields: dict[str, Node] = {}
        for row in tree.css("tr"):
            cells = row.css("td")
            if len(cells) != 2:
                continue
            label = cells[0].text(strip=True)
            if label.endswith(":"):
                fields.setdefault(label[:-1].lower(), cells[1])

        if "user" not in fields:
            if NO_SUCH_USER in markup:
                raise UnknownUserError(username or "")
            raise ParseError(PageKind.USER.value, "missing profile block")

        karma_text = _text(fields.get("karma")) or ""
        karma = _to_int(karma_text.replace(",", ""))
        if karma is None:
            raise ParseError(PageKind.USER.value, f"unreadable karma {karma_text!r}")
        return UserProfile(
            username=_text(fields["user"]) or (username or ""),
            karma=karma,
            created=_text(fields.get("created")) or "",
            about=_text(fields.get("about")),
        )


__all__ = ["NO_SUCH_ITEM", "NO_SUCH_USER", "Parser"]
