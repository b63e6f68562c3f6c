"""Line-oriented text encoding for cache entries.

Format version 1, one entry per file::

    hn-cache/1<TAB><kind><TAB><created><TAB><ttl><TAB><line count>
    <tag><TAB><field><TAB><field>...

``kind`` is ``listing``, ``item`` or ``user``; ``created`` is a unix
timestamp and ``ttl`` whole seconds. Record lines start with a tag:

* ``L`` listing row: rank, item_id, title, url, score, comments, author, age
* ``I`` item: item_id, title, url, score, author, age, text, comment_count
* ``C`` comment (follows ``I``): author, age, text
* ``U`` user: username, karma, created, about

Inside a field ``\\`` is written ``\\\\`` and tab, newline and carriage
return are written ``\\t``, ``\\n`` and ``\\r``. An absent optional field is
the token ``\\N``. The file always ends with a newline; anything that does not
match this layout raises ``CacheCorruption``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Sequence

from ..errors import CacheCorruption
from .records import Comment, ItemDetail, ListingRecord, PageKind, Payload, UserProfile

MAGIC = "hn-cache"
VERSION = 1
DELIMITER = "\t"
NULL = "\\N"

_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "t": "\t", "n": "\n", "r": "\r"}

_FIELD_COUNTS = {"L": 8, "I": 8, "C": 3, "U": 4}


@dataclass(frozen=True, slots=True)
class CacheEntry:
    kind: PageKind
    created: float
    ttl: int
    payload: Payload

    def is_fresh(self, now: float) -> bool:
        return now - self.created < self.ttl


def escape_field(value: object | None) -> str:
    if value is None:
        return NULL
    return "".join(_ESCAPES.get(ch, ch) for ch in str(value))


def unescape_field(token: str) -> str | None:
    if token == NULL:
        return None
    out: list[str] = []
    chars = iter(token)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt not in _UNESCAPES:
            raise CacheCorruption(f"Bad escape sequence in field {token!r}")
        out.append(_UNESCAPES[nxt])
    return "".join(out)


def kind_of(payload: Payload) -> PageKind:
    if isinstance(payload, ItemDetail):
        return PageKind.ITEM
    if isinstance(payload, UserProfile):
        return PageKind.USER
    if isinstance(payload, list) and all(isinstance(r, ListingRecord) for r in payload):
        return PageKind.LISTING
    raise TypeError(f"Cannot encode payload of type {type(payload).__name__}")


# ----------------------------------------------------------------------
# Encoding
# ----------------------------------------------------------------------
def _line(tag: str, values: Sequence[object | None]) -> str:
    return DELIMITER.join([tag, *(escape_field(value) for value in values)])


def _listing_lines(records: list[ListingRecord]) -> list[str]:
    return [
        _line(
            "L",
            (r.rank, r.item_id, r.title, r.url, r.score, r.comments, r.author, r.age),
        )
        for r in records
    ]


def _item_lines(item: ItemDetail) -> list[str]:
    lines = [
        _line(
            "I",
            (
                item.item_id,
                item.title,
                item.url,
                item.score,
                item.author,
                item.age,
                item.text,
                item.comment_count,
            ),
        )
    ]
    lines.extend(_line("C", (c.author, c.age, c.text)) for c in item.comments)
    return lines


def _user_lines(user: UserProfile) -> list[str]:
    return [_line("U", (user.username, user.karma, user.created, user.about))]


def encode(payload: Payload, created: float, ttl: int) -> str:
    kind = kind_of(payload)
    if kind is PageKind.LISTING:
        lines = _listing_lines(payload)  # type: ignore[arg-type]
    elif kind is PageKind.ITEM:
        lines = _item_lines(payload)  # type: ignore[arg-type]
    else:
        lines = _user_lines(payload)  # type: ignore[arg-type]
    header = DELIMITER.join(
        [f"{MAGIC}/{VERSION}", kind.value, repr(float(created)), str(int(ttl)), str(len(lines))]
    )
    return "\n".join([header, *lines]) + "\n"


# ----------------------------------------------------------------------
# Decoding
# ----------------------------------------------------------------------
def _int(token: str | None, optional: bool = False) -> int | None:
    if token is None:
        if optional:
            return None
        raise CacheCorruption("Missing required integer field")
    try:
        return int(token)
    except ValueError as exc:
        raise CacheCorruption(f"Invalid integer field {token!r}") from exc


def _str(token: str | None) -> str:
    if token is None:
        raise CacheCorruption("Missing required text field")
    return token


def _split(line: str) -> tuple[str, list[str | None]]:
    tag, _, rest = line.partition(DELIMITER)
    expected = _FIELD_COUNTS.get(tag)
    if expected is None:
        raise CacheCorruption(f"Unknown record tag {tag!r}")
    tokens = rest.split(DELIMITER)
    if len(tokens) != expected:
        raise CacheCorruption(f"Record {tag} expects {expected} fields, got {len(tokens)}")
    return tag, [unescape_field(token) for token in tokens]


def _decode_listing(rows: list[tuple[str, list[str | None]]]) -> list[ListingRecord]:
    records: list[ListingRecord] = []
    for tag, f in rows:
        if tag != "L":
            raise CacheCorruption(f"Unexpected {tag} record in listing entry")
        records.append(
            ListingRecord(
                rank=_int(f[0]),
                item_id=_int(f[1]),
                title=_str(f[2]),
                url=f[3],
                score=_int(f[4], optional=True),
                comments=_int(f[5], optional=True),
                author=f[6],
                age=f[7],
            )
        )
    if not records:
        raise CacheCorruption("Listing entry without records")
    if [r.rank for r in records] != list(range(1, len(records) + 1)):
        raise CacheCorruption("Listing ranks are not contiguous")
    return records


def _decode_item(rows: list[tuple[str, list[str | None]]]) -> ItemDetail:
    if not rows or rows[0][0] != "I":
        raise CacheCorruption("Item entry must start with an I record")
    f = rows[0][1]
    comments: list[Comment] = []
    for tag, c in rows[1:]:
        if tag != "C":
            raise CacheCorruption(f"Unexpected {tag} record in item entry")
        comments.append(Comment(author=c[0], age=c[1], text=_str(c[2])))
    return ItemDetail(
        item_id=_int(f[0]),
        title=_str(f[1]),
        url=f[2],
        score=_int(f[3], optional=True),
        author=f[4],
        age=f[5],
        text=f[6],
        comment_count=_int(f[7]),
        comments=tuple(comments),
    )


def _decode_user(rows: list[tuple[str, list[str | None]]]) -> UserProfile:
    if len(rows) != 1 or rows[0][0] != "U":
        raise CacheCorruption("User entry must hold exactly one U record")
    f = rows[0][1]
    return UserProfile(username=_str(f[0]), karma=_int(f[1]), created=_str(f[2]), about=f[3])


_DECODERS: dict[PageKind, Callable[[list[tuple[str, list[str | None]]]], Payload]] = {
    PageKind.LISTING: _decode_listing,
    PageKind.ITEM: _decode_item,
    PageKind.USER: _decode_user,
}


def decode(text: str) -> CacheEntry:
    if not text.endswith("\n"):
        raise CacheCorruption("Entry is truncated (missing final newline)")
    header, *lines = text[:-1].split("\n")
    parts = header.split(DELIMITER)
    if len(parts) != 5:
        raise CacheCorruption("Malformed header")
    signature, kind_value, created_text, ttl_text, count_text = parts
    if signature != f"{MAGIC}/{VERSION}":
        raise CacheCorruption(f"Unsupported cache format {signature!r}")
    try:
        kind = PageKind(kind_value)
        created = float(created_text)
        ttl = int(ttl_text)
        count = int(count_text)
    except ValueError as exc:
        raise CacheCorruption(f"Malformed header: {header!r}") from exc
    if not math.isfinite(created):
        raise CacheCorruption(f"Invalid creation time {created_text!r}")
    if ttl < 0 or count != len(lines):
        raise CacheCorruption("Header does not match entry body")
    rows = [_split(line) for line in lines]
    return CacheEntry(kind=kind, created=created, ttl=ttl, payload=_DECODERS[kind](rows))


__all__ = [
    "CacheEntry",
    "DELIMITER",
    "MAGIC",
    "NULL",
    "VERSION",
    "decode",
    "encode",
    "escape_field",
    "kind_of",
    "unescape_field",
]
