"""Map a rank of the last listing to the URL it stands for."""

from __future__ import annotations

from typing import Callable, Sequence

from .engine.records import ListingRecord
from .errors import RankOutOfRangeError

ListingSource = Callable[[], "Sequence[ListingRecord] | None"]


class RankResolver:
    """Read-only view over the orchestrator's last listing."""

    def __init__(self, source: ListingSource, base_url: str) -> None:
        self._source = source
        self.base_url = base_url.rstrip("/")

    def record_at(self, rank: int) -> ListingRecord:
        listing = self._source() or ()
        if not 1 <= rank <= len(listing):
            raise RankOutOfRangeError(rank, len(listing))
        return listing[rank - 1]

    def discussion_url(self, item_id: int) -> str:
        return f"{self.base_url}/item?id={item_id}"

    def resolve(self, rank: int) -> str:
        record = self.record_at(rank)
        return record.url or self.discussion_url(record.item_id)


__all__ = ["RankResolver"]
