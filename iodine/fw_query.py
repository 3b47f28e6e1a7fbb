"""A small ring buffer remembering where forwarded DNS queries came from."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FW_QUERY_CACHE_SIZE = 16


@dataclass(frozen=True)
class ForwardedQuery:
    """A forwarded query's DNS id and the address that sent it."""

    addr: Any
    id: int


class ForwardedQueryCache:
    """Fixed-size cache; the oldest entry is overwritten when full."""

    def __init__(self, size: int = FW_QUERY_CACHE_SIZE) -> None:
        if size < 1:
            raise ValueError("cache size must be positive")
        self._entries: list[ForwardedQuery | None] = [None] * size
        self._index = 0

    def put(self, query: ForwardedQuery) -> None:
        """Store query in the next slot, replacing whatever was there."""
        self._entries[self._index] = query
        self._index = (self._index + 1) % len(self._entries)

    def get(self, query_id: int) -> ForwardedQuery | None:
        """Return the entry in the lowest slot with this id, or None."""
        return next(
            (entry for entry in self._entries
             if entry is not None and entry.id == query_id),
            None,
        )