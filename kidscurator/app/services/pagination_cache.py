from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from time import monotonic


@dataclass(frozen=True)
class PageState:
    query_key: str
    continuation_token: str
    expected_page_number: int = 2


@dataclass(frozen=True)
class _CacheEntry:
    state: PageState
    stored_at: float


class ContinuationCache:
    """
    Maps a query key to the latest continuation token seen for it.

    With no bounds configured entries live for the lifetime of the owner.
    `max_entries` evicts the least recently written key; `ttl_seconds` drops
    entries older than the window on read. Concurrent writers to the same
    key are last-write-wins.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._max_entries = max(1, max_entries) if max_entries is not None else None
        self._ttl_seconds = max(0.0, ttl_seconds) if ttl_seconds is not None else None
        self._clock = clock
        self._lock = Lock()
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, query_key: str) -> str | None:
        state = self.get_state(query_key)
        if state is None:
            return None
        return state.continuation_token

    def get_state(self, query_key: str) -> PageState | None:
        with self._lock:
            entry = self._entries.get(query_key)
            if entry is None:
                return None
            if self._is_expired(entry):
                del self._entries[query_key]
                return None
            return entry.state

    def set(self, query_key: str, token: str, *, expected_page_number: int = 2) -> PageState:
        state = PageState(
            query_key=query_key,
            continuation_token=token,
            expected_page_number=max(1, expected_page_number),
        )
        with self._lock:
            self._entries.pop(query_key, None)
            self._entries[query_key] = _CacheEntry(state=state, stored_at=self._clock())
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)
        return state

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _is_expired(self, entry: _CacheEntry) -> bool:
        if self._ttl_seconds is None:
            return False
        return (self._clock() - entry.stored_at) > self._ttl_seconds
