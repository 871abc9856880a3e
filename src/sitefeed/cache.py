# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-process feed caching: four LRU stores with per-store TTL.

Pure Python module, no network dependencies.

Stores (keyed by normalized URL):
- documents: raw page markup                (50 entries, 15 min)
- classifications: ClassificationResult     (200 entries, 60 min)
- feeds: serialized feed text               (100 entries, 30 min)
- errors: negative cache of failure reasons (100 entries, 30 min, no refresh on read)

Reads of the first three stores push the entry's expiry forward; an error
entry expires on schedule however often it is read.

NOTE: not thread-safe.  One instance per event loop.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

logger = logging.getLogger(__name__)

# Query parameters that never change page content
TRACKING_PARAMS = frozenset({"utm_source", "utm_medium", "utm_campaign", "fbclid"})


# ---------------------------------------------------------------------------
# URL normalization
# ---------------------------------------------------------------------------


def normalize_cache_url(url: str) -> str:
    """Normalize URL for cache key: strip fragment and tracking params, sort query, lowercase.

    Preserves duplicate (non-tracking) query params.
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.lower()

    params = [
        (k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k.lower() not in TRACKING_PARAMS
    ]
    sorted_query = urlencode(sorted(params))
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, parsed.params, sorted_query, "")).lower()


# ---------------------------------------------------------------------------
# Stats (observability)
# ---------------------------------------------------------------------------


@dataclass
class StoreStats:
    """Counters for one store; used for logging and health output."""

    size: int = 0
    max_entries: int = 0
    hits: int = 0
    misses: int = 0
    ttl_expirations: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


@dataclass
class _Entry:
    value: Any
    expires_at: float  # clock() timestamp


# ---------------------------------------------------------------------------
# TTLStore
# ---------------------------------------------------------------------------


class TTLStore:
    """Bounded LRU mapping from normalized URL to value with a fixed TTL."""

    def __init__(
        self,
        name: str,
        *,
        max_entries: int,
        ttl: float,
        refresh_on_get: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._max_entries = max_entries
        self._ttl = ttl
        self._refresh_on_get = refresh_on_get
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._stats = StoreStats(max_entries=max_entries)

    @property
    def ttl(self) -> float:
        return self._ttl

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self._stats.ttl_expirations += 1
            logger.debug("Cache TTL expired: store=%s key=%s", self.name, key)
            return None
        return entry

    def get(self, url: str) -> Any | None:
        """Cached value for *url*, or None when missing or expired."""
        key = normalize_cache_url(url)
        entry = self._live(key)
        if entry is None:
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        self._entries.move_to_end(key)
        if self._refresh_on_get:
            entry.expires_at = self._clock() + self._ttl
        return entry.value

    def set(self, url: str, value: Any) -> None:
        key = normalize_cache_url(url)
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self._ttl)
        self._entries.move_to_end(key)

        while len(self._entries) > self._max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            logger.debug("Cache eviction: store=%s key=%s", self.name, evicted_key)

    def has(self, url: str) -> bool:
        """Whether a live entry exists; does not count as a hit or refresh the TTL."""
        return self._live(normalize_cache_url(url)) is not None

    def delete(self, url: str) -> bool:
        return self._entries.pop(normalize_cache_url(url), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> StoreStats:
        self._stats.size = len(self._entries)
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# FeedCache
# ---------------------------------------------------------------------------


class FeedCache:
    """The four pipeline stores behind one object.

    Constructed explicitly and injected into ``FeedPipeline``.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.documents = TTLStore("documents", max_entries=50, ttl=15 * 60, clock=clock)
        self.classifications = TTLStore("classifications", max_entries=200, ttl=60 * 60, clock=clock)
        self.feeds = TTLStore("feeds", max_entries=100, ttl=30 * 60, clock=clock)
        self.errors = TTLStore("errors", max_entries=100, ttl=30 * 60, refresh_on_get=False, clock=clock)

    @property
    def stores(self) -> tuple[TTLStore, ...]:
        return (self.documents, self.classifications, self.feeds, self.errors)

    def clear(self, url: str) -> None:
        """Drop *url* from every store."""
        for store in self.stores:
            store.delete(url)
        logger.debug("Cache cleared for %s", url)

    def clear_all(self) -> None:
        for store in self.stores:
            store.clear()
        logger.debug("Cache clear_all")

    def stats(self) -> dict[str, StoreStats]:
        return {store.name: store.stats() for store in self.stores}
