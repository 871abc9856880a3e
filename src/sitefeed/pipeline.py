# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Feed generation pipeline: cache → fetch → classify → extract → serialize.

Stages:
  1. Negative cache check  – recently failed URLs fail fast
  2. Feed cache check      – unless ``refresh``
  3. Page fetch            – cached markup reused unless ``refresh``
  4. Classify + extract    – bounded by the overall deadline
  5. Serialize + store

Fatal page-level failures are recorded in the error store and raised as
``FeedGenerationError``; a blown deadline raises ``DeadlineExceededError``.
Turning either into a user-visible artifact is the host's job.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

import structlog

from . import Archetype, ClassificationResult, Record, SiteMetadata
from .cache import FeedCache
from .config import Settings
from .document import Document, parse_document
from .errors import DeadlineExceededError, FeedGenerationError, FetchError
from .extractor import extract
from .fetcher import Fetcher, UrllibFetcher
from .sanitizer import sanitize_text
from .serializer import FeedSerializer, to_json_feed
from .site_classifier import classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeedOutcome:
    """Serialized feed plus facts a host may surface (cache status, site type)."""

    url: str
    feed: str
    cached: bool
    archetype: Archetype | None = None
    platform: str = ""
    record_count: int = 0
    generation_ms: float = 0.0


def _site_metadata(document: Document, classification: ClassificationResult) -> SiteMetadata:
    title_el = document.select_first("title")
    title = sanitize_text(title_el.text_content() if title_el is not None else "")
    description = sanitize_text(
        document.meta_content(name="description") or document.meta_content(prop="og:description")
    )
    return SiteMetadata.from_classification(classification, title=title, description=description)


class FeedPipeline:
    """Wires the cache, network and serializer collaborators around the engine."""

    def __init__(
        self,
        *,
        cache: FeedCache | None = None,
        fetcher: Fetcher | None = None,
        serializer: FeedSerializer = to_json_feed,
        settings: Settings | None = None,
    ) -> None:
        self.cache = cache if cache is not None else FeedCache()
        self.fetcher = fetcher if fetcher is not None else UrllibFetcher()
        self.serializer = serializer
        self.settings = settings or Settings()

    async def _load_page(self, url: str, refresh: bool) -> str:
        if not refresh:
            cached = self.cache.documents.get(url)
            if cached is not None:
                return cached
        response = await self.fetcher.fetch(
            url, timeout=self.settings.page_fetch_timeout, user_agent=self.settings.user_agent
        )
        self.cache.documents.set(url, response.body)
        return response.body

    async def classify_and_extract(
        self, document: Document, url: str, *, refresh: bool = False
    ) -> tuple[ClassificationResult, list[Record]]:
        """Classification (cached per URL) followed by extraction."""
        classification = None if refresh else self.cache.classifications.get(url)
        if classification is None:
            classification = await asyncio.to_thread(classify, document, url)
            self.cache.classifications.set(url, classification)
        records = await extract(document, classification, fetcher=self.fetcher, settings=self.settings)
        return classification, records

    async def run(self, url: str, *, refresh: bool = False) -> FeedOutcome:
        """Produce the feed for *url*.

        Raises:
            FeedGenerationError: page fetch failed now or recently (negative cache).
            DeadlineExceededError: classify + extract exceeded ``settings.deadline``.
        """
        with structlog.contextvars.bound_contextvars(url=url):
            return await self._run(url, refresh)

    async def _run(self, url: str, refresh: bool) -> FeedOutcome:
        t0 = time.monotonic()

        reason = self.cache.errors.get(url)
        if reason is not None:
            logger.info("URL is in error cache: %s", url)
            raise FeedGenerationError(
                f"URL temporarily unavailable due to previous errors: {reason}", url=url, cached=True
            )

        if not refresh:
            cached_feed = self.cache.feeds.get(url)
            if cached_feed is not None:
                logger.debug("Feed cache hit: %s", url)
                return FeedOutcome(url=url, feed=cached_feed, cached=True)

        try:
            raw_html = await self._load_page(url, refresh)
        except FetchError as e:
            self.cache.errors.set(url, str(e))
            logger.warning("Page fetch failed for %s: %s", url, e)
            raise FeedGenerationError(f"Could not fetch {url}: {e}", url=url) from e

        document = await asyncio.to_thread(parse_document, raw_html)

        try:
            classification, records = await asyncio.wait_for(
                self.classify_and_extract(document, url, refresh=refresh),
                timeout=self.settings.deadline,
            )
        except TimeoutError as e:
            self.cache.errors.set(url, f"deadline of {self.settings.deadline:.1f}s exceeded")
            logger.warning("Feed generation exceeded %.1fs deadline: %s", self.settings.deadline, url)
            raise DeadlineExceededError(
                f"Feed generation for {url} exceeded {self.settings.deadline:.1f}s",
                deadline=self.settings.deadline,
            ) from e

        logger.info(
            "Classified %s as %s/%s (confidence %d), %d records",
            url,
            classification.archetype.value,
            classification.platform,
            classification.confidence,
            len(records),
        )

        feed = self.serializer(records, _site_metadata(document, classification))
        self.cache.feeds.set(url, feed)

        return FeedOutcome(
            url=url,
            feed=feed,
            cached=False,
            archetype=classification.archetype,
            platform=classification.platform,
            record_count=len(records),
            generation_ms=(time.monotonic() - t0) * 1000,
        )
