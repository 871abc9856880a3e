# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Archive-enrichment strategy for Movable Type style blogs.

The homepage of these blogs shows a few full entries (``.entry-asset``) and a
list of recent titles (``#homepage .module-list-item``) without bodies.  Both
zones are merged (first zone wins on duplicate links), then the first few
records lacking substantial inline content get their body from one extra
fetch of the article page each.

Enrichment runs as a bounded task list with a per-task timeout; a failed
task leaves its record untouched.
"""

from __future__ import annotations

import asyncio
import html as _html
import logging
from dataclasses import dataclass

from . import ClassificationResult, Record
from .config import Settings
from .document import Document, first_descendant, inner_html, parse_document, text_of
from .errors import FetchError
from .fetcher import Fetcher
from .normalize import (
    collapse_whitespace,
    format_timestamp,
    make_identifier,
    resolve_url,
    summarize,
    timestamp_or_now,
)
from .sanitizer import fragment_text, sanitize_fragment, sanitize_text

logger = logging.getLogger(__name__)

CATEGORY = "Blog"

# Zone 1: full entries
ENTRY_ZONE = ".entry-asset"
ENTRY_TITLE = ".asset-name.entry-title a, .asset-name.entry-title"
ENTRY_ANCHOR = ".asset-name.entry-title a"
ENTRY_CONTENT = ".asset-content, .asset-body, .entry-content"
ENTRY_DATE = ".asset-date, .published, time"
ENTRY_AUTHOR = ".byline .vcard, .byline .author"

# Zone 2: recent-title list
LIST_ZONE = "#homepage .module-list-item"
_MORE_LABELS: tuple[str, ...] = ("更多文章", "more articles", "more posts")

# Article page body lookup, in priority order
ARTICLE_CONTENT_SELECTORS: tuple[str, ...] = (
    ".asset-body",
    ".entry-content",
    ".asset-content",
    "#main .asset-body",
    "#content .entry-content",
)
ARTICLE_HEADING = "h1, .asset-name, .entry-title"
_PARAGRAPH_BOILERPLATE: tuple[str, ...] = ("留言", "Email")

SUBSTANTIAL_INLINE_CHARS = 500
MIN_ENRICHED_CHARS = 100
_MIN_PARAGRAPH_CHARS = 20
_MAX_PARAGRAPHS = 10
_ENRICHED_SUMMARY_CHARS = 300
_TASK_GRACE = 5.0  # seconds on top of the fetch timeout


@dataclass(slots=True)
class _Draft:
    """Mutable record under construction; frozen into a Record at the end."""

    title: str
    link: str
    summary: str
    body: str
    published_at: str
    identifier: str
    author: str | None = None
    needs_enrichment: bool = False

    def freeze(self) -> Record:
        return Record(
            title=self.title,
            link=self.link,
            summary=self.summary,
            body=self.body,
            published_at=self.published_at,
            identifier=self.identifier,
            author=self.author,
            category=CATEGORY,
        )


def _is_more_label(title: str) -> bool:
    lowered = title.lower()
    return any(label.lower() in lowered for label in _MORE_LABELS)


def _entry_drafts(document: Document, origin: str, now: str) -> list[tuple[str, _Draft]]:
    drafts: list[tuple[str, _Draft]] = []
    for node in document.select(ENTRY_ZONE):
        anchor = first_descendant(node, ENTRY_ANCHOR)
        title_el = anchor if anchor is not None else first_descendant(node, ENTRY_TITLE)
        title = sanitize_text(text_of(title_el))
        if not title:
            continue

        href = anchor.get("href") if anchor is not None else None
        link = resolve_url(origin, href) if href else origin
        key = link if href else f"title:{title}"

        content_html = inner_html(first_descendant(node, ENTRY_CONTENT))
        date_el = first_descendant(node, ENTRY_DATE)
        date_raw = (date_el.get("datetime") or text_of(date_el)) if date_el is not None else ""
        author = sanitize_text(text_of(first_descendant(node, ENTRY_AUTHOR))) or None

        body = sanitize_fragment(content_html, origin)
        drafts.append(
            (
                key,
                _Draft(
                    title=title,
                    link=link,
                    summary=summarize(fragment_text(body) or title, 200),
                    body=body or f"<p>{_html.escape(title)}</p>",
                    published_at=timestamp_or_now(date_raw, now),
                    identifier=make_identifier(key, origin),
                    author=author,
                    needs_enrichment=len(content_html) < SUBSTANTIAL_INLINE_CHARS,
                ),
            )
        )
    return drafts


def _list_drafts(document: Document, origin: str, now: str) -> list[tuple[str, _Draft]]:
    drafts: list[tuple[str, _Draft]] = []
    for node in document.select(LIST_ZONE):
        anchor = first_descendant(node, "a")
        if anchor is None:
            continue
        title = sanitize_text(text_of(anchor))
        if not title or _is_more_label(title):
            continue

        href = anchor.get("href")
        link = resolve_url(origin, href) if href else origin
        key = link if href else f"title:{title}"

        span = first_descendant(node, "span")
        date_raw = collapse_whitespace(text_of(span).replace("»", "")) if span is not None else ""

        drafts.append(
            (
                key,
                _Draft(
                    title=title,
                    link=link,
                    summary=title,
                    body=f"<h2>{_html.escape(title)}</h2>",
                    published_at=timestamp_or_now(date_raw, now),
                    identifier=make_identifier(key, origin),
                    needs_enrichment=True,
                ),
            )
        )
    return drafts


def article_body_from_html(raw_html: str, article_url: str) -> str | None:
    """Main body markup of an article page, sanitized against *article_url*.

    Returns None when nothing substantial (at least 100 characters) is found.
    """
    page = parse_document(raw_html)

    content = ""
    for selector in ARTICLE_CONTENT_SELECTORS:
        content = inner_html(page.select_first(selector))
        if content:
            break

    if not content:
        heading = sanitize_text(text_of(page.select_first(ARTICLE_HEADING)))
        paragraphs: list[str] = []
        for p in page.root.iter("p"):
            text = collapse_whitespace(text_of(p))
            if len(text) > _MIN_PARAGRAPH_CHARS and not any(b in text for b in _PARAGRAPH_BOILERPLATE):
                paragraphs.append(f"<p>{_html.escape(text)}</p>")
        if paragraphs:
            parts = [f"<h2>{_html.escape(heading)}</h2>"] if heading else []
            content = "\n".join(parts + paragraphs[:_MAX_PARAGRAPHS])

    if len(content) < MIN_ENRICHED_CHARS:
        return None
    return sanitize_fragment(content, article_url)


async def _enrich(draft: _Draft, fetcher: Fetcher, settings: Settings, sem: asyncio.Semaphore) -> None:
    async with sem:
        try:
            response = await asyncio.wait_for(
                fetcher.fetch(draft.link, timeout=settings.fetch_timeout, user_agent=settings.user_agent),
                timeout=settings.fetch_timeout + _TASK_GRACE,
            )
        except (FetchError, TimeoutError) as e:
            logger.warning("Enrichment fetch failed for %s: %s", draft.link, e)
            return

    body = article_body_from_html(response.body, draft.link)
    if body is None:
        logger.debug("No substantial content at %s", draft.link)
        return
    draft.body = body
    draft.summary = summarize(fragment_text(body), _ENRICHED_SUMMARY_CHARS)


async def extract_archive(
    document: Document,
    classification: ClassificationResult,
    fetcher: Fetcher | None,
    *,
    settings: Settings | None = None,
) -> list[Record]:
    """Merge both zones, enrich the first records lacking content, return Records."""
    settings = settings or Settings()
    origin = classification.origin_url
    now = format_timestamp()

    seen: set[str] = set()
    drafts: list[_Draft] = []
    for key, draft in _entry_drafts(document, origin, now) + _list_drafts(document, origin, now):
        if key in seen:
            continue
        seen.add(key)
        drafts.append(draft)
    drafts = drafts[: settings.max_records]

    targets = [d for d in drafts if d.needs_enrichment and d.link != origin][: settings.enrich_limit]
    if targets and fetcher is not None:
        sem = asyncio.Semaphore(max(1, settings.enrich_concurrency))
        results = await asyncio.gather(
            *(_enrich(d, fetcher, settings, sem) for d in targets), return_exceptions=True
        )
        for draft, result in zip(targets, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Enrichment task failed for %s", draft.link, exc_info=result)
        logger.debug("Enriched up to %d of %d archive records", len(targets), len(drafts))

    return [d.freeze() for d in drafts]
