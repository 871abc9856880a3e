# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Rule-driven extractor — turns a classified page into feed records.

Dispatch by archetype:

  blog        → blog strategy (movable-type platform → archive enrichment)
  portfolio   → portfolio strategy (preloaded JSON payload → embedded data)
  news        → news strategy
  ecommerce   → ecommerce strategy
  repository  → repository strategy
  unknown     → generic strategy

Every strategy walks the nodes matched by the ``articles`` rule and reads the
other roles relative to each node.  A role the classification leaves unset
falls back to the generic default selector.  When an archetype strategy finds
nothing, the generic strategy runs with the generic default rules.
"""

from __future__ import annotations

import html as _html
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

import lxml.html

from . import Archetype, ClassificationResult, Record
from .archive_enrichment import extract_archive
from .config import Settings
from .document import Document, first_descendant, inner_html, text_of
from .embedded_data import extract_embedded, find_payload_path
from .fetcher import Fetcher
from .normalize import (
    collapse_whitespace,
    format_timestamp,
    make_identifier,
    portfolio_fragment,
    product_fragment,
    resolve_url,
    summarize,
    timestamp_or_now,
)
from .sanitizer import fragment_text, sanitize_fragment, sanitize_text
from .site_classifier import GENERIC_RULES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-node field extraction
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Row:
    """Raw role values read from one ``articles`` node."""

    index: int
    title: str
    content_html: str  # sanitized
    content_text: str
    link: str
    link_found: bool
    date_raw: str
    author: str | None
    image: str | None
    price: str
    summary: str


def _rule(classification: ClassificationResult, role: str) -> str:
    return classification.rule(role) or GENERIC_RULES.get(role, "")


def _extract_link(node: lxml.html.HtmlElement, selector: str, origin: str) -> tuple[str, bool]:
    """Resolved link for *node* and whether it came from the markup."""
    href = None
    el = first_descendant(node, selector) if selector else None
    if el is not None:
        href = el.get("href")
        if not href:
            inner = first_descendant(el, "a[href]")
            href = inner.get("href") if inner is not None else None
    if not href:
        anchor = first_descendant(node, "a[href]")
        href = anchor.get("href") if anchor is not None else None
    href = (href or "").strip()
    if href:
        return resolve_url(origin, href), True
    return origin, False


def _extract_image(node: lxml.html.HtmlElement, selector: str, origin: str) -> str | None:
    if not selector:
        return None
    el = first_descendant(node, selector)
    if el is None:
        return None
    if el.tag != "img":
        el = first_descendant(el, "img")
        if el is None:
            return None
    src = (el.get("src") or el.get("data-src") or "").strip()
    return resolve_url(origin, src) if src else None


def _read_row(index: int, node: lxml.html.HtmlElement, classification: ClassificationResult) -> _Row:
    origin = classification.origin_url

    content_html = sanitize_fragment(inner_html(first_descendant(node, _rule(classification, "content"))), origin)
    date_el = first_descendant(node, _rule(classification, "date"))
    link, link_found = _extract_link(node, _rule(classification, "link"), origin)

    author_sel = classification.rule("author")
    price_sel = classification.rule("price")
    summary_sel = classification.rule("summary")

    return _Row(
        index=index,
        title=sanitize_text(text_of(first_descendant(node, _rule(classification, "title")))),
        content_html=content_html,
        content_text=fragment_text(content_html),
        link=link,
        link_found=link_found,
        date_raw=(date_el.get("datetime") or text_of(date_el)) if date_el is not None else "",
        author=(sanitize_text(text_of(first_descendant(node, author_sel))) or None) if author_sel else None,
        image=_extract_image(node, classification.rule("image"), origin),
        price=sanitize_text(text_of(first_descendant(node, price_sel))) if price_sel else "",
        summary=collapse_whitespace(text_of(first_descendant(node, summary_sel))) if summary_sel else "",
    )


def _rows(document: Document, classification: ClassificationResult) -> list[_Row]:
    nodes = document.select(_rule(classification, "articles"))
    return [_read_row(i, node, classification) for i, node in enumerate(nodes)]


# ---------------------------------------------------------------------------
# Collector (dedup + cap)
# ---------------------------------------------------------------------------


class _Collector:
    """Ordered record list; first occurrence of an identifier wins."""

    def __init__(self, origin: str, cap: int) -> None:
        self._origin = origin
        self._cap = cap
        self._seen: set[str] = set()
        self.records: list[Record] = []

    @property
    def full(self) -> bool:
        return len(self.records) >= self._cap

    def identifier_for(self, row: _Row, title: str) -> str:
        return make_identifier(row.link if row.link_found else title, self._origin)

    def add(self, record: Record) -> None:
        if self.full or record.identifier in self._seen:
            return
        self._seen.add(record.identifier)
        self.records.append(record)


def _body(row: _Row, title: str) -> str:
    return row.content_html or f"<p>{_html.escape(title)}</p>"


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

Strategy = Callable[[Document, ClassificationResult, Settings, str], list[Record]]


def extract_blog(
    document: Document, classification: ClassificationResult, settings: Settings, now: str
) -> list[Record]:
    origin = classification.origin_url
    out = _Collector(origin, settings.max_records)
    for row in _rows(document, classification):
        if out.full:
            break
        if not row.title:
            continue
        out.add(
            Record(
                title=row.title,
                link=row.link,
                summary=summarize(row.content_text, 200),
                body=_body(row, row.title),
                published_at=timestamp_or_now(row.date_raw, now),
                identifier=out.identifier_for(row, row.title),
                author=row.author,
            )
        )
    return out.records


def extract_news(
    document: Document, classification: ClassificationResult, settings: Settings, now: str
) -> list[Record]:
    origin = classification.origin_url
    out = _Collector(origin, settings.max_records)
    for row in _rows(document, classification):
        if out.full:
            break
        if not row.title:
            continue
        out.add(
            Record(
                title=row.title,
                link=row.link,
                summary=summarize(row.summary or row.content_text, 150),
                body=_body(row, row.title),
                published_at=timestamp_or_now(row.date_raw, now),
                identifier=out.identifier_for(row, row.title),
                author=row.author,
                category="News",
                image=row.image,
            )
        )
    return out.records


def extract_ecommerce(
    document: Document, classification: ClassificationResult, settings: Settings, now: str
) -> list[Record]:
    origin = classification.origin_url
    out = _Collector(origin, settings.max_records)
    for row in _rows(document, classification):
        if out.full:
            break
        if not row.title:
            continue
        description = summarize(row.content_text, 200) or "Product details"
        out.add(
            Record(
                title=row.title,
                link=row.link,
                summary=f"{description} - {summarize(row.price, 50)}" if row.price else description,
                body=product_fragment(row.title, row.content_text, row.price),
                published_at=now,
                identifier=out.identifier_for(row, row.title),
                category="Product",
                image=row.image,
            )
        )
    return out.records


def extract_repository(
    document: Document, classification: ClassificationResult, settings: Settings, now: str
) -> list[Record]:
    origin = classification.origin_url
    out = _Collector(origin, settings.max_records)
    for row in _rows(document, classification):
        if out.full:
            break
        if not row.title:
            continue
        out.add(
            Record(
                title=row.title,
                link=row.link,
                summary=summarize(row.content_text or row.title, 200),
                body=_body(row, row.title),
                published_at=timestamp_or_now(row.date_raw, now),
                identifier=out.identifier_for(row, row.title),
                category="Repository",
            )
        )
    return out.records


def extract_portfolio(
    document: Document, classification: ClassificationResult, settings: Settings, now: str
) -> list[Record]:
    origin = classification.origin_url
    out = _Collector(origin, settings.max_records)
    for row in _rows(document, classification):
        if out.full:
            break
        title = row.title or f"Project {row.index + 1}"
        out.add(
            Record(
                title=title,
                link=row.link,
                summary=summarize(row.content_text or f"View details of {title}", 200),
                body=portfolio_fragment(title, row.content_text, row.image),
                published_at=now,
                identifier=out.identifier_for(row, title),
                image=row.image,
            )
        )
    return out.records


def extract_generic(
    document: Document, classification: ClassificationResult, settings: Settings, now: str
) -> list[Record]:
    origin = classification.origin_url
    out = _Collector(origin, settings.max_records)
    for row in _rows(document, classification):
        if out.full:
            break
        if len(row.title) < settings.min_generic_title_length:
            continue
        out.add(
            Record(
                title=row.title,
                link=row.link,
                summary=summarize(row.content_text, 200),
                body=_body(row, row.title),
                published_at=timestamp_or_now(row.date_raw, now),
                identifier=out.identifier_for(row, row.title),
            )
        )
    return out.records


STRATEGIES: dict[Archetype, Strategy] = {
    Archetype.BLOG: extract_blog,
    Archetype.NEWS: extract_news,
    Archetype.ECOMMERCE: extract_ecommerce,
    Archetype.REPOSITORY: extract_repository,
    Archetype.PORTFOLIO: extract_portfolio,
    Archetype.UNKNOWN: extract_generic,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def extract(
    document: Document,
    classification: ClassificationResult,
    *,
    fetcher: Fetcher | None = None,
    settings: Settings | None = None,
) -> list[Record]:
    """Extract an ordered, de-duplicated list of records from *document*.

    Args:
        document: parsed page
        classification: result of ``site_classifier.classify``
        fetcher: network collaborator for the enrichment strategies; without
            one, pages needing secondary fetches are extracted from markup only
        settings: caps and filters (default ``Settings()``)

    Returns:
        At most ``settings.max_records`` records; possibly empty.
    """
    settings = settings or Settings()
    now = format_timestamp()
    archetype = classification.archetype

    if archetype == Archetype.BLOG and classification.platform == "movable-type":
        strategy_name = "archive"
        records = await extract_archive(document, classification, fetcher, settings=settings)
    elif (
        archetype == Archetype.PORTFOLIO and fetcher is not None and find_payload_path(document.raw_html) is not None
    ):
        strategy_name = "embedded"
        records = await extract_embedded(document.raw_html, classification, fetcher, settings=settings)
    else:
        strategy_name = archetype.value
        records = STRATEGIES.get(archetype, extract_generic)(document, classification, settings, now)

    if not records and strategy_name != Archetype.UNKNOWN.value:
        logger.info("No records from %s strategy for %s; using generic", strategy_name, classification.origin_url)
        generic = replace(classification, selector_rules=GENERIC_RULES)
        records = extract_generic(document, generic, settings, now)

    logger.debug("Extracted %d records from %s", len(records), classification.origin_url)
    return records[: settings.max_records]
