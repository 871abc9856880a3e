# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site archetype classifier — ordered chain of independent detectors.

Each detector scores the page against one site archetype (WordPress blog,
news site, shop, portfolio, ...) by summing weighted signals, and the
coordinator keeps the highest-confidence candidate:

  1. Archetype detectors – declarative ``DetectorDef`` + ``SignalDef`` tables
  2. Generic fallback    – always matches with confidence 10

Ties keep the earlier-registered detector (only a strictly greater confidence
replaces the running best).  A detector attaches its selector rules only once
its confidence exceeds its entry in ``RULE_THRESHOLDS``; below that the
generic rules are merged in so that the result is always usable.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from . import Archetype, ClassificationResult
from .document import Document, parse_document
from .embedded_data import find_payload_path

logger = logging.getLogger(__name__)

Detector = Callable[[Document, str], ClassificationResult]

GENERIC_CONFIDENCE = 10

# ---------------------------------------------------------------------------
# Facts: per-call precomputed view of the page
# ---------------------------------------------------------------------------

_JSONLD_RE = re.compile(
    r'<script[^>]*type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)
_JSONLD_TYPE_RE = re.compile(r'"@type"\s*:\s*"([^"]+)"')


def _collect_jsonld_types(data: Any, out: set[str]) -> None:
    """Recursively gather every @type string in a JSON-LD value."""
    if isinstance(data, list):
        for item in data:
            _collect_jsonld_types(item, out)
        return
    if not isinstance(data, dict):
        return
    t = data.get("@type", "")
    for x in t if isinstance(t, list) else [t]:
        if isinstance(x, str) and x:
            out.add(x)
    for value in data.values():
        if isinstance(value, dict | list):
            _collect_jsonld_types(value, out)


def _detect_jsonld_types(raw_html: str) -> frozenset[str]:
    """Sniff JSON-LD @type values from raw HTML; regex fallback for broken JSON."""
    types: set[str] = set()
    for m in _JSONLD_RE.finditer(raw_html):
        block = m.group(1)
        try:
            _collect_jsonld_types(json.loads(block), types)
        except (json.JSONDecodeError, TypeError):
            types.update(_JSONLD_TYPE_RE.findall(block))
    return frozenset(types)


@dataclass(frozen=True, slots=True)
class PageFacts:
    """Inputs shared by every signal; built once per ``classify`` call."""

    url: str  # lowercased
    raw_html: str
    html_lower: str
    document: Document
    generator: str  # lowercased <meta name="generator">
    jsonld_types: frozenset[str]


def build_facts(document: Document, origin_url: str) -> PageFacts:
    raw = document.raw_html or ""
    return PageFacts(
        url=origin_url.lower(),
        raw_html=raw,
        html_lower=raw.lower(),
        document=document,
        generator=document.meta_content(name="generator").lower(),
        jsonld_types=_detect_jsonld_types(raw),
    )


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SignalDef:
    """One weighted check.  ``check`` returns a bool or a match count."""

    feature: str
    weight: int
    check: Callable[[PageFacts], bool | int]


@dataclass(frozen=True, slots=True)
class DetectorDef:
    """A declarative archetype detector: signals to sum + rules to attach."""

    name: str
    archetype: Archetype
    platform: str
    signals: tuple[SignalDef, ...]
    rules: Mapping[str, str] = field(default_factory=dict)

    def score(self, facts: PageFacts, origin_url: str) -> ClassificationResult:
        confidence = 0
        features: list[str] = []
        for sig in self.signals:
            contribution = sig.weight * int(sig.check(facts))
            if contribution > 0:
                confidence += contribution
                features.append(sig.feature)

        threshold = RULE_THRESHOLDS.get(self.name, _DEFAULT_THRESHOLD)
        return ClassificationResult(
            origin_url=origin_url,
            archetype=self.archetype,
            platform=self.platform,
            confidence=confidence,
            selector_rules=self.rules if confidence > threshold else {},
            matched_features=tuple(features),
        )

    def __call__(self, document: Document, origin_url: str) -> ClassificationResult:
        return self.score(build_facts(document, origin_url), origin_url)


# ---------------------------------------------------------------------------
# Thresholds per detector (rules attach once confidence exceeds these)
# ---------------------------------------------------------------------------

RULE_THRESHOLDS: dict[str, int] = {
    "wordpress": 50,
    "blogger": 50,
    "movable-type": 50,
    "medium": 50,
    "github": 50,
    "news": 30,
    "ecommerce": 25,
    "portfolio": 25,
}

_DEFAULT_THRESHOLD = 50

# ---------------------------------------------------------------------------
# Selector rules
# ---------------------------------------------------------------------------

GENERIC_RULES: Mapping[str, str] = {
    "articles": "article, .post, .entry, .item, .content-item",
    "title": "h1, h2, .title, .headline, .entry-title",
    "content": ".content, .text, .description, .summary",
    "date": "time, .date, .published",
    "link": "a",
}

_WORDPRESS_RULES = {
    "articles": ".post, article, .entry",
    "title": ".entry-title, .post-title, h1, h2.entry-title",
    "content": ".entry-content, .post-content, .content",
    "date": ".entry-date, .post-date, time",
    "link": ".entry-title a, .post-title a",
    "author": ".author .fn, .byline .author, .entry-author",
}

_BLOGGER_RULES = {
    "articles": ".post-outer, .post",
    "title": ".post-title, .entry-title",
    "content": ".post-body, .entry-content",
    "date": "abbr.published, .published, time, .date-header",
    "link": ".post-title a, .entry-title a",
    "author": ".post-author .fn, .g-profile",
}

_MOVABLE_TYPE_RULES = {
    "articles": ".entry-asset",
    "title": ".asset-name.entry-title a, .asset-name.entry-title",
    "content": ".asset-content, .asset-body, .entry-content",
    "date": ".asset-date, .published, time",
    "link": ".asset-name a",
    "author": ".byline .vcard, .author",
}

_MEDIUM_RULES = {
    "articles": "article, .postArticle",
    "title": "h1, .graf--title",
    "content": ".section-content, .postArticle-content",
    "date": "time, .postMetaInline time",
    "author": ".postMetaInline a",
}

_GITHUB_RULES = {
    "articles": ".commit, .issue-item, .release",
    "title": ".commit-title, .issue-title, .release-title",
    "content": ".commit-desc, .issue-body, .release-body",
    "date": "relative-time, time, .date",
}

_NEWS_RULES = {
    "articles": "article, .article, .news-item, .story, .post",
    "title": "h1, h2, .headline, .title, .article-title",
    "content": ".article-content, .story-content, .content, .text",
    "date": "time, .date, .published, .timestamp",
    "summary": ".summary, .excerpt, .intro",
}

_ECOMMERCE_RULES = {
    "articles": ".product, .item, .goods, .listing",
    "title": ".product-title, .item-title, h1, h2",
    "content": ".description, .product-desc, .details",
    "price": ".price, .cost, .amount",
    "image": ".product-image img, img",
}

_PORTFOLIO_RULES = {
    "articles": ".project, .work, .case-study, .portfolio-item",
    "title": ".project-title, .work-title, h1, h2, h3",
    "content": ".project-desc, .project-description, .work-description, .description",
    "image": ".project-image, .work-image, img",
    "link": ".project-link, .work-link, a",
}

# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------

_COMMERCE_KEYWORDS: tuple[str, ...] = ("price", "cart", "buy", "shop", "product")
_PORTFOLIO_KEYWORDS: tuple[str, ...] = ("portfolio", "work", "project", "case-study", "design")
_DESIGN_DESCRIPTION_WORDS: tuple[str, ...] = ("designer", "portfolio", "creative", "artist", "developer")


def _keyword_hits(p: PageFacts, keywords: tuple[str, ...], *, include_url: bool = False) -> int:
    return sum(1 for kw in keywords if kw in p.html_lower or (include_url and kw in p.url))


def _meta_prop(p: PageFacts, prop: str) -> str:
    return p.document.meta_content(prop=prop)


# ---------------------------------------------------------------------------
# Detector Registry
# ---------------------------------------------------------------------------

WORDPRESS = DetectorDef(
    "wordpress",
    Archetype.BLOG,
    "wordpress",
    (
        SignalDef(
            "wp-content-detected", 30, lambda p: "wp-content" in p.raw_html or "wp-includes" in p.raw_html
        ),
        SignalDef("wp-generator-meta", 40, lambda p: "wordpress" in p.generator),
        SignalDef("wp-admin-bar", 20, lambda p: "wp-admin-bar-front" in p.document.body_classes),
        SignalDef(
            "wp-entry-markup",
            20,
            lambda p: p.document.count("article .entry-title, .post .entry-title, .hentry") > 0,
        ),
    ),
    _WORDPRESS_RULES,
)

BLOGGER = DetectorDef(
    "blogger",
    Archetype.BLOG,
    "blogger",
    (
        SignalDef("blogger-generator-meta", 40, lambda p: "blogger" in p.generator),
        SignalDef("blogger-domain", 40, lambda p: ".blogspot." in p.url or "blogger.com" in p.url),
        SignalDef("blogger-post-markup", 20, lambda p: p.document.count(".post-outer, .blog-posts") > 0),
    ),
    _BLOGGER_RULES,
)

MOVABLE_TYPE = DetectorDef(
    "movable-type",
    Archetype.BLOG,
    "movable-type",
    (
        SignalDef("mt-generator-meta", 40, lambda p: "movable type" in p.generator),
        SignalDef("mt-entry-assets", 30, lambda p: p.document.count(".entry-asset") > 0),
        SignalDef("mt-recent-list", 20, lambda p: p.document.count("#homepage .module-list-item") > 0),
    ),
    _MOVABLE_TYPE_RULES,
)

MEDIUM = DetectorDef(
    "medium",
    Archetype.BLOG,
    "medium",
    (
        SignalDef("medium-domain", 60, lambda p: "medium.com" in p.url),
        SignalDef(
            "medium-branding",
            30,
            lambda p: (
                "medium.com" in _meta_prop(p, "al:web:url").lower()
                or _meta_prop(p, "og:site_name").strip().lower() == "medium"
            ),
        ),
    ),
    _MEDIUM_RULES,
)

GITHUB = DetectorDef(
    "github",
    Archetype.REPOSITORY,
    "github",
    (
        SignalDef("github-domain", 50, lambda p: "github.io" in p.url or "github.com" in p.url),
        SignalDef("github-site-name", 30, lambda p: _meta_prop(p, "og:site_name").strip() == "GitHub"),
    ),
    _GITHUB_RULES,
)

NEWS = DetectorDef(
    "news",
    Archetype.NEWS,
    "news",
    (
        SignalDef("multiple-articles", 20, lambda p: p.document.count(".article, .news-item, .story") > 5),
        SignalDef("article-meta", 30, lambda p: _meta_prop(p, "og:type").strip().lower() == "article"),
        SignalDef(
            "structured-data",
            40,
            lambda p: bool(p.jsonld_types & {"NewsArticle", "Article", "ReportageNewsArticle"}),
        ),
    ),
    _NEWS_RULES,
)

ECOMMERCE = DetectorDef(
    "ecommerce",
    Archetype.ECOMMERCE,
    "shop",
    (
        SignalDef("product-listings", 30, lambda p: p.document.count(".product, .item, .goods") > 5),
        SignalDef(
            "product-structured-data", 40, lambda p: bool(p.jsonld_types & {"Product", "IndividualProduct"})
        ),
        SignalDef("commerce-keywords", 5, lambda p: _keyword_hits(p, _COMMERCE_KEYWORDS)),
    ),
    _ECOMMERCE_RULES,
)

PORTFOLIO = DetectorDef(
    "portfolio",
    Archetype.PORTFOLIO,
    "portfolio",
    (
        SignalDef("portfolio-keywords", 10, lambda p: _keyword_hits(p, _PORTFOLIO_KEYWORDS, include_url=True)),
        SignalDef(
            "project-listings", 30, lambda p: p.document.count(".project, .work, .case-study, .portfolio-item") > 2
        ),
        SignalDef(
            "design-description",
            20,
            lambda p: any(
                w in p.document.meta_content(name="description").lower() for w in _DESIGN_DESCRIPTION_WORDS
            ),
        ),
        SignalDef("embedded-json-payload", 20, lambda p: find_payload_path(p.raw_html) is not None),
    ),
    _PORTFOLIO_RULES,
)


def detect_generic(document: Document, origin_url: str) -> ClassificationResult:
    """Catch-all detector: always matches with the lowest fixed confidence."""
    return ClassificationResult(
        origin_url=origin_url,
        archetype=Archetype.UNKNOWN,
        platform="unknown",
        confidence=GENERIC_CONFIDENCE,
        selector_rules=GENERIC_RULES,
        matched_features=("generic-fallback",),
    )


# Declared order is the tie-break order
DETECTOR_REGISTRY: tuple[Detector, ...] = (
    WORDPRESS,
    BLOGGER,
    MOVABLE_TYPE,
    MEDIUM,
    GITHUB,
    NEWS,
    ECOMMERCE,
    PORTFOLIO,
    detect_generic,
)


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


def _detector_name(detector: Detector) -> str:
    return getattr(detector, "name", None) or getattr(detector, "__name__", repr(detector))


def classify(
    document: Document,
    origin_url: str,
    detectors: Sequence[Detector] | None = None,
) -> ClassificationResult:
    """Run every detector and keep the highest-confidence candidate.

    Args:
        document: parsed page
        origin_url: the page's logical URL
        detectors: ordered detector chain (default ``DETECTOR_REGISTRY``)

    Returns:
        ClassificationResult with a non-empty ``selector_rules`` mapping.
    """
    registry = DETECTOR_REGISTRY if detectors is None else detectors
    facts = build_facts(document, origin_url)

    best: ClassificationResult | None = None
    for detector in registry:
        try:
            if isinstance(detector, DetectorDef):
                candidate = detector.score(facts, origin_url)
            else:
                candidate = detector(document, origin_url)
        except Exception:
            logger.warning("Detector %s failed; skipping", _detector_name(detector), exc_info=True)
            continue
        if best is None or candidate.confidence > best.confidence:
            best = candidate

    if best is None or best.confidence <= 0:
        return detect_generic(document, origin_url)

    if not best.selector_rules:
        # Weak evidence: keep the archetype, extract with generic rules
        best = replace(best, selector_rules=GENERIC_RULES)

    logger.debug(
        "Classified %s as %s/%s confidence=%d features=%s",
        origin_url,
        best.archetype.value,
        best.platform,
        best.confidence,
        ",".join(best.matched_features),
    )
    return best


def classify_html(raw_html: str, origin_url: str) -> ClassificationResult:
    """Parse *raw_html* and classify it."""
    return classify(parse_document(raw_html), origin_url)
