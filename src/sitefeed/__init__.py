# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SiteFeed: turn arbitrary web pages into normalized article feeds.

A page is first classified against known site archetypes (blog, news,
portfolio, ...) and then walked with the winning archetype's selector rules:
- ClassificationResult: archetype, platform, confidence and extraction rules
- Record: one normalized feed item (title, link, summary, body, ...)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType


class Archetype(StrEnum):
    """Mutually exclusive site category chosen by classification."""

    BLOG = "blog"
    PORTFOLIO = "portfolio"
    NEWS = "news"
    ECOMMERCE = "ecommerce"
    REPOSITORY = "repository"
    UNKNOWN = "unknown"


# Selector roles understood by the extractor
SELECTOR_ROLES: tuple[str, ...] = (
    "articles",
    "title",
    "content",
    "link",
    "date",
    "author",
    "image",
    "price",
    "summary",
)


def _freeze(rules: Mapping[str, str] | None) -> Mapping[str, str]:
    rules = dict(rules or {})
    unknown = sorted(set(rules) - set(SELECTOR_ROLES))
    if unknown:
        raise ValueError(f"Unknown selector role(s): {', '.join(unknown)}")
    return MappingProxyType(rules)


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Outcome of running the detector chain over one page."""

    origin_url: str
    archetype: Archetype
    platform: str  # wordpress, medium, github, ... or "unknown"
    confidence: int  # 0-100 heuristic tally, not a probability
    selector_rules: Mapping[str, str] = field(default_factory=dict)
    matched_features: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "selector_rules", _freeze(self.selector_rules))
        object.__setattr__(self, "matched_features", tuple(self.matched_features))
        object.__setattr__(self, "confidence", max(0, min(100, int(self.confidence))))

    def rule(self, role: str) -> str:
        """Selector for *role*, or empty string when the role is unset."""
        return self.selector_rules.get(role, "") or ""


@dataclass(frozen=True, slots=True)
class Record:
    """A single normalized feed item extracted from the page."""

    title: str
    link: str  # absolute URL
    summary: str
    body: str  # sanitized HTML fragment
    published_at: str  # RFC 2822, GMT
    identifier: str
    author: str | None = None
    category: str | None = None
    image: str | None = None


@dataclass(frozen=True, slots=True)
class SiteMetadata:
    """Site-level facts handed to the feed serializer."""

    origin_url: str
    archetype: Archetype
    platform: str
    title: str = ""
    description: str = ""

    @classmethod
    def from_classification(
        cls, result: ClassificationResult, *, title: str = "", description: str = ""
    ) -> SiteMetadata:
        return cls(
            origin_url=result.origin_url,
            archetype=result.archetype,
            platform=result.platform,
            title=title,
            description=description,
        )
