# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Record normalization helpers: URLs, summaries, identifiers, dates, fragments.

Pure functions only — safe to share across extraction strategies.
"""

from __future__ import annotations

import hashlib
import html as _html
import re
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from urllib.parse import urlparse

IDENTIFIER_PREFIX = "sf-"
IDENTIFIER_HEX_CHARS = 16
ELLIPSIS = "..."

_WS_RE = re.compile(r"\s+")


def collapse_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


def site_root(origin_url: str) -> str:
    """scheme://host[:port] of *origin_url* (no path)."""
    parsed = urlparse(origin_url)
    if not parsed.netloc:
        return origin_url.rstrip("/")
    return f"{parsed.scheme or 'https'}://{parsed.netloc}"


def resolve_url(origin_url: str, raw: str | None) -> str:
    """Resolve *raw* against the site of *origin_url*.

    Four cases: absolute passthrough, protocol-relative → https,
    root-relative → site root + path, relative → site root + "/" + path.
    Empty input resolves to *origin_url* itself.
    """
    raw = (raw or "").strip()
    if not raw:
        return origin_url
    if raw.startswith("http"):
        return raw
    if raw.startswith("//"):
        return f"https:{raw}"
    root = site_root(origin_url)
    if raw.startswith("/"):
        return f"{root}{raw}"
    return f"{root}/{raw}"


# ---------------------------------------------------------------------------
# Summaries and identifiers
# ---------------------------------------------------------------------------


def summarize(text: str | None, max_length: int = 200) -> str:
    """Whitespace-collapsed *text*, cut to *max_length* plus an ellipsis when longer."""
    clean = collapse_whitespace(text)
    if len(clean) > max_length:
        return clean[:max_length] + ELLIPSIS
    return clean


def make_identifier(seed: str, origin_url: str) -> str:
    """Deterministic content-addressed identifier for a record."""
    digest = hashlib.sha256(f"{seed}{origin_url}".encode()).hexdigest()
    return f"{IDENTIFIER_PREFIX}{digest[:IDENTIFIER_HEX_CHARS]}"


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_YMD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"),
    re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일"),
    re.compile(r"(\d{4})年\s*(\d{1,2})月\s*(\d{1,2})日"),
    re.compile(r"(\d{4})\.\s*(\d{1,2})\.\s*(\d{1,2})"),
    re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})"),
)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_date(text: str | None) -> datetime | None:
    """Best-effort date parsing: ISO 8601, RFC 2822, then Y-M-D style patterns."""
    s = collapse_whitespace(text)
    if not s:
        return None

    try:
        return _as_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except (ValueError, OverflowError):
        pass

    try:
        return _as_utc(parsedate_to_datetime(s))
    except (TypeError, ValueError, IndexError, OverflowError):
        pass

    for pattern in _YMD_PATTERNS:
        m = pattern.search(s)
        if m:
            try:
                return datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)), tzinfo=UTC)
            except ValueError:
                return None
    return None


def format_timestamp(dt: datetime | None = None) -> str:
    """RFC 2822 timestamp in GMT; *dt* defaults to now."""
    return format_datetime(_as_utc(dt or datetime.now(UTC)), usegmt=True)


def timestamp_or_now(raw: str | None, now: str) -> str:
    """Format *raw* as a timestamp, or return *now* when it cannot be parsed."""
    parsed = parse_date(raw)
    return format_timestamp(parsed) if parsed else now


# ---------------------------------------------------------------------------
# HTML fragment assembly
# ---------------------------------------------------------------------------


def _esc(text: str) -> str:
    return _html.escape(text, quote=True)


def portfolio_fragment(title: str, content: str, image: str | None) -> str:
    parts = [f"<h2>{_esc(title)}</h2>"]
    if image:
        parts.append(f'<img src="{_esc(image)}" alt="{_esc(title)}" style="max-width: 100%; height: auto;"/>')
    if content:
        parts.append(f"<p>{_esc(content)}</p>")
    return "".join(parts)


def product_fragment(title: str, content: str, price: str) -> str:
    parts = [f"<h2>{_esc(title)}</h2>"]
    if price:
        parts.append(f"<p><strong>Price: {_esc(price)}</strong></p>")
    if content:
        parts.append(f"<p>{_esc(content)}</p>")
    return "".join(parts)


def project_fragment(name: str, project_url: str) -> str:
    """Synthesized body for a project discovered only through an embedded payload."""
    return (
        f"<h2>{_esc(capitalize(name))} - Design Project</h2>"
        "<p>This project showcases design work and creative problem-solving.</p>"
        f'<p><a href="{_esc(project_url)}">View full project details</a></p>'
    )


def paragraphs_fragment(text: str, heading: str = "") -> str:
    """One ``<p>`` per non-empty line of *text*, optionally preceded by an ``<h2>``."""
    paragraphs = [f"<p>{_esc(line.strip())}</p>" for line in text.splitlines() if line.strip()]
    if heading:
        paragraphs.insert(0, f"<h2>{_esc(heading)}</h2>")
    return "\n".join(paragraphs)
