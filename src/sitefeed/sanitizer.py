# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Content sanitization for extracted feed records.

Feed readers render record bodies as HTML, so extracted markup is cleaned
before it leaves the engine:

1. sanitize_text() — short fields (titles, authors, categories)
2. sanitize_fragment() — HTML bodies: drop scripts/styles/boilerplate regions,
   absolutize ``img[src]`` and ``a[href]``
"""

from __future__ import annotations

import html as _html
import logging
import re

import lxml.html
from lxml import etree

from .document import select
from .normalize import resolve_url

logger = logging.getLogger(__name__)

# Unicode control characters: zero-width chars, bidi overrides, C0/C1 controls
_CONTROL_CHAR_RE = re.compile(
    r"[\u200B-\u200F\u202A-\u202E\u2060-\u2069\uFEFF\uFFF9-\uFFFB"
    r"\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F]"
)

# ANSI escape sequences
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

# Tags removed with their content
_STRIP_TAGS: tuple[str, ...] = ("script", "style", "noscript", "iframe", "object", "embed")

# Boilerplate regions removed with their content
_NOISE_SELECTOR = ", ".join(
    (
        ".asset-footer",
        ".entry-footer",
        ".post-footer",
        ".comments",
        "#comments",
        ".comment-list",
        ".trackbacks",
        ".related-posts",
        ".advertisement",
        ".ad",
        ".ads",
        ".adsbygoogle",
        ".share-buttons",
    )
)

# Schemes left untouched when absolutizing
_KEEP_SCHEMES = ("http://", "https://", "mailto:", "tel:", "data:", "javascript:", "#")

_IMG_STYLE = "max-width: 100%; height: auto;"


def sanitize_text(text: str | None, max_len: int = 512) -> str:
    """Sanitize a short text field.

    - Removes ANSI escape sequences and Unicode control characters
    - Collapses whitespace (including newlines) into single spaces
    - Truncates to max_len
    """
    if not text:
        return ""

    text = _ANSI_ESCAPE_RE.sub("", text)
    text = _CONTROL_CHAR_RE.sub("", text)
    text = re.sub(r"\s+", " ", text).strip()

    if len(text) > max_len:
        text = text[:max_len]
    return text


def _absolutize(value: str, base_url: str) -> str:
    value = value.strip()
    if value.startswith("//"):
        return f"https:{value}"
    if value.lower().startswith(_KEEP_SCHEMES):
        return value
    return resolve_url(base_url, value)


def sanitize_fragment(fragment: str | None, base_url: str) -> str:
    """Clean an HTML fragment and rewrite relative ``src``/``href`` against *base_url*.

    Returns the cleaned fragment (children of a wrapper ``<div>``), or the empty
    string for empty input.
    """
    if not fragment or not fragment.strip():
        return ""

    try:
        wrapper = lxml.html.fragment_fromstring(fragment, create_parent="div")
    except (etree.ParserError, ValueError):
        logger.debug("Fragment parse failed; escaping as text", exc_info=True)
        return f"<p>{_html.escape(sanitize_text(fragment, max_len=50_000))}</p>"

    for el in list(wrapper.iter(*_STRIP_TAGS)):
        el.drop_tree()
    for el in select(wrapper, _NOISE_SELECTOR):
        if el is not wrapper:
            el.drop_tree()
    for el in list(wrapper.iter(etree.Comment)):
        el.drop_tree()

    for img in wrapper.iter("img"):
        src = img.get("src") or img.get("data-src")
        if src:
            img.set("src", _absolutize(src, base_url))
        img.set("style", _IMG_STYLE)

    for a in wrapper.iter("a"):
        href = a.get("href")
        if href:
            a.set("href", _absolutize(href, base_url))

    parts = [wrapper.text or ""]
    for child in wrapper:
        parts.append(etree.tostring(child, encoding="unicode", method="html", with_tail=True))
    return "".join(parts).strip()


def fragment_text(fragment: str | None) -> str:
    """Plain text of an HTML fragment, whitespace-collapsed."""
    if not fragment or not fragment.strip():
        return ""
    try:
        wrapper = lxml.html.fragment_fromstring(fragment, create_parent="div")
    except (etree.ParserError, ValueError):
        return sanitize_text(re.sub(r"<[^>]*>", " ", fragment), max_len=len(fragment))
    return sanitize_text(wrapper.text_content(), max_len=len(fragment))
