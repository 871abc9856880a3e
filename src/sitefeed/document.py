# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Queryable parsed HTML document (lxml + cssselect).

The engine never parses markup itself; it receives a ``Document`` and asks it
structural questions.  Queries never raise: a broken selector or an empty page
simply yields no matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

import lxml.html
from lxml import etree
from lxml.cssselect import CSSSelector, SelectorError

logger = logging.getLogger(__name__)

_EMPTY_HTML = "<html><head></head><body></body></html>"


@lru_cache(maxsize=512)
def _compile(selector: str) -> CSSSelector | None:
    """Compile a CSS selector once; None when the selector is invalid."""
    try:
        return CSSSelector(selector, translator="html")
    except (SelectorError, etree.XPathSyntaxError):
        logger.debug("Invalid selector ignored: %r", selector)
        return None


def select(el: lxml.html.HtmlElement, selector: str) -> list[lxml.html.HtmlElement]:
    """All elements under *el* (including *el*) matching *selector*, in document order."""
    if not selector or el is None:
        return []
    compiled = _compile(selector)
    if compiled is None:
        return []
    return [m for m in compiled(el) if isinstance(m, lxml.html.HtmlElement)]


def matches(el: lxml.html.HtmlElement, selector: str) -> bool:
    """Whether *el* itself matches *selector*."""
    return any(m is el for m in select(el, selector))


def first_descendant(el: lxml.html.HtmlElement, selector: str) -> lxml.html.HtmlElement | None:
    """First strict descendant matching *selector*, else *el* if it matches itself."""
    found = select(el, selector)
    for m in found:
        if m is not el:
            return m
    if found and found[0] is el:
        return el
    return None


def text_of(el: lxml.html.HtmlElement | None) -> str:
    if el is None:
        return ""
    return el.text_content()


def inner_html(el: lxml.html.HtmlElement | None) -> str:
    """Serialized children of *el* (text + child markup), without the element's own tag."""
    if el is None:
        return ""
    parts = [el.text or ""]
    for child in el:
        parts.append(etree.tostring(child, encoding="unicode", method="html", with_tail=True))
    return "".join(parts).strip()


@dataclass(frozen=True, slots=True)
class Document:
    """Immutable view of a parsed page: raw markup + lxml tree."""

    raw_html: str
    root: lxml.html.HtmlElement

    def select(self, selector: str) -> list[lxml.html.HtmlElement]:
        return select(self.root, selector)

    def select_first(self, selector: str) -> lxml.html.HtmlElement | None:
        found = select(self.root, selector)
        return found[0] if found else None

    def count(self, selector: str) -> int:
        return len(select(self.root, selector))

    def meta_content(self, *, name: str | None = None, prop: str | None = None) -> str:
        """Content attribute of the first ``<meta name=...>`` or ``<meta property=...>``."""
        for meta in self.root.iter("meta"):
            if name is not None and (meta.get("name") or "").lower() == name.lower():
                return meta.get("content") or ""
            if prop is not None and (meta.get("property") or "").lower() == prop.lower():
                return meta.get("content") or ""
        return ""

    @property
    def body_classes(self) -> frozenset[str]:
        body = self.root.find(".//body")
        if body is None:
            return frozenset()
        return frozenset((body.get("class") or "").split())


def parse_document(raw_html: str | bytes | None) -> Document:
    """Parse markup into a ``Document``.  Empty or unparseable input yields an empty page."""
    if isinstance(raw_html, bytes):
        raw_html = raw_html.decode("utf-8", errors="replace")
    raw_html = raw_html or ""

    source = raw_html if raw_html.strip() else _EMPTY_HTML
    try:
        parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
        root = lxml.html.document_fromstring(source.encode("utf-8"), parser=parser)
    except (etree.ParserError, ValueError):
        logger.debug("Document parse failed, using empty document", exc_info=True)
        root = lxml.html.document_fromstring(_EMPTY_HTML)
    return Document(raw_html=raw_html, root=root)
