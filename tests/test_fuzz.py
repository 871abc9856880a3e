# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across the sanitizer,
normalization helpers, site classifier, and extractor.
"""

from __future__ import annotations

try:
    from hypothesis import HealthCheck, example, given, settings
    from hypothesis import strategies as st
except ImportError:
    import pytest

    pytest.skip("hypothesis not installed", allow_module_level=True)

import asyncio

import pytest

from sitefeed import Archetype, ClassificationResult
from sitefeed.document import parse_document
from sitefeed.extractor import extract
from sitefeed.normalize import IDENTIFIER_PREFIX, make_identifier, parse_date, resolve_url, summarize
from sitefeed.sanitizer import sanitize_fragment, sanitize_text
from sitefeed.site_classifier import classify_html

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

GENERAL_TEXT = st.text(min_size=0, max_size=5000)

HTML_LIKE = st.text(
    alphabet=st.characters(
        whitelist_categories=("L", "N", "P", "Z"),
        whitelist_characters="<>/=\"'&;#!.- \n\t",
    ),
    min_size=10,
    max_size=3000,
)

VALID_URL = st.from_regex(
    r"https?://[a-z0-9\-]+(\.[a-z]{2,6}){1,2}(/[a-z0-9\-._~]*)?",
    fullmatch=True,
)

_fuzz_settings = settings(
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)


# ---------------------------------------------------------------------------
# TestFuzzSanitizer
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzSanitizer:
    @_fuzz_settings
    @given(text=GENERAL_TEXT)
    @example("\x00hidden\x1ftext")
    def test_sanitize_text_no_control_chars(self, text: str) -> None:
        result = sanitize_text(text)
        for ch in result:
            cp = ord(ch)
            assert not (0x00 <= cp <= 0x1F), f"control char U+{cp:04X} in result"

    @_fuzz_settings
    @given(text=GENERAL_TEXT, max_len=st.integers(1, 1000))
    def test_sanitize_text_respects_max_length(self, text: str, max_len: int) -> None:
        assert len(sanitize_text(text, max_len=max_len)) <= max_len

    @_fuzz_settings
    @given(fragment=HTML_LIKE)
    @example("<script>alert(1)</script><p>x</p>")
    @example("<SCRIPT src=x></SCRIPT>")
    def test_sanitize_fragment_never_emits_script(self, fragment: str) -> None:
        result = sanitize_fragment(fragment, "https://example.com/")
        assert "<script" not in result.lower()


# ---------------------------------------------------------------------------
# TestFuzzNormalize
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzNormalize:
    @_fuzz_settings
    @given(raw=GENERAL_TEXT)
    def test_resolve_url_always_absolute(self, raw: str) -> None:
        assert resolve_url("https://example.com/blog/", raw).startswith("http")

    @_fuzz_settings
    @given(text=GENERAL_TEXT, max_length=st.integers(1, 500))
    def test_summarize_bounded(self, text: str, max_length: int) -> None:
        assert len(summarize(text, max_length)) <= max_length + 3

    @_fuzz_settings
    @given(seed=GENERAL_TEXT, origin=VALID_URL)
    def test_identifier_shape(self, seed: str, origin: str) -> None:
        ident = make_identifier(seed, origin)
        assert ident.startswith(IDENTIFIER_PREFIX)
        assert ident == make_identifier(seed, origin)

    @_fuzz_settings
    @given(text=GENERAL_TEXT)
    @example("0001-01-01T00:00:00+01:00")
    @example("Mon, 01 Jan 99999999999999999999 00:00:00 GMT")
    def test_parse_date_never_raises(self, text: str) -> None:
        result = parse_date(text)
        assert result is None or result.tzinfo is not None


# ---------------------------------------------------------------------------
# TestFuzzClassifier / TestFuzzExtractor
# ---------------------------------------------------------------------------


@pytest.mark.fuzz
class TestFuzzClassifier:
    @_fuzz_settings
    @given(url=VALID_URL, raw_html=HTML_LIKE)
    def test_classify_never_crashes(self, url: str, raw_html: str) -> None:
        result = classify_html(raw_html, url)
        assert isinstance(result, ClassificationResult)
        assert isinstance(result.archetype, Archetype)
        assert 0 <= result.confidence <= 100
        assert result.selector_rules.get("articles")


@pytest.mark.fuzz
class TestFuzzExtractor:
    @_fuzz_settings
    @given(raw_html=HTML_LIKE)
    def test_generic_records_well_formed(self, raw_html: str) -> None:
        classification = classify_html(raw_html, "https://example.com")
        records = asyncio.run(extract(parse_document(raw_html), classification))
        assert len(records) <= 20
        assert len({r.identifier for r in records}) == len(records)
        for r in records:
            assert r.link.startswith("http")
            assert r.title
