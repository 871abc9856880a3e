# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitefeed.normalize — URLs, summaries, identifiers, dates, fragments."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from sitefeed.normalize import (
    ELLIPSIS,
    IDENTIFIER_PREFIX,
    format_timestamp,
    make_identifier,
    paragraphs_fragment,
    parse_date,
    portfolio_fragment,
    product_fragment,
    project_fragment,
    resolve_url,
    site_root,
    summarize,
    timestamp_or_now,
)

ORIGIN = "https://example.com"

# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


class TestResolveUrl:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("https://x.com/a", "https://x.com/a"),
            ("//cdn.x.com/a.png", "https://cdn.x.com/a.png"),
            ("/a", "https://example.com/a"),
            ("a", "https://example.com/a"),
        ],
    )
    def test_four_cases(self, raw, expected):
        assert resolve_url(ORIGIN, raw) == expected

    def test_empty_resolves_to_origin(self):
        assert resolve_url(ORIGIN, "") == ORIGIN
        assert resolve_url(ORIGIN, None) == ORIGIN
        assert resolve_url(ORIGIN, "   ") == ORIGIN

    def test_origin_path_ignored(self):
        assert resolve_url("https://example.com/blog/", "/p/1") == "https://example.com/p/1"
        assert resolve_url("https://example.com/blog/", "p/1") == "https://example.com/p/1"

    def test_site_root_keeps_port(self):
        assert site_root("http://localhost:8080/x/y?z=1") == "http://localhost:8080"


# ---------------------------------------------------------------------------
# Summaries and identifiers
# ---------------------------------------------------------------------------


class TestSummarize:
    def test_short_text_unchanged(self):
        assert summarize("  hello   world ") == "hello world"

    def test_long_text_cut_with_marker(self):
        out = summarize("a" * 250, 200)
        assert len(out) == 203
        assert out.endswith(ELLIPSIS)

    def test_exact_length_not_marked(self):
        assert summarize("b" * 200, 200) == "b" * 200

    def test_empty(self):
        assert summarize("") == ""
        assert summarize(None) == ""


class TestIdentifier:
    def test_shape(self):
        ident = make_identifier("https://example.com/post1", ORIGIN)
        assert ident.startswith(IDENTIFIER_PREFIX)
        assert len(ident) == len(IDENTIFIER_PREFIX) + 16
        int(ident[len(IDENTIFIER_PREFIX) :], 16)

    def test_stable(self):
        assert make_identifier("seed", ORIGIN) == make_identifier("seed", ORIGIN)

    def test_salted_by_origin(self):
        assert make_identifier("seed", ORIGIN) != make_identifier("seed", "https://other.com")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class TestParseDate:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("2024-03-05T10:00:00Z", datetime(2024, 3, 5, 10, tzinfo=UTC)),
            ("2024-03-05T19:00:00+09:00", datetime(2024, 3, 5, 10, tzinfo=UTC)),
            ("Tue, 05 Mar 2024 10:00:00 GMT", datetime(2024, 3, 5, 10, tzinfo=UTC)),
            ("2024-03-05", datetime(2024, 3, 5, tzinfo=UTC)),
            ("Posted 2024.3.5 by admin", datetime(2024, 3, 5, tzinfo=UTC)),
            ("2024年3月5日", datetime(2024, 3, 5, tzinfo=UTC)),
            ("2024년 3월 5일", datetime(2024, 3, 5, tzinfo=UTC)),
            ("2024/03/05", datetime(2024, 3, 5, tzinfo=UTC)),
        ],
    )
    def test_formats(self, text, expected):
        assert parse_date(text) == expected

    @pytest.mark.parametrize("text", ["", None, "yesterday", "2024-13-45"])
    def test_unparseable(self, text):
        assert parse_date(text) is None

    def test_format_timestamp(self):
        assert format_timestamp(datetime(2024, 1, 1, tzinfo=UTC)) == "Mon, 01 Jan 2024 00:00:00 GMT"

    def test_format_timestamp_defaults_to_now(self):
        assert format_timestamp().endswith(" GMT")

    def test_timestamp_or_now(self):
        now = "Mon, 01 Jan 2024 00:00:00 GMT"
        assert timestamp_or_now("garbage", now) == now
        assert timestamp_or_now("2024-02-02", now) == "Fri, 02 Feb 2024 00:00:00 GMT"


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------


class TestFragments:
    def test_portfolio_fragment_escapes(self):
        out = portfolio_fragment("A <b> & C", "desc", "https://x.com/i.png")
        assert "<h2>A &lt;b&gt; &amp; C</h2>" in out
        assert '<img src="https://x.com/i.png"' in out

    def test_portfolio_fragment_without_image(self):
        assert "<img" not in portfolio_fragment("T", "", None)

    def test_product_fragment(self):
        out = product_fragment("Shirt", "Cotton", "$20")
        assert out == "<h2>Shirt</h2><p><strong>Price: $20</strong></p><p>Cotton</p>"

    def test_project_fragment(self):
        out = project_fragment("travel app", "https://x.com/travel-app")
        assert out.startswith("<h2>Travel app - Design Project</h2>")
        assert 'href="https://x.com/travel-app"' in out

    def test_paragraphs_fragment(self):
        assert paragraphs_fragment("one\n\ntwo", heading="H") == "<h2>H</h2>\n<p>one</p>\n<p>two</p>"
