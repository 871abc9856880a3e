"""Tests for sitefeed.sanitizer — text fields and HTML record bodies."""

from sitefeed.sanitizer import fragment_text, sanitize_fragment, sanitize_text

BASE = "https://example.com/blog/post.html"


class TestSanitizeText:
    """Tests for sanitize_text (short field sanitization)."""

    # --- Basic functionality ---

    def test_passthrough_normal_text(self):
        assert sanitize_text("阮一峰的网络日志") == "阮一峰的网络日志"

    def test_passthrough_ascii(self):
        assert sanitize_text("Weekly Issue 1") == "Weekly Issue 1"

    def test_empty_string(self):
        assert sanitize_text("") == ""
        assert sanitize_text(None) == ""

    # --- Unicode control character removal ---

    def test_strips_zero_width_space(self):
        assert sanitize_text("Click\u200bhere") == "Clickhere"

    def test_strips_bom(self):
        assert sanitize_text("\ufeffhello") == "hello"

    def test_strips_bidi_override(self):
        assert sanitize_text("text\u202eevil\u202c") == "textevil"

    def test_strips_null_bytes(self):
        assert sanitize_text("hello\x00world") == "helloworld"

    # --- ANSI escape removal ---

    def test_strips_ansi_color(self):
        assert sanitize_text("\x1b[31mred text\x1b[0m") == "red text"

    def test_strips_complex_ansi(self):
        assert sanitize_text("\x1b[38;5;196mcolored\x1b[0m") == "colored"

    # --- Whitespace and length ---

    def test_collapses_newlines(self):
        assert sanitize_text("a\r\n  b\tc") == "a b c"

    def test_truncates_to_max_len(self):
        assert len(sanitize_text("x" * 600)) == 512

    def test_custom_max_len(self):
        assert len(sanitize_text("x" * 200, max_len=100)) == 100


class TestSanitizeFragment:
    """Tests for sanitize_fragment (record bodies)."""

    def test_empty(self):
        assert sanitize_fragment("", BASE) == ""
        assert sanitize_fragment("   ", BASE) == ""
        assert sanitize_fragment(None, BASE) == ""

    def test_strips_script_style_iframe(self):
        html = "<p>keep</p><script>alert(1)</script><style>p{}</style><iframe src='x'></iframe><noscript>n</noscript>"
        out = sanitize_fragment(html, BASE)
        assert out == "<p>keep</p>"

    def test_strips_noise_regions(self):
        html = (
            "<p>body</p>"
            '<div class="entry-footer">footer</div>'
            '<div id="comments">c</div>'
            '<div class="trackbacks">t</div>'
            '<div class="related-posts">r</div>'
            '<div class="advertisement">ad</div>'
        )
        assert sanitize_fragment(html, BASE) == "<p>body</p>"

    def test_strips_html_comments(self):
        assert sanitize_fragment("<p>a<!-- hidden -->b</p>", BASE) == "<p>ab</p>"

    def test_relative_image_rewritten(self):
        out = sanitize_fragment('<img src="/img/a.png">', BASE)
        assert 'src="https://example.com/img/a.png"' in out
        assert 'style="max-width: 100%; height: auto;"' in out

    def test_page_relative_image_rewritten(self):
        out = sanitize_fragment('<img src="img/a.png">', BASE)
        assert 'src="https://example.com/img/a.png"' in out

    def test_lazy_image_data_src(self):
        out = sanitize_fragment('<img data-src="/lazy.png">', BASE)
        assert 'src="https://example.com/lazy.png"' in out

    def test_protocol_relative_upgraded(self):
        out = sanitize_fragment('<img src="//cdn.example.net/a.png">', BASE)
        assert 'src="https://cdn.example.net/a.png"' in out

    def test_absolute_and_special_links_untouched(self):
        html = (
            '<a href="https://other.org/x">a</a>'
            '<a href="mailto:me@example.com">m</a>'
            '<a href="#section">s</a>'
            '<a href="javascript:void(0)">j</a>'
        )
        out = sanitize_fragment(html, BASE)
        assert 'href="https://other.org/x"' in out
        assert 'href="mailto:me@example.com"' in out
        assert 'href="#section"' in out
        assert 'href="javascript:void(0)"' in out

    def test_relative_link_rewritten(self):
        out = sanitize_fragment('<a href="/about">about</a>', BASE)
        assert out == '<a href="https://example.com/about">about</a>'

    def test_leading_text_kept(self):
        assert sanitize_fragment("intro <b>bold</b> tail", BASE) == "intro <b>bold</b> tail"


class TestFragmentText:
    def test_text_of_markup(self):
        assert fragment_text("<p>Hello</p>\n<p>world</p>") == "Hello world"

    def test_empty(self):
        assert fragment_text("") == ""
