# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime settings with environment overrides.

Defaults live in module constants so that extraction code and tests can refer
to them directly.  ``Settings.from_env()`` layers ``SITEFEED_*`` variables on
top; unparseable values keep the default.
"""

from __future__ import annotations

import dataclasses
import os
from contextlib import suppress

try:
    from importlib.metadata import version as _pkg_version

    SITEFEED_VERSION = _pkg_version("retio-sitefeed")
except Exception:
    SITEFEED_VERSION = "unknown"

DEFAULT_USER_AGENT = f"SiteFeedBot/{SITEFEED_VERSION} (+https://github.com/retio-ai/sitefeed)"
DEFAULT_FETCH_TIMEOUT = 10.0  # seconds, per secondary fetch
DEFAULT_PAGE_FETCH_TIMEOUT = 15.0  # seconds, original page
DEFAULT_DEADLINE = 45.0  # seconds, classify + extract

MAX_RECORDS = 20
MAX_EMBEDDED_RECORDS = 10
MIN_GENERIC_TITLE_LENGTH = 6
ENRICH_LIMIT = 5
ENRICH_CONCURRENCY = 1

# Embedded-data text node filter
TEXT_NODE_MIN_CHARS = 30
TEXT_NODE_MAX_CHARS = 200
TEXT_NODE_KEYWORDS: tuple[str, ...] = ("design", "project", "developed", "led")

_TRUTHY = ("1", "true", "yes")


@dataclasses.dataclass(frozen=True, slots=True, kw_only=True)
class Settings:
    """Tunable knobs for fetching and extraction."""

    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    page_fetch_timeout: float = DEFAULT_PAGE_FETCH_TIMEOUT
    deadline: float = DEFAULT_DEADLINE
    max_records: int = MAX_RECORDS
    max_embedded_records: int = MAX_EMBEDDED_RECORDS
    min_generic_title_length: int = MIN_GENERIC_TITLE_LENGTH
    enrich_limit: int = ENRICH_LIMIT
    enrich_concurrency: int = ENRICH_CONCURRENCY
    text_node_min_chars: int = TEXT_NODE_MIN_CHARS
    text_node_max_chars: int = TEXT_NODE_MAX_CHARS
    text_node_keywords: tuple[str, ...] = TEXT_NODE_KEYWORDS
    log_json: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from ``SITEFEED_*`` environment variables."""
        env = os.environ if environ is None else environ
        overrides: dict = {}

        ua = env.get("SITEFEED_USER_AGENT", "").strip()
        if ua:
            overrides["user_agent"] = ua

        for var, name in (
            ("SITEFEED_FETCH_TIMEOUT", "fetch_timeout"),
            ("SITEFEED_PAGE_FETCH_TIMEOUT", "page_fetch_timeout"),
            ("SITEFEED_DEADLINE", "deadline"),
        ):
            raw = env.get(var, "").strip()
            if raw:
                with suppress(ValueError):
                    value = float(raw)
                    if value > 0:
                        overrides[name] = value

        for var, name in (
            ("SITEFEED_MAX_RECORDS", "max_records"),
            ("SITEFEED_MIN_TITLE_LENGTH", "min_generic_title_length"),
            ("SITEFEED_ENRICH_LIMIT", "enrich_limit"),
            ("SITEFEED_ENRICH_CONCURRENCY", "enrich_concurrency"),
        ):
            raw = env.get(var, "").strip()
            if raw:
                with suppress(ValueError):
                    value = int(raw)
                    if value >= 0:
                        overrides[name] = value

        keywords = env.get("SITEFEED_TEXT_KEYWORDS", "").strip()
        if keywords:
            overrides["text_node_keywords"] = tuple(k.strip().lower() for k in keywords.split(",") if k.strip())

        overrides["log_json"] = env.get("SITEFEED_LOG_JSON", "").strip().lower() in _TRUTHY

        level = env.get("SITEFEED_LOG_LEVEL", "").strip().upper()
        if level:
            overrides["log_level"] = level

        return cls(**overrides)
