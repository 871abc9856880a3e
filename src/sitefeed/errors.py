# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SiteFeed exception hierarchy.

All SiteFeed-specific errors inherit from SiteFeedError, allowing callers
to catch the base class for any SiteFeed failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class SiteFeedError(Exception):
    """Base exception for all SiteFeed errors."""


class FetchError(SiteFeedError):
    """Network fetch failed: transport error, timeout, or non-2xx status."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PayloadError(SiteFeedError):
    """Embedded JSON payload was missing, malformed, or of an unexpected shape."""


class DeadlineExceededError(SiteFeedError):
    """classify + extract did not finish within the overall deadline."""

    def __init__(self, message: str, *, deadline: float = 0.0) -> None:
        super().__init__(message)
        self.deadline = deadline


class FeedGenerationError(SiteFeedError):
    """Feed could not be produced for a URL (fatal, page-level)."""

    def __init__(self, message: str, *, url: str = "", cached: bool = False) -> None:
        super().__init__(message)
        self.url = url
        self.cached = cached
