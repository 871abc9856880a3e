# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import sitefeed  # noqa: F401
except ImportError:
    raise ImportError("sitefeed is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from sitefeed.config import DEFAULT_FETCH_TIMEOUT, DEFAULT_USER_AGENT
from sitefeed.errors import FetchError
from sitefeed.fetcher import FetchResponse


class FakeFetcher:
    """In-memory ``Fetcher``: URL → body string or exception instance.

    Unknown URLs raise ``FetchError`` with status 404.  Every call is recorded
    in ``calls`` as ``(url, timeout, user_agent)``.
    """

    def __init__(self, responses: dict | None = None) -> None:
        self.responses: dict = dict(responses or {})
        self.calls: list[tuple[str, float, str]] = []

    async def fetch(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> FetchResponse:
        self.calls.append((url, timeout, user_agent))
        result = self.responses.get(url)
        if result is None:
            raise FetchError(f"HTTP 404 for {url}", url=url, status_code=404)
        if isinstance(result, BaseException):
            raise result
        return FetchResponse(status_code=200, body=result, url=url)

    @property
    def urls(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture(autouse=True)
def _clear_structlog_context():
    """Keep contextvars bound by one test from leaking into the next."""
    import structlog

    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
