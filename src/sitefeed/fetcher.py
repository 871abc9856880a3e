# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Network collaborator: one-shot HTTP GET with an explicit timeout.

The extractor only depends on the ``Fetcher`` protocol.  ``UrllibFetcher``
runs ``urllib.request`` in a worker thread bounded by ``asyncio.wait_for``.
No retries: a failure is reported once as ``FetchError``.
"""

from __future__ import annotations

import asyncio
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol

from .config import DEFAULT_FETCH_TIMEOUT, DEFAULT_USER_AGENT
from .errors import FetchError

logger = logging.getLogger(__name__)

_MAX_BODY_BYTES = 10 * 1024 * 1024  # 10MB
_THREAD_GRACE = 5.0  # seconds on top of the socket timeout


@dataclass(frozen=True, slots=True)
class FetchResponse:
    status_code: int
    body: str
    url: str  # final URL after redirects


class Fetcher(Protocol):
    async def fetch(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> FetchResponse: ...


def _charset(resp) -> str:
    try:
        return resp.headers.get_content_charset() or "utf-8"
    except AttributeError:
        return "utf-8"


class UrllibFetcher:
    """``Fetcher`` backed by ``urllib.request``."""

    def __init__(self, *, max_bytes: int = _MAX_BODY_BYTES) -> None:
        self._max_bytes = max_bytes

    async def fetch(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> FetchResponse:
        """GET *url*; raise ``FetchError`` on transport failure, timeout or non-2xx."""

        def _sync_fetch() -> FetchResponse:
            req = urllib.request.Request(
                url,
                headers={
                    "User-Agent": user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
                },
            )
            try:
                with urllib.request.urlopen(req, timeout=timeout) as resp:  # noqa: S310  # nosec B310
                    status = resp.status
                    if not 200 <= status < 300:
                        raise FetchError(f"HTTP {status} for {url}", url=url, status_code=status)
                    raw = resp.read(self._max_bytes)
                    body = raw.decode(_charset(resp), errors="replace")
                    return FetchResponse(status_code=status, body=body, url=resp.geturl() or url)
            except urllib.error.HTTPError as e:
                raise FetchError(f"HTTP {e.code} for {url}", url=url, status_code=e.code) from e
            except (urllib.error.URLError, OSError, ValueError) as e:
                raise FetchError(f"Fetch failed for {url}: {e}", url=url) from e

        try:
            return await asyncio.wait_for(asyncio.to_thread(_sync_fetch), timeout=timeout + _THREAD_GRACE)
        except TimeoutError as e:
            logger.debug("Fetch timed out after %.1fs: %s", timeout, url)
            raise FetchError(f"Timed out after {timeout:.1f}s: {url}", url=url) from e
