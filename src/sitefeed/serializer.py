# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Feed serialization: records + site metadata → feed document.

The pipeline depends only on the ``FeedSerializer`` shape
(``(records, site) -> str``).  The default renders JSON Feed 1.1
(https://jsonfeed.org/version/1.1).
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from email.utils import parsedate_to_datetime
from typing import Any, Protocol

from . import Record, SiteMetadata

JSON_FEED_VERSION = "https://jsonfeed.org/version/1.1"


class FeedSerializer(Protocol):
    def __call__(self, records: Sequence[Record], site: SiteMetadata) -> str: ...


def _rfc3339(published_at: str) -> str | None:
    """RFC 2822 record timestamp → RFC 3339, or None when unparseable."""
    try:
        return parsedate_to_datetime(published_at).isoformat()
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _item(record: Record) -> dict[str, Any]:
    date_published = _rfc3339(record.published_at)
    return {
        "id": record.identifier,
        "url": record.link,
        "title": record.title,
        "content_html": record.body,
        "summary": record.summary,
        **({"date_published": date_published} if date_published else {}),
        **({"authors": [{"name": record.author}]} if record.author else {}),
        **({"tags": [record.category]} if record.category else {}),
        **({"image": record.image} if record.image else {}),
    }


def to_feed_dict(records: Sequence[Record], site: SiteMetadata) -> dict[str, Any]:
    return {
        "version": JSON_FEED_VERSION,
        "title": site.title or site.origin_url,
        "home_page_url": site.origin_url,
        **({"description": site.description} if site.description else {}),
        "items": [_item(r) for r in records],
        "_sitefeed": {
            "archetype": site.archetype.value,
            "platform": site.platform,
        },
    }


def to_json_feed(records: Sequence[Record], site: SiteMetadata, indent: int = 2) -> str:
    """Serialize records to a JSON Feed 1.1 document.

    Args:
        records: extracted records, in order
        site: site-level metadata for the feed header
        indent: JSON indentation level

    Returns:
        JSON string
    """
    return json.dumps(to_feed_dict(records, site), ensure_ascii=False, indent=indent)
