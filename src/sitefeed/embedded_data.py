# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Embedded-data strategy for design-tool exported portfolio sites.

Some portfolio builders ship an almost empty HTML shell and preload the real
content as a JSON document (``<link rel="preload" href="/_json/<id>.json">``).
The payload is a node graph keyed by id (``nodeById``).  Two kinds of nodes
become records:

  1. interaction nodes whose first action navigates to a same-site path
     → one "project" record per distinct path
  2. ``TEXT`` nodes with a descriptive sentence of moderate length
     → one record per distinct leading snippet

Any failure (fetch, status, JSON, shape) yields an empty list; the extractor
then falls back to the generic strategy.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from . import ClassificationResult, Record
from .config import Settings
from .errors import FetchError, PayloadError
from .fetcher import Fetcher
from .normalize import (
    capitalize,
    collapse_whitespace,
    format_timestamp,
    make_identifier,
    paragraphs_fragment,
    project_fragment,
    resolve_url,
)
from .sanitizer import sanitize_text

logger = logging.getLogger(__name__)

CATEGORY = "Design"

# rel before href, or href before rel
_PAYLOAD_RES: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"""<link\b[^>]*\brel=["']?preload["']?[^>]*\bhref=["']([^"']*/_json/[^"']*\.json)["']""",
        re.IGNORECASE,
    ),
    re.compile(
        r"""<link\b[^>]*\bhref=["']([^"']*/_json/[^"']*\.json)["'][^>]*\brel=["']?preload["']?""",
        re.IGNORECASE,
    ),
)

_TITLE_MAX = 60
_TITLE_CUT = 57
_MAX_PROJECT_NAME = 30
_TEXT_KEY_CHARS = 20


def find_payload_path(raw_html: str | None) -> str | None:
    """Href of the preloaded ``/_json/*.json`` payload, or None."""
    if not raw_html or "_json/" not in raw_html:
        return None
    for pattern in _PAYLOAD_RES:
        m = pattern.search(raw_html)
        if m:
            return m.group(1)
    return None


def _project_paths(node: dict[str, Any]) -> list[str]:
    """Same-site navigation targets from the first action of each interaction."""
    interactions = node.get("interactions")
    if not isinstance(interactions, list):
        return []
    paths: list[str] = []
    for interaction in interactions:
        if not isinstance(interaction, dict):
            continue
        actions = interaction.get("actions")
        if not isinstance(actions, list) or not actions or not isinstance(actions[0], dict):
            continue
        target = actions[0].get("connectionURL")
        if isinstance(target, str) and target.startswith("/") and len(target) > 1 and "http" not in target:
            paths.append(target)
    return paths


def records_from_payload(
    payload: Any,
    origin_url: str,
    *,
    settings: Settings | None = None,
    now: str | None = None,
) -> list[Record]:
    """Walk ``payload["nodeById"]`` in insertion order and build records.

    Raises:
        PayloadError: payload is not an object with a ``nodeById`` mapping.
    """
    settings = settings or Settings()
    now = now or format_timestamp()

    if not isinstance(payload, dict):
        raise PayloadError(f"Payload root is {type(payload).__name__}, expected object")
    nodes = payload.get("nodeById")
    if not isinstance(nodes, dict):
        raise PayloadError("Payload has no nodeById mapping")

    keywords = tuple(k.lower() for k in settings.text_node_keywords)
    seen: set[str] = set()
    records: list[Record] = []

    for node in nodes.values():
        if not isinstance(node, dict):
            continue

        for path in _project_paths(node):
            name = path[1:].replace("-", " ", 1)
            key = f"project-{name}"
            if not name or len(name) >= _MAX_PROJECT_NAME or key in seen:
                continue
            seen.add(key)
            link = resolve_url(origin_url, path)
            records.append(
                Record(
                    title=sanitize_text(f"{capitalize(name)} - Portfolio Project"),
                    link=link,
                    summary=(
                        f"Explore the {name} project featuring innovative design work, "
                        "UX research, and creative solutions."
                    ),
                    body=project_fragment(name, link),
                    published_at=now,
                    identifier=make_identifier(key, origin_url),
                    category=CATEGORY,
                )
            )

        characters = node.get("characters")
        if node.get("type") == "TEXT" and isinstance(characters, str):
            text = characters.strip()
            if not settings.text_node_min_chars < len(text) < settings.text_node_max_chars:
                continue
            lowered = text.lower()
            if not any(kw in lowered for kw in keywords):
                continue
            key = f"text-{text[:_TEXT_KEY_CHARS]}"
            if key in seen:
                continue
            seen.add(key)
            title = text[:_TITLE_CUT] + "..." if len(text) > _TITLE_MAX else text
            records.append(
                Record(
                    title=sanitize_text(title.replace("\n", " ")),
                    link=origin_url,
                    summary=collapse_whitespace(text.replace("\n", " ")),
                    body=paragraphs_fragment(text),
                    published_at=now,
                    identifier=make_identifier(key, origin_url),
                    category=CATEGORY,
                )
            )

    return records[: settings.max_embedded_records]


async def extract_embedded(
    raw_html: str,
    classification: ClassificationResult,
    fetcher: Fetcher,
    *,
    settings: Settings | None = None,
) -> list[Record]:
    """Fetch the preloaded payload once and turn it into records.

    Returns an empty list on any failure.
    """
    settings = settings or Settings()
    origin = classification.origin_url

    path = find_payload_path(raw_html)
    if path is None:
        return []
    payload_url = resolve_url(origin, path)

    try:
        response = await fetcher.fetch(
            payload_url, timeout=settings.fetch_timeout, user_agent=settings.user_agent
        )
        try:
            payload = json.loads(response.body)
            records = records_from_payload(payload, origin, settings=settings)
        except (ValueError, TypeError, RecursionError) as e:
            raise PayloadError(f"Payload is not usable JSON: {e}") from e
    except (FetchError, PayloadError) as e:
        logger.warning("Embedded payload unusable for %s: %s", origin, e)
        return []

    logger.debug("Embedded payload %s yielded %d records", payload_url, len(records))
    return records
