# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for hosts embedding the feed engine.

Engine modules log through plain ``logging.getLogger(__name__)``; this module
routes those records through structlog so that the ``url`` bound by
``FeedPipeline.run`` shows up on every line.  Console hosts get
ConsoleRenderer, log shippers get one JSON object per line with structured
tracebacks.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from .config import Settings


def _shared_processors(json_output: bool) -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.dict_tracebacks if json_output else structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure(
    settings: Settings | None = None,
    *,
    json_output: bool | None = None,
    level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog with stdlib bridge.

    Explicit keyword arguments win over *settings*; without either the
    ``SITEFEED_LOG_JSON`` / ``SITEFEED_LOG_LEVEL`` environment is used.

    Args:
        settings: source of ``log_json`` and ``log_level``.
        json_output: True for JSON lines, False for human-readable output.
        level: root logger level name; unknown names fall back to INFO.
        stream: handler stream (default stderr, looked up at call time).
    """
    settings = settings or Settings.from_env()
    json_output = settings.log_json if json_output is None else json_output
    level = settings.log_level if level is None else level

    shared = _shared_processors(json_output)
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=shared,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))
