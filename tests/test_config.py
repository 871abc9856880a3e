# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for sitefeed.config — defaults and SITEFEED_* overrides."""

from __future__ import annotations

import pytest

from sitefeed.config import DEFAULT_USER_AGENT, MAX_RECORDS, TEXT_NODE_KEYWORDS, Settings


class TestDefaults:
    def test_defaults(self):
        s = Settings()
        assert s.user_agent == DEFAULT_USER_AGENT
        assert s.max_records == MAX_RECORDS == 20
        assert s.max_embedded_records == 10
        assert s.enrich_limit == 5
        assert s.enrich_concurrency == 1
        assert s.text_node_keywords == TEXT_NODE_KEYWORDS
        assert s.log_json is False

    def test_user_agent_names_the_bot(self):
        assert DEFAULT_USER_AGENT.startswith("SiteFeedBot/")

    def test_empty_environment(self):
        assert Settings.from_env({}) == Settings()


class TestFromEnv:
    def test_numeric_overrides(self):
        s = Settings.from_env(
            {
                "SITEFEED_FETCH_TIMEOUT": "2.5",
                "SITEFEED_DEADLINE": "30",
                "SITEFEED_MAX_RECORDS": "5",
                "SITEFEED_ENRICH_CONCURRENCY": "3",
            }
        )
        assert s.fetch_timeout == 2.5
        assert s.deadline == 30.0
        assert s.max_records == 5
        assert s.enrich_concurrency == 3

    @pytest.mark.parametrize("raw", ["abc", "-1", "0", " "])
    def test_invalid_timeout_keeps_default(self, raw):
        assert Settings.from_env({"SITEFEED_FETCH_TIMEOUT": raw}).fetch_timeout == Settings().fetch_timeout

    @pytest.mark.parametrize("raw", ["abc", "-3", "1.5"])
    def test_invalid_count_keeps_default(self, raw):
        assert Settings.from_env({"SITEFEED_MAX_RECORDS": raw}).max_records == MAX_RECORDS

    def test_user_agent(self):
        assert Settings.from_env({"SITEFEED_USER_AGENT": " MyBot/2 "}).user_agent == "MyBot/2"

    def test_keywords(self):
        s = Settings.from_env({"SITEFEED_TEXT_KEYWORDS": "Design, Research,, ux "})
        assert s.text_node_keywords == ("design", "research", "ux")

    @pytest.mark.parametrize("raw,expected", [("1", True), ("TRUE", True), ("yes", True), ("0", False), ("", False)])
    def test_log_json(self, raw, expected):
        assert Settings.from_env({"SITEFEED_LOG_JSON": raw}).log_json is expected

    def test_log_level_uppercased(self):
        assert Settings.from_env({"SITEFEED_LOG_LEVEL": "debug"}).log_level == "DEBUG"

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SITEFEED_ENRICH_LIMIT", "2")
        assert Settings.from_env().enrich_limit == 2

    def test_frozen(self):
        with pytest.raises(AttributeError):
            Settings().max_records = 1  # type: ignore[misc]
