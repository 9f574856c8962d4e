"""Tests for shared LLM helpers: JSON parsing, provider checks and usage logging."""

import json
from unittest.mock import MagicMock, patch

import pytest
from pydantic import BaseModel

from app.core.llm import parse_llm_json, parse_llm_json_dict, provider_is_configured
from app.core.llm_usage import estimate_cost, log_llm_usage


class _Item(BaseModel):
    name: str


class TestParseLlmJson:
    def test_plain_json(self):
        assert parse_llm_json('{"name": "a"}', _Item).name == "a"

    def test_fenced_json(self):
        assert parse_llm_json('Here you go:\n```json\n{"name": "b"}\n```', _Item).name == "b"

    def test_unterminated_fence(self):
        assert parse_llm_json('```json\n{"name": "c"}', _Item).name == "c"

    def test_invalid_json(self):
        with pytest.raises(json.JSONDecodeError):
            parse_llm_json_dict("not json")

    def test_non_object(self):
        with pytest.raises(ValueError):
            parse_llm_json_dict("[1, 2]")


class TestProviderIsConfigured:
    @patch("app.core.llm.get_settings")
    def test_checks_matching_key(self, mock_settings):
        mock_settings.return_value = MagicMock(ANTHROPIC_API_KEY="sk-ant", OPENAI_API_KEY="")

        assert provider_is_configured("anthropic") is True
        assert provider_is_configured("openai") is False
        assert provider_is_configured("mystery") is False


class TestLlmUsage:
    def test_estimate_cost(self):
        assert estimate_cost("gpt-4o-mini", 1_000_000, 1_000_000) == pytest.approx(0.75)

    def test_cache_reads_are_discounted(self):
        full = estimate_cost("claude-haiku-4-5-20251001", 1000, 0)
        cached = estimate_cost("claude-haiku-4-5-20251001", 1000, 0, tokens_cache_read=1000)

        assert cached == pytest.approx(full * 0.1)

    def test_unknown_model_costs_nothing(self):
        assert estimate_cost("mystery-model", 1000, 1000) == 0.0

    def test_log_llm_usage_never_raises(self):
        with patch("app.core.llm_usage.estimate_cost", side_effect=RuntimeError("bad pricing")):
            log_llm_usage(
                workflow="clarity_snapshot_panes",
                model="gpt-4o-mini",
                provider="openai",
                tokens_input=10,
                tokens_output=5,
            )
