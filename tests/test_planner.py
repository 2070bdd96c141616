"""Tests for the LLM search planner."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from src.errors import LLMUnavailable
from src.pipeline_config import SearchMode
from src.retrieval.models import HistoryTurn
from src.retrieval.planner import (
    MAX_QUERIES,
    default_plan,
    extract_json_object,
    format_history,
    parse_plan,
    plan_search,
)


def _plan_json(**overrides: object) -> str:
    data = {
        "searchQueries": ["Brian Chesky hiring philosophy", "Airbnb early team building"],
        "guestFilter": "Brian Chesky",
        "searchMode": "focused",
        "intent": "How Brian Chesky hires",
    }
    data.update(overrides)
    return json.dumps(data)


class TestExtractJsonObject:
    def test_plain_object(self) -> None:
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_object_inside_prose(self) -> None:
        text = 'Sure! Here is the plan:\n```json\n{"a": {"b": 2}}\n```\nHope it helps.'
        assert extract_json_object(text) == {"a": {"b": 2}}

    def test_skips_broken_braces(self) -> None:
        assert extract_json_object('use {curly} style then {"ok": true}') == {"ok": True}

    def test_no_object(self) -> None:
        assert extract_json_object("I cannot help with that.") is None
        assert extract_json_object("[1, 2]") is None


class TestParsePlan:
    def test_valid_plan(self) -> None:
        plan = parse_plan(json.loads(_plan_json()), "q")
        assert plan.queries == ["Brian Chesky hiring philosophy", "Airbnb early team building"]
        assert plan.guest_filter == "Brian Chesky"
        assert plan.mode is SearchMode.FOCUSED
        assert plan.intent == "How Brian Chesky hires"

    def test_queries_capped(self) -> None:
        plan = parse_plan({"searchQueries": [f"q{i}" for i in range(7)]}, "q")
        assert len(plan.queries) == MAX_QUERIES

    def test_missing_queries_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_plan({"guestFilter": None}, "q")

    def test_empty_queries_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_plan({"searchQueries": ["", "  ", 3]}, "q")

    def test_unknown_mode_and_blank_fields_defaulted(self) -> None:
        plan = parse_plan(
            {"searchQueries": ["x"], "searchMode": "wide", "guestFilter": " ", "intent": ""},
            "original question",
        )
        assert plan.mode is SearchMode.BROAD
        assert plan.guest_filter is None
        assert plan.intent == "original question"


class TestFormatHistory:
    def test_keeps_recent_turns_truncated(self) -> None:
        history = [HistoryTurn("user", f"message {i} " + "x" * 400) for i in range(6)]
        text = format_history(history, max_turns=4, max_chars=300)
        lines = text.split("\n")
        assert len(lines) == 4
        assert lines[0].startswith("user: message 2 ")
        assert all(len(line) == len("user: ") + 300 for line in lines)

    def test_empty(self) -> None:
        assert format_history([]) == ""


class TestPlanSearch:
    @pytest.mark.asyncio
    async def test_uses_llm_plan(self) -> None:
        complete_fn = AsyncMock(return_value=_plan_json())
        plan = await plan_search("How does Chesky hire?", complete_fn=complete_fn)
        assert plan.guest_filter == "Brian Chesky"
        assert plan.mode is SearchMode.FOCUSED

    @pytest.mark.asyncio
    async def test_history_in_prompt(self) -> None:
        complete_fn = AsyncMock(return_value=_plan_json())
        history = [HistoryTurn("user", "Tell me about Julie Zhuo"), HistoryTurn("assistant", "Sure")]

        await plan_search("What does she think?", history, complete_fn=complete_fn)

        _, user_prompt = complete_fn.call_args.args
        assert "user: Tell me about Julie Zhuo" in user_prompt
        assert user_prompt.endswith("Question: What does she think?")

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self) -> None:
        complete_fn = AsyncMock(side_effect=LLMUnavailable("down"))
        plan = await plan_search("pricing advice", complete_fn=complete_fn)
        assert plan == default_plan("pricing advice")

    @pytest.mark.asyncio
    async def test_prose_falls_back(self) -> None:
        complete_fn = AsyncMock(return_value="I think you should search for pricing.")
        plan = await plan_search("pricing advice", complete_fn=complete_fn)
        assert plan.queries == ["pricing advice"]
        assert plan.guest_filter is None
        assert plan.mode is SearchMode.BROAD

    @pytest.mark.asyncio
    async def test_wrong_shape_falls_back(self) -> None:
        complete_fn = AsyncMock(return_value='{"queries": "pricing"}')
        plan = await plan_search("pricing advice", complete_fn=complete_fn)
        assert plan == default_plan("pricing advice")

    @pytest.mark.asyncio
    async def test_missing_key_falls_back(self) -> None:
        with patch("src.retrieval.planner.settings") as mock_settings:
            mock_settings.anthropic_api_key = ""
            plan = await plan_search("pricing advice")
        assert plan == default_plan("pricing advice")
