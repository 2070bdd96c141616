"""Tests for the Supabase-backed episode store."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.errors import StoreUnavailable
from src.retrieval.store import EpisodeStore, sanitize_pattern

EPISODE_ROW = {
    "id": "ep1",
    "title": "Positioning",
    "slug": "positioning",
    "guest_name": "April Dunford",
    "summary": None,
    "publish_date": "2023-01-01",
}


def _result(data: list[dict]) -> AsyncMock:
    return AsyncMock(return_value=MagicMock(data=data))


class TestSanitizePattern:
    def test_strips_filter_syntax(self) -> None:
        assert sanitize_pattern("100%_off, (now)*") == "100 off now"

    def test_blank(self) -> None:
        assert sanitize_pattern("%%") == ""


class TestEpisodeStore:
    @pytest.mark.asyncio
    async def test_nearest_calls_rpc(self) -> None:
        client = MagicMock()
        client.rpc.return_value.execute = _result(
            [
                {"id": "c1", "episode_id": "ep1", "content": "x", "chunk_index": 3, "similarity": 0.7},
                {"id": "c2", "content": "missing episode id", "similarity": 0.6},
            ]
        )

        matches = await EpisodeStore(client).nearest([0.1, 0.2], 0.1, 8, episode_id="ep1")

        client.rpc.assert_called_once_with(
            "match_chunks",
            {
                "query_embedding": [0.1, 0.2],
                "match_threshold": 0.1,
                "match_count": 8,
                "filter_episode_id": "ep1",
            },
        )
        assert [m.id for m in matches] == ["c1"]
        assert matches[0].chunk_index == 3

    @pytest.mark.asyncio
    async def test_find_episodes_uses_ilike(self) -> None:
        client = MagicMock()
        query = client.table.return_value.select.return_value.or_.return_value.limit.return_value
        query.execute = _result([EPISODE_ROW])

        episodes = await EpisodeStore(client).find_episodes("April, Dunford", 5)

        client.table.return_value.select.return_value.or_.assert_called_once_with(
            "title.ilike.%April Dunford%,guest_name.ilike.%April Dunford%"
        )
        assert episodes[0].guest_name == "April Dunford"

    @pytest.mark.asyncio
    async def test_find_episodes_blank_pattern_skips_query(self) -> None:
        client = MagicMock()
        assert await EpisodeStore(client).find_episodes("%", 5) == []
        client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_episodes_empty_ids(self) -> None:
        client = MagicMock()
        assert await EpisodeStore(client).get_episodes([]) == []
        client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_full_episode_missing(self) -> None:
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute = _result([])
        assert await EpisodeStore(client).get_full_episode("nope") is None

    @pytest.mark.asyncio
    async def test_transport_error_becomes_store_unavailable(self) -> None:
        client = MagicMock()
        client.rpc.return_value.execute = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(StoreUnavailable):
            await EpisodeStore(client).nearest([0.1], 0.1, 5)
