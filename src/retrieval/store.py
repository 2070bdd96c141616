"""Read-side access to episodes and chunks in Supabase.

Rows are validated into typed records here so that nothing above this
layer handles raw dictionaries.
"""

from __future__ import annotations

import logging
import re
from typing import Any, TypeVar, cast

import httpx
from postgrest.exceptions import APIError
from pydantic import BaseModel, ValidationError
from supabase import AsyncClient

from src.errors import StoreUnavailable
from src.retrieval.models import ChunkMatch, EpisodeRecord, FullEpisode

logger = logging.getLogger(__name__)

EPISODE_COLUMNS = "id, title, slug, guest_name, summary, publish_date"

# Characters with meaning in LIKE patterns or PostgREST filter strings
_PATTERN_UNSAFE_RE = re.compile(r"[%_\\,()\"*:]")

RecordT = TypeVar("RecordT", bound=BaseModel)


def sanitize_pattern(term: str) -> str:
    """Make *term* safe to embed in an ``ilike`` filter value."""
    return " ".join(_PATTERN_UNSAFE_RE.sub(" ", term).split())


def _validate_rows(model: type[RecordT], rows: Any) -> list[RecordT]:
    records: list[RecordT] = []
    for row in cast(list[dict[str, Any]], rows or []):
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Dropping malformed %s row %r: %s", model.__name__, row.get("id"), exc)
    return records


class EpisodeStore:
    """Nearest-neighbour, pattern and key lookups over episodes and chunks."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def _execute(self, request: Any) -> Any:
        try:
            result = await request.execute()
        except (APIError, httpx.HTTPError) as exc:
            raise StoreUnavailable(f"Datastore query failed: {exc}") from exc
        return result.data

    async def nearest(
        self,
        embedding: list[float],
        threshold: float,
        k: int,
        episode_id: str | None = None,
    ) -> list[ChunkMatch]:
        """Chunks most similar to *embedding*, best first.

        Chunks without an embedding are never returned.
        """
        data = await self._execute(
            self._client.rpc(
                "match_chunks",
                {
                    "query_embedding": embedding,
                    "match_threshold": threshold,
                    "match_count": k,
                    "filter_episode_id": episode_id,
                },
            )
        )
        return _validate_rows(ChunkMatch, data)

    async def find_episodes(self, pattern: str, k: int) -> list[EpisodeRecord]:
        """Episodes whose title or guest name contains *pattern* (case-insensitive)."""
        term = sanitize_pattern(pattern)
        if not term:
            return []
        data = await self._execute(
            self._client.table("episodes")
            .select(EPISODE_COLUMNS)
            .or_(f"title.ilike.%{term}%,guest_name.ilike.%{term}%")
            .limit(k)
        )
        return _validate_rows(EpisodeRecord, data)

    async def find_episodes_any(self, words: list[str], k: int) -> list[EpisodeRecord]:
        """Episodes whose title or guest name contains any of *words*."""
        terms = [t for t in (sanitize_pattern(w) for w in words) if t]
        if not terms:
            return []
        conditions = ",".join(
            f"guest_name.ilike.%{t}%,title.ilike.%{t}%" for t in terms
        )
        data = await self._execute(
            self._client.table("episodes").select(EPISODE_COLUMNS).or_(conditions).limit(k)
        )
        return _validate_rows(EpisodeRecord, data)

    async def search_episodes_text(self, query: str, k: int) -> list[EpisodeRecord]:
        """Substring match over title, guest name and transcript."""
        term = sanitize_pattern(query)
        if not term:
            return []
        data = await self._execute(
            self._client.table("episodes")
            .select(EPISODE_COLUMNS)
            .or_(
                f"title.ilike.%{term}%,guest_name.ilike.%{term}%,"
                f"raw_transcript.ilike.%{term}%"
            )
            .limit(k)
        )
        return _validate_rows(EpisodeRecord, data)

    async def get_episodes(self, ids: list[str]) -> list[EpisodeRecord]:
        if not ids:
            return []
        data = await self._execute(
            self._client.table("episodes").select(EPISODE_COLUMNS).in_("id", ids)
        )
        return _validate_rows(EpisodeRecord, data)

    async def get_full_episode(self, episode_id: str) -> FullEpisode | None:
        data = await self._execute(
            self._client.table("episodes")
            .select(f"{EPISODE_COLUMNS}, raw_transcript")
            .eq("id", episode_id)
            .limit(1)
        )
        records = _validate_rows(FullEpisode, data)
        return records[0] if records else None
