"""Episode-level search: semantic, text, and hybrid retrieval."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from src.errors import EmbeddingUnavailable, StoreUnavailable
from src.ingestion.embeddings import embed_text
from src.pipeline_config import SearchType
from src.retrieval.models import EpisodeRecord
from src.retrieval.store import EpisodeStore

logger = logging.getLogger(__name__)

# Fixed score for substring matches, below typical semantic hits
TEXT_MATCH_SCORE = 0.5


class EpisodeHit(BaseModel):
    """An episode scored against a search query."""

    id: str
    title: str
    guest_name: str
    slug: str
    publish_date: str | None = None
    summary: str | None = None
    score: float

    @classmethod
    def from_record(cls, record: EpisodeRecord, score: float) -> EpisodeHit:
        return cls(
            id=record.id,
            title=record.title,
            guest_name=record.guest_name,
            slug=record.slug,
            publish_date=record.publish_date,
            summary=record.summary,
            score=score,
        )


async def semantic_search(
    store: EpisodeStore,
    query: str,
    limit: int = 10,
    threshold: float = 0.2,
    *,
    embed: Callable[[str], Awaitable[list[float]]] = embed_text,
) -> list[EpisodeHit]:
    """Episodes ranked by their best-matching chunk's similarity."""
    embedding = await embed(query)
    chunks = await store.nearest(embedding, threshold, limit * 2)

    best: dict[str, float] = {}
    for chunk in chunks:
        best[chunk.episode_id] = max(best.get(chunk.episode_id, 0.0), chunk.similarity)

    episode_ids = list(best)[:limit]
    episodes = await store.get_episodes(episode_ids)
    return [EpisodeHit.from_record(ep, best.get(ep.id, 0.0)) for ep in episodes]


async def search_episodes(
    store: EpisodeStore,
    query: str,
    search_type: str | SearchType = SearchType.HYBRID,
    limit: int = 10,
    threshold: float = 0.2,
    *,
    embed: Callable[[str], Awaitable[list[float]]] = embed_text,
) -> list[EpisodeHit]:
    """Dispatch to the requested search type and merge results.

    Hybrid prefers semantic hits and backfills with text matches (score 0.5)
    when fewer than *limit* episodes were found; an episode is never listed
    twice and keeps its semantic score. A semantic failure in hybrid mode
    falls back to text matches only; in semantic mode it propagates.

    Returns:
        At most *limit* hits sorted by descending score.
    """
    if isinstance(search_type, str):
        search_type = SearchType(search_type)

    results: list[EpisodeHit] = []

    if search_type in (SearchType.SEMANTIC, SearchType.HYBRID):
        try:
            results = await semantic_search(store, query, limit, threshold, embed=embed)
        except (EmbeddingUnavailable, StoreUnavailable):
            if search_type is SearchType.SEMANTIC:
                raise
            logger.warning("Semantic search failed for %r; using text matches", query, exc_info=True)

    if search_type is SearchType.TEXT or (
        search_type is SearchType.HYBRID and len(results) < limit
    ):
        seen = {r.id for r in results}
        for record in await store.search_episodes_text(query, limit):
            if record.id not in seen:
                seen.add(record.id)
                results.append(EpisodeHit.from_record(record, TEXT_MATCH_SCORE))

    results.sort(key=lambda r: r.score, reverse=True)
    return results[:limit]
