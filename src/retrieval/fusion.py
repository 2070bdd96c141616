"""Multi-query semantic search with max-similarity fusion.

Each planner query is embedded and searched concurrently. A chunk returned
by several queries keeps only its best similarity (never a sum or mean), so
near-duplicate queries cannot inflate a chunk's rank. Because the reduction
is a max keyed on chunk id, the fused ranking does not depend on the order
in which sub-searches complete.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from src.errors import StoreUnavailable
from src.ingestion.embeddings import embed_text
from src.pipeline_config import RetrievalConfig
from src.retrieval.guests import resolve_guest
from src.retrieval.models import ChunkMatch, FusionResult
from src.retrieval.store import EpisodeStore

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], Awaitable[list[float]]]
T = TypeVar("T")


def merge_matches(result_lists: Iterable[Iterable[ChunkMatch]]) -> dict[str, ChunkMatch]:
    """Max-pool matches by chunk id across any number of result lists."""
    best: dict[str, ChunkMatch] = {}
    for matches in result_lists:
        for match in matches:
            current = best.get(match.id)
            if current is None or match.similarity > current.similarity:
                best[match.id] = match
    return best


def rank_matches(best: dict[str, ChunkMatch], limit: int) -> list[ChunkMatch]:
    """Sort by similarity (descending, ties by id) and keep the top *limit*."""
    ranked = sorted(best.values(), key=lambda m: (-m.similarity, m.id))
    return ranked[: max(limit, 0)]


async def _guest_episode_ids(
    store: EpisodeStore, guest_filter: str | None, limit: int
) -> list[str] | None:
    """Episode ids to scope the search to, or ``None`` for a broad search."""
    if not guest_filter:
        return None
    try:
        episodes = await resolve_guest(store, guest_filter, limit)
    except StoreUnavailable:
        logger.warning("Guest lookup failed for %r; searching all episodes", guest_filter)
        return None

    if not episodes:
        logger.info("Guest filter %r matched nothing; searching all episodes", guest_filter)
        return None
    logger.info("Guest filter %r matched %d episodes", guest_filter, len(episodes))
    return [e.id for e in episodes]


async def multi_query_search(
    store: EpisodeStore,
    queries: list[str],
    guest_filter: str | None = None,
    config: RetrievalConfig | None = None,
    *,
    embed: EmbedFn = embed_text,
) -> FusionResult:
    """Run every query, fuse the hits, and fetch metadata for the winners.

    A query whose embedding or search fails is logged and skipped. When every
    query fails the result is empty, unless all of them failed because the
    datastore is unreachable, in which case :class:`StoreUnavailable` is
    raised.

    Args:
        store: Datastore capability.
        queries: Planner queries (at least one).
        guest_filter: Optional guest name; resolved to at most
            ``config.guest_episode_limit`` episodes, each searched separately.
        config: Thresholds and limits (defaults to :class:`RetrievalConfig`).
        embed: Text-to-vector function.

    Returns:
        A :class:`FusionResult` with at most ``config.result_limit`` chunks.
    """
    config = config or RetrievalConfig()
    semaphore = asyncio.Semaphore(max(config.max_concurrent_searches, 1))

    async def bounded(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    episode_ids = await _guest_episode_ids(store, guest_filter, config.guest_episode_limit)

    async def run_query(query: str) -> list[ChunkMatch]:
        embedding = await bounded(embed(query))

        if episode_ids is None:
            return await bounded(
                store.nearest(embedding, config.match_threshold, config.broad_match_count)
            )

        # One search per episode so each gets its own top-k
        per_episode = await asyncio.gather(
            *(
                bounded(
                    store.nearest(
                        embedding,
                        config.match_threshold,
                        config.per_episode_match_count,
                        episode_id=episode_id,
                    )
                )
                for episode_id in episode_ids
            ),
            return_exceptions=True,
        )
        matches: list[ChunkMatch] = []
        failures: list[BaseException] = []
        for episode_id, result in zip(episode_ids, per_episode, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Search in episode %s failed for %r: %s", episode_id, query, result)
                failures.append(result)
                continue
            matches.extend(result)
        if failures and len(failures) == len(episode_ids):
            raise failures[0]
        return matches

    results = await asyncio.gather(*(run_query(q) for q in queries), return_exceptions=True)

    successful: list[list[ChunkMatch]] = []
    failures: list[BaseException] = []
    for query, result in zip(queries, results, strict=True):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("Search failed for query %r", query, exc_info=result)
            failures.append(result)
            continue
        successful.append(result)

    if queries and not successful:
        if all(isinstance(f, StoreUnavailable) for f in failures):
            raise failures[0]
        logger.error("All %d search queries failed; continuing without context", len(queries))
        return FusionResult()

    best = merge_matches(successful)
    ranked = rank_matches(best, config.result_limit)

    episode_ids_in_results = list(dict.fromkeys(m.episode_id for m in ranked))
    episodes = await store.get_episodes(episode_ids_in_results)
    episode_map = {e.id: e for e in episodes}

    logger.info(
        "Multi-query search: %d queries -> %d unique chunks -> %d top results from %d episodes",
        len(queries),
        len(best),
        len(ranked),
        len(episode_map),
    )
    return FusionResult(chunks=ranked, episodes=episode_map)
