"""Ingestion pipeline: parse -> store episode -> chunk, plus embedding backfill."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from supabase import AsyncClient

from src.config import settings
from src.errors import EmbeddingUnavailable, StoreUnavailable
from src.ingestion.chunking import chunk_transcript
from src.ingestion.embeddings import embed_text
from src.ingestion.models import EpisodeSource
from src.ingestion.parsers import parse_episode_markdown
from src.ingestion.storage import (
    BATCH_SIZE,
    fetch_unembedded_chunks,
    get_supabase_client,
    replace_chunks,
    update_chunk_embedding,
    upsert_episode,
)

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    episode_id: str
    title: str
    num_chunks: int


@dataclass
class BackfillReport:
    processed: int = 0
    errors: int = 0


async def ingest_episode(
    source: EpisodeSource,
    client: AsyncClient | None = None,
    chunk_size: int | None = None,
    overlap: int | None = None,
) -> IngestResult:
    """Store an episode (if new) and regenerate its complete chunk set.

    Chunks are written without embeddings; run :func:`backfill_embeddings`
    afterwards.
    """
    client = client or await get_supabase_client()

    episode_id = await upsert_episode(client, source)
    chunks = chunk_transcript(
        source.raw_transcript,
        target_size=chunk_size or settings.chunk_size,
        overlap=settings.chunk_overlap if overlap is None else overlap,
    )
    await replace_chunks(client, episode_id, chunks)

    logger.info("Created %d chunks for episode %s (%s)", len(chunks), episode_id, source.title)
    return IngestResult(episode_id=episode_id, title=source.title, num_chunks=len(chunks))


async def ingest_markdown(content: str, client: AsyncClient | None = None) -> IngestResult:
    """Parse a markdown transcript with front-matter and ingest it."""
    return await ingest_episode(parse_episode_markdown(content), client)


async def backfill_embeddings(
    client: AsyncClient | None = None,
    batch_size: int = BATCH_SIZE,
) -> BackfillReport:
    """Embed every chunk whose embedding is still null.

    Individual embedding or write failures are counted and skipped. Stops
    when no chunks are left or when a whole batch fails (the same rows would
    come back again).
    """
    client = client or await get_supabase_client()
    report = BackfillReport()

    while True:
        rows = await fetch_unembedded_chunks(client, batch_size)
        if not rows:
            break

        embedded = 0
        for row in rows:
            try:
                embedding = await embed_text(row["content"])
            except EmbeddingUnavailable:
                logger.exception("Embedding failed for chunk %s", row["id"])
                report.errors += 1
                continue
            try:
                await update_chunk_embedding(client, str(row["id"]), embedding)
            except StoreUnavailable:
                logger.exception("Saving embedding failed for chunk %s", row["id"])
                report.errors += 1
                continue
            embedded += 1

        report.processed += embedded
        logger.info("Backfill progress: processed=%d errors=%d", report.processed, report.errors)
        if embedded == 0:
            logger.warning("No chunk in the last batch could be embedded; stopping")
            break

    return report
