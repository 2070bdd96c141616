"""Supabase client factory and write-side helpers for episodes and chunks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from src.config import settings
from src.errors import StoreUnavailable

if TYPE_CHECKING:
    from src.ingestion.models import Chunk, EpisodeSource

BATCH_SIZE = 50


async def get_supabase_client() -> AsyncClient:
    """Create and return an async Supabase client from settings.

    Raises:
        StoreUnavailable: If the URL or key is not configured.
    """
    if not settings.supabase_url or not settings.supabase_key:
        raise StoreUnavailable("SUPABASE_URL / SUPABASE_KEY not configured")
    return await acreate_client(settings.supabase_url, settings.supabase_key)


async def upsert_episode(client: AsyncClient, source: EpisodeSource) -> str:
    """Insert an episode unless one with the same slug exists; return its ID.

    Existing episodes are left untouched: transcripts are immutable once
    ingested.
    """
    existing = (
        await client.table("episodes").select("id").eq("slug", source.slug).limit(1).execute()
    )
    rows = cast(list[dict[str, Any]], existing.data)
    if rows:
        return str(rows[0]["id"])

    result = (
        await client.table("episodes")
        .insert(
            {
                "guest_name": source.guest_name,
                "title": source.title,
                "slug": source.slug,
                "youtube_url": source.youtube_url,
                "video_id": source.video_id,
                "publish_date": source.publish_date,
                "duration_seconds": source.duration_seconds,
                "view_count": source.view_count,
                "keywords": source.keywords,
                "raw_transcript": source.raw_transcript,
            }
        )
        .execute()
    )
    return str(cast(list[dict[str, Any]], result.data)[0]["id"])


async def replace_chunks(client: AsyncClient, episode_id: str, chunks: list[Chunk]) -> None:
    """Delete every chunk of *episode_id* and insert *chunks* (batched by 50).

    Chunk sets are always regenerated whole, never patched.
    """
    await client.table("chunks").delete().eq("episode_id", episode_id).execute()

    rows: list[dict[str, object]] = [
        {
            "episode_id": episode_id,
            "content": chunk.content,
            "chunk_index": chunk.chunk_index,
            "start_timestamp": chunk.start_timestamp,
            "speaker": chunk.speaker,
            "token_count": chunk.token_count,
        }
        for chunk in chunks
    ]
    for i in range(0, len(rows), BATCH_SIZE):
        await client.table("chunks").insert(rows[i : i + BATCH_SIZE]).execute()


async def fetch_unembedded_chunks(client: AsyncClient, limit: int = BATCH_SIZE) -> list[dict[str, Any]]:
    """Return up to *limit* ``{id, content}`` rows whose embedding is null."""
    result = (
        await client.table("chunks")
        .select("id, content")
        .is_("embedding", "null")
        .limit(limit)
        .execute()
    )
    return cast(list[dict[str, Any]], result.data)


async def update_chunk_embedding(client: AsyncClient, chunk_id: str, embedding: list[float]) -> None:
    """Store one chunk's embedding.

    Raises:
        StoreUnavailable: If the write fails.
    """
    try:
        await client.table("chunks").update({"embedding": embedding}).eq("id", chunk_id).execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StoreUnavailable(f"Failed to store embedding for chunk {chunk_id}: {exc}") from exc
