"""Turn fused chunks into a prompt context and per-episode citations."""

from __future__ import annotations

from src.retrieval.models import ChunkMatch, EpisodeRecord, FullEpisode, SourceCitation

CHUNK_DELIMITER = "\n\n---\n\n"
UNKNOWN = "Unknown"


def format_chunk_header(chunk: ChunkMatch, episode: EpisodeRecord | None) -> str:
    guest = episode.guest_name if episode else UNKNOWN
    title = episode.title if episode else UNKNOWN
    at = f" at {chunk.start_timestamp}" if chunk.start_timestamp else ""
    return f'[{guest} in "{title}"{at}]:'


def build_context(chunks: list[ChunkMatch], episodes: dict[str, EpisodeRecord]) -> str:
    """Concatenate chunks in ranked order, each under an attribution header."""
    return CHUNK_DELIMITER.join(
        f"{format_chunk_header(chunk, episodes.get(chunk.episode_id))}\n{chunk.content}"
        for chunk in chunks
    )


def merge_timestamps(timestamps: list[str]) -> str | None:
    """Collapse timestamps to ``"earliest - latest"`` (string order).

    ``None`` for an empty list, the timestamp itself for a single one.
    """
    if not timestamps:
        return None
    ordered = sorted(timestamps)
    if len(ordered) == 1:
        return ordered[0]
    return f"{ordered[0]} - {ordered[-1]}"


def build_sources(
    chunks: list[ChunkMatch],
    episodes: dict[str, EpisodeRecord],
    max_sources: int = 5,
) -> list[SourceCitation]:
    """One citation per episode, in order of first appearance.

    Chunks whose episode metadata is missing are skipped. Chunks without a
    timestamp add nothing to their episode's range.
    """
    timestamps: dict[str, list[str]] = {}
    for chunk in chunks:
        if chunk.episode_id not in episodes:
            continue
        stamps = timestamps.setdefault(chunk.episode_id, [])
        if chunk.start_timestamp:
            stamps.append(chunk.start_timestamp)

    sources: list[SourceCitation] = []
    for episode_id, stamps in list(timestamps.items())[:max_sources]:
        episode = episodes[episode_id]
        sources.append(
            SourceCitation(
                episode_id=episode.id,
                episode_title=episode.title,
                episode_slug=episode.slug,
                timestamp=merge_timestamps(stamps),
                snippet=f"Guest: {episode.guest_name}",
            )
        )
    return sources


def build_episode_context(episode: FullEpisode) -> str:
    """Full-document context for episode-scoped chat."""
    context = f"Episode: {episode.title}\nGuest: {episode.guest_name}\n"
    if episode.summary:
        context += f"Summary: {episode.summary}\n"
    return context + f"\nFull Transcript:\n{episode.raw_transcript}"


def episode_source(episode: FullEpisode) -> SourceCitation:
    return SourceCitation(
        episode_id=episode.id,
        episode_title=episode.title,
        episode_slug=episode.slug,
        snippet=episode.summary or episode.title,
    )
