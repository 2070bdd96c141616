"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EpisodeSource:
    """A transcript file parsed from markdown with YAML front-matter."""

    guest_name: str
    title: str
    slug: str
    raw_transcript: str
    youtube_url: str = ""
    video_id: str | None = None
    publish_date: str | None = None
    duration_seconds: int = 0
    view_count: int = 0
    keywords: list[str] = field(default_factory=list)


@dataclass
class Chunk:
    """A chunk ready for embedding and storage."""

    content: str
    chunk_index: int = 0
    start_timestamp: str | None = None
    speaker: str | None = None
    token_count: int = 0
