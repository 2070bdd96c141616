"""Typed records for store rows and per-request retrieval state."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.pipeline_config import SearchMode


class EpisodeRecord(BaseModel):
    """Display metadata for one episode row."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    slug: str
    guest_name: str
    summary: str | None = None
    publish_date: str | None = None


class FullEpisode(EpisodeRecord):
    """Episode row including the raw transcript."""

    raw_transcript: str


class ChunkMatch(BaseModel):
    """One chunk returned by a search, with its similarity to the query.

    ``similarity`` is in [0, 1]; exact text matches use 1.0.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    episode_id: str
    content: str
    chunk_index: int = 0
    start_timestamp: str | None = None
    speaker: str | None = None
    similarity: float


@dataclass(frozen=True)
class HistoryTurn:
    role: str
    content: str


@dataclass
class SearchPlan:
    """Per-turn retrieval plan. ``queries`` is never empty."""

    queries: list[str]
    guest_filter: str | None = None
    mode: SearchMode = SearchMode.BROAD
    intent: str = ""


@dataclass
class FusionResult:
    """Ranked, de-duplicated matches and the episodes they belong to."""

    chunks: list[ChunkMatch] = field(default_factory=list)
    episodes: dict[str, EpisodeRecord] = field(default_factory=dict)


class SourceCitation(BaseModel):
    """Response-facing citation for one episode.

    Serialised with camelCase keys; ``timestamp`` is omitted when unknown.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    episode_id: str
    episode_title: str
    episode_slug: str
    timestamp: str | None = None
    snippet: str

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)
