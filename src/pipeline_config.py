"""Pipeline configuration: shared enums and the RetrievalConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import Settings


class SearchType(str, Enum):
    """Retrieval modes exposed by the episode search endpoint."""

    SEMANTIC = "semantic"
    TEXT = "text"
    HYBRID = "hybrid"


class SearchMode(str, Enum):
    """How widely the planner wants the chat search to range."""

    BROAD = "broad"
    FOCUSED = "focused"
    COMPARE = "compare"


class StreamFormat(str, Enum):
    """Wire framing for streamed chat responses."""

    SSE = "sse"
    TEXT = "text"


@dataclass(frozen=True)
class RetrievalConfig:
    """Immutable knobs for planning, fusion and context assembly.

    Defaults mirror :class:`src.config.Settings`; use :meth:`from_settings`
    to pick up environment overrides.
    """

    match_threshold: float = 0.1
    result_limit: int = 20
    guest_episode_limit: int = 5
    per_episode_match_count: int = 8
    broad_match_count: int = 10
    max_sources: int = 5
    max_concurrent_searches: int = 8
    planner_history_turns: int = 4
    planner_history_chars: int = 300
    chat_history_turns: int = 6

    @classmethod
    def from_settings(cls, settings: Settings) -> RetrievalConfig:
        return cls(
            match_threshold=settings.chat_match_threshold,
            result_limit=settings.fusion_result_limit,
            guest_episode_limit=settings.guest_episode_limit,
            per_episode_match_count=settings.per_episode_match_count,
            broad_match_count=settings.broad_match_count,
            max_sources=settings.max_sources,
            max_concurrent_searches=settings.max_concurrent_searches,
            planner_history_turns=settings.planner_history_turns,
            planner_history_chars=settings.planner_history_chars,
            chat_history_turns=settings.chat_history_turns,
        )
