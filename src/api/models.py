"""Pydantic request/response schemas for the Podcast Library API."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.pipeline_config import SearchType
from src.retrieval.models import HistoryTurn
from src.retrieval.search import EpisodeHit


class ChatMessage(BaseModel):
    """A prior turn of the conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(max_length=10_000)

    def to_turn(self) -> HistoryTurn:
        return HistoryTurn(role=self.role, content=self.content)


class ChatRequest(BaseModel):
    """Request body for the /api/chat endpoint."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=5000)
    episode_id: UUID | None = Field(default=None, alias="episodeId")
    history: list[ChatMessage] = Field(default_factory=list, max_length=20)


class SearchRequest(BaseModel):
    """Request body for the /api/search endpoint."""

    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(min_length=1, max_length=500)
    type: SearchType = SearchType.HYBRID
    limit: int = Field(default=10, ge=1, le=50)


class SearchResponse(BaseModel):
    """Response body for the /api/search endpoint."""

    results: list[EpisodeHit]
    query: str
    type: SearchType
