"""Search endpoint: find episodes by meaning, text, or both."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_store
from src.api.models import SearchRequest, SearchResponse
from src.api.rate_limit import enforce_rate_limit
from src.config import settings
from src.retrieval.search import search_episodes
from src.retrieval.store import EpisodeStore

router = APIRouter()


@router.post(
    "/api/search",
    response_model=SearchResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def search(
    request: SearchRequest,
    store: Annotated[EpisodeStore, Depends(get_store)],
) -> SearchResponse:
    """Return up to ``limit`` episodes sorted by descending score."""
    results = await search_episodes(
        store,
        request.query,
        request.type,
        limit=request.limit,
        threshold=settings.search_match_threshold,
    )
    return SearchResponse(results=results, query=request.query, type=request.type)
