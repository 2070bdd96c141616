"""Chat endpoint: retrieval-augmented answers streamed with their sources."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from src.api.dependencies import get_store
from src.api.models import ChatRequest
from src.api.rate_limit import enforce_rate_limit
from src.api.streaming import encode_legacy, encode_sse
from src.config import settings
from src.pipeline_config import RetrievalConfig, StreamFormat
from src.retrieval.chat import chat_events, prepare_chat, start_generation
from src.retrieval.store import EpisodeStore

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering in nginx
}


@router.post("/api/chat", dependencies=[Depends(enforce_rate_limit)])
async def chat(
    request: ChatRequest,
    store: Annotated[EpisodeStore, Depends(get_store)],
    format: StreamFormat = StreamFormat.SSE,
) -> StreamingResponse:
    """Answer a question about one episode or the whole library.

    Retrieval and the first generated token happen before the response
    starts, so upstream failures return a plain HTTP error. After that the
    body streams ``token`` frames, one ``sources`` frame and ``done``
    (``?format=text`` switches to raw text plus a ``__SOURCES__`` trailer).
    """
    episode_id = str(request.episode_id) if request.episode_id else None
    logger.info("Chat request: message=%r episode=%s", request.message[:50], episode_id or "none")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + settings.request_timeout_seconds

    try:
        async with asyncio.timeout_at(deadline):
            prepared = await prepare_chat(
                store,
                request.message,
                [m.to_turn() for m in request.history],
                episode_id=episode_id,
                config=RetrievalConfig.from_settings(settings),
            )
            tokens = await start_generation(prepared)
    except TimeoutError as exc:
        raise HTTPException(status_code=504, detail="Request timed out") from exc

    events = chat_events(tokens, prepared.sources, deadline=deadline)
    if format is StreamFormat.TEXT:
        return StreamingResponse(encode_legacy(events), media_type="text/plain; charset=utf-8")
    return StreamingResponse(encode_sse(events), media_type="text/event-stream", headers=SSE_HEADERS)
