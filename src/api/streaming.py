"""Wire encodings for chat event streams."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from src.retrieval.chat import ChatEvent

SOURCES_MARKER = "__SOURCES__"


async def encode_sse(events: AsyncIterator[ChatEvent]) -> AsyncIterator[str]:
    """Server-sent events: one typed frame per event, JSON payloads."""
    async for event in events:
        yield f"event: {event.kind}\ndata: {json.dumps(event.data)}\n\n"


async def encode_legacy(events: AsyncIterator[ChatEvent]) -> AsyncIterator[str]:
    """Raw text, then ``__SOURCES__`` and the JSON citation list.

    Errors after streaming began are appended as ``\\n\\nError: ...``.
    """
    async for event in events:
        if event.kind == "token":
            yield event.data
        elif event.kind == "sources":
            yield SOURCES_MARKER + json.dumps(event.data)
        elif event.kind == "error":
            yield f"\n\nError: {event.data}"
