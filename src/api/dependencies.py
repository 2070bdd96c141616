"""Shared FastAPI dependencies."""

from __future__ import annotations

import asyncio

from fastapi import Request

from src.ingestion.storage import get_supabase_client
from src.retrieval.store import EpisodeStore

_store_lock = asyncio.Lock()


async def get_store(request: Request) -> EpisodeStore:
    """Return the app-wide :class:`EpisodeStore`, connecting on first use.

    Raises:
        StoreUnavailable: If Supabase is not configured.
    """
    store: EpisodeStore | None = getattr(request.app.state, "store", None)
    if store is not None:
        return store
    async with _store_lock:
        store = getattr(request.app.state, "store", None)
        if store is None:
            store = EpisodeStore(await get_supabase_client())
            request.app.state.store = store
    return store
