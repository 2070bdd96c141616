"""Resolve free-text guest names and nicknames to episodes."""

from __future__ import annotations

from src.retrieval.models import EpisodeRecord
from src.retrieval.store import EpisodeStore

# Words this short match too much ("de", "jr", initials)
MIN_WORD_LENGTH = 3


async def resolve_guest(store: EpisodeStore, name: str, limit: int = 5) -> list[EpisodeRecord]:
    """Find episodes for *name*, tolerating partial or misspelled names.

    Tries the whole name as a substring of title/guest name first. If that
    finds nothing, matches any individual word of three or more characters
    (so "Jenn Grosser" still reaches "Jeanne DeWitt Grosser").
    """
    name = name.strip()
    if not name:
        return []

    exact = await store.find_episodes(name, limit)
    if exact:
        return exact

    words = [w for w in name.split() if len(w) >= MIN_WORD_LENGTH]
    if not words:
        return []
    return await store.find_episodes_any(words, limit)
