"""Typed failures raised by provider and datastore wrappers."""

from __future__ import annotations


class EmbeddingUnavailable(RuntimeError):
    """The embedding provider is not configured or the request failed."""


class LLMUnavailable(RuntimeError):
    """The chat-completion provider is not configured or the request failed."""


class StoreUnavailable(RuntimeError):
    """The datastore is not configured or could not be reached."""


class EpisodeNotFound(LookupError):
    """No episode exists for the requested id."""

    def __init__(self, episode_id: str) -> None:
        super().__init__(f"Episode not found: {episode_id}")
        self.episode_id = episode_id
