from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Models
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    llm_model: str = "claude-sonnet-4-20250514"
    planner_model: str = "claude-3-5-haiku-latest"

    # Chunking (characters; ~4 chars per token)
    chunk_size: int = 3200
    chunk_overlap: int = 400

    # Retrieval
    chat_match_threshold: float = 0.1  # low so that name searches still match
    search_match_threshold: float = 0.2
    fusion_result_limit: int = 20
    guest_episode_limit: int = 5
    per_episode_match_count: int = 8
    broad_match_count: int = 10
    max_sources: int = 5
    max_concurrent_searches: int = 8

    # Conversation
    planner_history_turns: int = 4
    planner_history_chars: int = 300
    chat_history_turns: int = 6
    request_timeout_seconds: float = 55.0

    # Rate limiting
    rate_limit_requests: int = 20
    rate_limit_window_seconds: float = 60.0

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
