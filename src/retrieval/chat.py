"""Chat orchestration: episode-scoped or global retrieval, then streaming.

The scope is fixed per request. With an episode id the full transcript is
the context and no search runs; otherwise the planner, fusion engine and
assembler build the context from the whole library.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.errors import EpisodeNotFound, LLMUnavailable
from src.pipeline_config import RetrievalConfig
from src.retrieval.context import (
    build_context,
    build_episode_context,
    build_sources,
    episode_source,
)
from src.retrieval.fusion import multi_query_search
from src.retrieval.generation import build_messages, build_system_prompt, stream_answer
from src.retrieval.models import FusionResult, HistoryTurn, SearchPlan, SourceCitation
from src.retrieval.planner import plan_search
from src.retrieval.store import EpisodeStore

logger = logging.getLogger(__name__)

PlanFn = Callable[..., Awaitable[SearchPlan]]
SearchFn = Callable[..., Awaitable[FusionResult]]
StreamFn = Callable[[str, list[dict[str, str]]], AsyncIterator[str]]


@dataclass
class PreparedChat:
    """Everything needed to start generation for one chat turn."""

    system_prompt: str
    messages: list[dict[str, str]]
    sources: list[SourceCitation] = field(default_factory=list)
    episode_scoped: bool = False
    plan: SearchPlan | None = None


@dataclass(frozen=True)
class ChatEvent:
    """One frame of the chat response: ``token``, ``sources``, ``error`` or ``done``."""

    kind: str
    data: Any = None


async def prepare_chat(
    store: EpisodeStore,
    message: str,
    history: Sequence[HistoryTurn] = (),
    episode_id: str | None = None,
    config: RetrievalConfig | None = None,
    *,
    plan_fn: PlanFn = plan_search,
    search_fn: SearchFn = multi_query_search,
) -> PreparedChat:
    """Retrieve context and build the prompt for one chat turn.

    Raises:
        EpisodeNotFound: If *episode_id* does not exist.
        StoreUnavailable / EmbeddingUnavailable: On unrecoverable retrieval errors.
    """
    config = config or RetrievalConfig()
    messages = build_messages(history, message, config.chat_history_turns)

    if episode_id:
        logger.info("Episode-scoped chat for %s", episode_id)
        episode = await store.get_full_episode(episode_id)
        if episode is None:
            raise EpisodeNotFound(episode_id)
        return PreparedChat(
            system_prompt=build_system_prompt(build_episode_context(episode), episode_scoped=True),
            messages=messages,
            sources=[episode_source(episode)],
            episode_scoped=True,
        )

    plan = await plan_fn(
        message,
        history,
        max_history_turns=config.planner_history_turns,
        max_history_chars=config.planner_history_chars,
    )
    fused = await search_fn(store, plan.queries, plan.guest_filter, config)
    context = build_context(fused.chunks, fused.episodes)
    return PreparedChat(
        system_prompt=build_system_prompt(context, episode_scoped=False),
        messages=messages,
        sources=build_sources(fused.chunks, fused.episodes, config.max_sources),
        plan=plan,
    )


async def start_generation(
    prepared: PreparedChat, stream_fn: StreamFn = stream_answer
) -> AsyncIterator[str]:
    """Open the completion stream and wait for its first token.

    Pulling the first token up front means provider failures surface before
    any response bytes are sent.
    """
    tokens = stream_fn(prepared.system_prompt, prepared.messages)
    try:
        first = await anext(tokens)
    except StopAsyncIteration:
        first = None
    except BaseException:
        await tokens.aclose()
        raise

    async def resume() -> AsyncIterator[str]:
        try:
            if first is not None:
                yield first
                async for token in tokens:
                    yield token
        finally:
            await tokens.aclose()

    return resume()


async def chat_events(
    tokens: AsyncIterator[str],
    sources: list[SourceCitation],
    deadline: float | None = None,
) -> AsyncIterator[ChatEvent]:
    """Tokens first, then a single sources frame, then ``done``.

    Generation errors and an expired *deadline* (event-loop time) end the
    stream with an ``error`` frame instead.
    """
    try:
        while True:
            # The deadline covers each pull, never a suspended yield
            try:
                async with asyncio.timeout_at(deadline):
                    token = await anext(tokens)
            except StopAsyncIteration:
                break
            yield ChatEvent("token", token)
    except LLMUnavailable as exc:
        logger.error("Generation failed mid-stream: %s", exc)
        yield ChatEvent("error", str(exc))
        return
    except TimeoutError:
        logger.error("Chat response exceeded its time budget")
        yield ChatEvent("error", "Response timed out")
        return
    finally:
        aclose = getattr(tokens, "aclose", None)
        if aclose is not None:
            await aclose()

    yield ChatEvent("sources", [s.to_wire() for s in sources])
    yield ChatEvent("done")
