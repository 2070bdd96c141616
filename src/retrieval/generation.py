"""Claude-powered answer streaming and the chat system prompts."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

import httpx
from anthropic import AnthropicError, AsyncAnthropic

from src.config import settings
from src.errors import LLMUnavailable
from src.retrieval.models import HistoryTurn

EPISODE_SYSTEM_PROMPT = """\
You are an AI assistant helping users explore a specific episode of Lenny's Podcast.

Your job:
- Answer questions about this episode's content
- Quote the guest directly when relevant
- Reference specific moments or topics from the conversation
- If asked about something not covered in this episode, say so

Keep responses focused and conversational. The user is reading/watching this specific episode.

Episode transcript:
{context}"""

GLOBAL_SYSTEM_PROMPT = """\
You are an AI assistant for exploring Lenny's Podcast, a library of ~300 episodes \
about product management, growth, startups, and leadership featuring world-class \
operators and founders.

Your job:
- Synthesize insights from the transcript excerpts provided
- Always attribute quotes and ideas to the specific guest who said them
- When multiple guests discuss a topic, compare their perspectives
- If asked about "other" perspectives, draw from different guests in the context
- Be specific: quote directly when impactful, cite the guest name
- If the context doesn't cover the question, say so and suggest what topics/guests \
might be relevant

IMPORTANT: Never mention implementation details like "excerpts", "chunks", \
"context loaded", or how many pieces of transcript you have. Just answer naturally \
as if you have deep knowledge of the podcast library. Sources will be shown \
separately to the user.

Context from transcripts:
{context}"""

NO_CONTEXT = "(No relevant transcript content was found for this question.)"


def build_system_prompt(context: str, episode_scoped: bool) -> str:
    template = EPISODE_SYSTEM_PROMPT if episode_scoped else GLOBAL_SYSTEM_PROMPT
    return template.format(context=context or NO_CONTEXT)


def build_messages(
    history: Sequence[HistoryTurn], message: str, max_turns: int = 6
) -> list[dict[str, str]]:
    """Recent history plus the new user message, starting on a user turn."""
    recent = list(history[-max_turns:]) if max_turns > 0 else []
    while recent and recent[0].role != "user":
        recent.pop(0)
    messages = [{"role": turn.role, "content": turn.content} for turn in recent]
    messages.append({"role": "user", "content": message})
    return messages


async def stream_answer(system: str, messages: list[dict[str, str]]) -> AsyncIterator[str]:
    """Yield answer text deltas from Claude.

    Closing the generator early exits the SDK's stream context and releases
    the HTTP connection.

    Raises:
        LLMUnavailable: If the key is missing or the API call fails.
    """
    if not settings.anthropic_api_key:
        raise LLMUnavailable("ANTHROPIC_API_KEY not configured")

    client = AsyncAnthropic(api_key=settings.anthropic_api_key)
    try:
        async with client.messages.stream(
            model=settings.llm_model,
            max_tokens=2048,
            system=system,
            messages=messages,  # type: ignore[arg-type]
        ) as stream:
            async for text in stream.text_stream:
                yield text
    except (AnthropicError, httpx.HTTPError) as exc:
        # Transport errors while iterating text_stream are not wrapped by the SDK
        raise LLMUnavailable(f"LLM unavailable: {exc}") from exc
