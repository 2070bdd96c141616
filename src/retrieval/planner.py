"""LLM query planner: rewrite a chat message into several search queries.

The LLM is an enhancement only. Every failure path (no key, provider error,
prose instead of JSON, wrong shape) returns :func:`default_plan`, so the
fusion engine always receives at least one query.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from anthropic import AnthropicError, AsyncAnthropic
from anthropic.types import TextBlock

from src.config import settings
from src.errors import LLMUnavailable
from src.pipeline_config import SearchMode
from src.retrieval.models import HistoryTurn, SearchPlan

logger = logging.getLogger(__name__)

CompleteFn = Callable[[str, str], Awaitable[str]]

MAX_QUERIES = 4

PLANNER_SYSTEM_PROMPT = """\
You are a search planner for a podcast RAG system with ~300 episodes about \
product management, growth, startups, and leadership.

Given the user's question and conversation history, create an optimal search plan.

Return JSON with:
1. searchQueries: Array of 2-4 search queries that will find relevant content. Include:
   - The main question rephrased for semantic search
   - Alternative phrasings or related concepts
   - If about a person, include their FULL FORMAL name + topic
   Example: ["Brian Chesky hiring philosophy", "Airbnb early team building", \
"founder hiring first employees"]

2. guestFilter: Guest name to filter by, or null for broad search.
   - Use the guest's FULL FORMAL NAME. Correct nicknames/misspellings:
     * "Jenn Grosser" or "Jeanne Grosser" -> "Jeanne DeWitt Grosser"
     * "Chesky" -> "Brian Chesky"
     * "Lenny" -> null (he's the host, not a guest)
   - Set to the guest name only if the user asks about ONE SPECIFIC person
   - Set to null if the user asks about "other guests", "different perspectives", \
"across episodes", or general topics
   - Resolve pronouns (she/he/they) from history

3. searchMode:
   - "focused" = user wants content from one specific guest
   - "broad" = user wants to explore a topic across many episodes
   - "compare" = user wants to compare perspectives from different guests

4. intent: One sentence describing what the user actually wants to know.

Default to broad search unless the user specifically names someone. When the \
user says "other", "different", "compare", "across episodes" use broad or \
compare mode with a null guestFilter.

Respond with valid JSON only."""


def default_plan(message: str) -> SearchPlan:
    """The plan used whenever the LLM cannot produce one."""
    return SearchPlan(queries=[message], guest_filter=None, mode=SearchMode.BROAD, intent=message)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first decodable JSON object embedded in *text*, if any."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def format_history(
    history: Sequence[HistoryTurn],
    max_turns: int = 4,
    max_chars: int = 300,
) -> str:
    recent = history[-max_turns:] if max_turns > 0 else []
    return "\n".join(f"{turn.role}: {turn.content[:max_chars]}" for turn in recent)


def parse_plan(data: dict[str, Any], message: str) -> SearchPlan:
    """Validate a planner JSON object, filling gaps from *message*.

    Raises:
        ValueError: If the object does not look like a plan.
    """
    raw_queries = data.get("searchQueries")
    if not isinstance(raw_queries, list):
        raise ValueError("searchQueries must be a list")
    queries = [q.strip() for q in raw_queries if isinstance(q, str) and q.strip()]
    if not queries:
        raise ValueError("searchQueries is empty")

    guest = data.get("guestFilter")
    guest_filter = guest.strip() if isinstance(guest, str) and guest.strip() else None

    try:
        mode = SearchMode(data.get("searchMode") or SearchMode.BROAD)
    except ValueError:
        mode = SearchMode.BROAD

    intent = data.get("intent")
    return SearchPlan(
        queries=queries[:MAX_QUERIES],
        guest_filter=guest_filter,
        mode=mode,
        intent=intent.strip() if isinstance(intent, str) and intent.strip() else message,
    )


async def complete(system: str, user: str) -> str:
    """Single non-streaming completion; returns the concatenated text blocks.

    Raises:
        LLMUnavailable: If the key is missing or the API call fails.
    """
    if not settings.anthropic_api_key:
        raise LLMUnavailable("ANTHROPIC_API_KEY not configured")

    client = AsyncAnthropic(api_key=settings.anthropic_api_key)
    try:
        response = await client.messages.create(
            model=settings.planner_model,
            max_tokens=400,
            temperature=0,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
    except AnthropicError as exc:
        raise LLMUnavailable(f"Planner completion failed: {exc}") from exc

    return "".join(block.text for block in response.content if isinstance(block, TextBlock))


async def plan_search(
    message: str,
    history: Sequence[HistoryTurn] = (),
    *,
    max_history_turns: int = 4,
    max_history_chars: int = 300,
    complete_fn: CompleteFn | None = None,
) -> SearchPlan:
    """Build a :class:`SearchPlan` for *message*; never raises."""
    user_prompt = (
        f"History:\n{format_history(history, max_history_turns, max_history_chars) or '(none)'}"
        f"\n\nQuestion: {message}"
    )
    completer = complete_fn or complete

    try:
        text = await completer(PLANNER_SYSTEM_PROMPT, user_prompt)
        data = extract_json_object(text)
        if data is None:
            raise ValueError("no JSON object in planner output")
        plan = parse_plan(data, message)
    except Exception:
        logger.warning("Search planning failed, using default plan", exc_info=True)
        return default_plan(message)

    logger.info(
        "Search plan: mode=%s guest=%s queries=%s",
        plan.mode.value,
        plan.guest_filter or "none",
        " | ".join(plan.queries),
    )
    return plan
