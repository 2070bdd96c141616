"""Paragraph-aware transcript chunking with sticky timestamp/speaker tags."""

from __future__ import annotations

import math
import re

from src.ingestion.models import Chunk

DEFAULT_CHUNK_SIZE = 3200  # ~800 tokens at 4 chars per token
DEFAULT_OVERLAP = 400  # ~100 tokens

_PARAGRAPH_SPLIT_RE = re.compile(r"\n{2,}")

_TIMESTAMP = r"(\d{1,2}:\d{2}(?::\d{2})?)"
_NAME = r"([A-Za-z][A-Za-z .'\-]*?)"

# "[00:12:34] Speaker: text", "(12:34) text"
_BRACKETED_MARKER_RE = re.compile(rf"^\s*[\[(]{_TIMESTAMP}[\])]\s*(?:{_NAME}\s*:)?")
# "12:34 Speaker: text"
_BARE_MARKER_RE = re.compile(rf"^\s*{_TIMESTAMP}\s+{_NAME}\s*:")
# "Speaker (00:12:34): text"
_HEADER_MARKER_RE = re.compile(rf"^\s*{_NAME}\s*[\[(]{_TIMESTAMP}[\])]\s*:")


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / 4)


def detect_marker(paragraph: str) -> tuple[str | None, str | None]:
    """Return ``(timestamp, speaker)`` from a paragraph's leading marker.

    Either element is ``None`` when absent. A speaker is only reported
    together with a timestamp.
    """
    for pattern in (_BRACKETED_MARKER_RE, _BARE_MARKER_RE):
        match = pattern.match(paragraph)
        if match:
            speaker = match.group(2)
            return match.group(1), speaker.strip() if speaker else None

    match = _HEADER_MARKER_RE.match(paragraph)
    if match:
        return match.group(2), match.group(1).strip()

    return None, None


def chunk_transcript(
    transcript: str,
    target_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[Chunk]:
    """Split a transcript into overlapping, paragraph-aligned chunks.

    Paragraphs (blank-line separated) are accumulated into a buffer. When
    adding the next paragraph and its blank-line separator would push the
    buffer past *target_size*, the buffer is emitted and the next one is
    seeded with its last *overlap* characters followed by the paragraph. A
    paragraph longer than *target_size* is never split, so it becomes one
    oversized chunk.

    The most recent timestamp/speaker marker seen is attached to every chunk
    emitted after it, even when the chunk's own text carries no marker.

    Args:
        transcript: Raw transcript text.
        target_size: Soft maximum chunk length in characters.
        overlap: Characters carried from one chunk into the next.

    Returns:
        Chunks with sequential ``chunk_index`` values starting at 0.
    """
    chunks: list[Chunk] = []
    buffer = ""
    current_timestamp: str | None = None
    current_speaker: str | None = None

    def flush(text: str) -> None:
        content = text.strip()
        if not content:
            return
        chunks.append(
            Chunk(
                content=content,
                chunk_index=len(chunks),
                start_timestamp=current_timestamp,
                speaker=current_speaker,
                token_count=estimate_tokens(content),
            )
        )

    for paragraph in _PARAGRAPH_SPLIT_RE.split(transcript):
        timestamp, speaker = detect_marker(paragraph)
        if timestamp:
            current_timestamp = timestamp
            if speaker:
                current_speaker = speaker

        separator = "\n\n" if buffer else ""
        if len(buffer) + len(separator) + len(paragraph) > target_size:
            flush(buffer)
            tail = buffer[-overlap:] if overlap > 0 else ""
            buffer = tail + paragraph
        else:
            buffer += separator + paragraph

    flush(buffer)
    return chunks
