"""Parsers for markdown transcripts with YAML front-matter."""

from __future__ import annotations

import re
from typing import Any

import yaml

from src.ingestion.models import EpisodeSource

_FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
_VIDEO_ID_RE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\s]+)")


def slugify(text: str) -> str:
    """Lower-case, strip punctuation, and hyphenate whitespace."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def parse_duration(duration: str) -> int:
    """Convert ``"1:23:45"`` or ``"45:30"`` to seconds; anything else is 0."""
    try:
        parts = [int(p) for p in duration.strip().split(":")]
    except ValueError:
        return 0
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    return 0


def extract_video_id(url: str) -> str | None:
    match = _VIDEO_ID_RE.search(url or "")
    return match.group(1) if match else None


def split_front_matter(content: str) -> tuple[dict[str, Any], str]:
    """Separate a leading ``---`` YAML block from the markdown body.

    Returns an empty mapping and the untouched content when there is no
    front-matter block.
    """
    match = _FRONT_MATTER_RE.match(content)
    if not match:
        return {}, content

    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        msg = f"Front-matter must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    return data, content[match.end() :]


def parse_episode_markdown(content: str) -> EpisodeSource:
    """Parse a transcript markdown file into an :class:`EpisodeSource`.

    Expected front-matter keys: ``guest``, ``title``, ``youtube_url``,
    ``publish_date``, ``duration``, ``view_count``, ``keywords``.

    Raises:
        ValueError: If ``title`` or ``guest`` is missing.
    """
    meta, body = split_front_matter(content)

    title = str(meta.get("title") or "").strip()
    guest = str(meta.get("guest") or "").strip()
    if not title or not guest:
        msg = f"Transcript front-matter needs 'title' and 'guest'. Keys: {list(meta.keys())}"
        raise ValueError(msg)

    youtube_url = str(meta.get("youtube_url") or "")
    publish_date = meta.get("publish_date")
    keywords = meta.get("keywords") or []

    return EpisodeSource(
        guest_name=guest,
        title=title,
        slug=slugify(title),
        raw_transcript=body.strip(),
        youtube_url=youtube_url,
        video_id=extract_video_id(youtube_url),
        # YAML turns bare dates into datetime.date
        publish_date=str(publish_date) if publish_date else None,
        duration_seconds=parse_duration(str(meta.get("duration") or "0:00")),
        view_count=int(meta.get("view_count") or 0),
        keywords=[str(k) for k in keywords],
    )
