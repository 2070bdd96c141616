"""Tests for transcript chunking and marker detection."""

from __future__ import annotations

from src.ingestion.chunking import chunk_transcript, detect_marker, estimate_tokens


def _para(char: str, length: int = 50) -> str:
    return char * length


class TestDetectMarker:
    def test_bracketed_timestamp_with_speaker(self) -> None:
        assert detect_marker("[00:12:34] Brian Chesky: We hired slowly.") == (
            "00:12:34",
            "Brian Chesky",
        )

    def test_parenthesized_timestamp_without_speaker(self) -> None:
        assert detect_marker("(12:34) and then we launched") == ("12:34", None)

    def test_bare_timestamp_needs_speaker(self) -> None:
        assert detect_marker("5:30 Lenny: Welcome back.") == ("5:30", "Lenny")
        assert detect_marker("5:30 is when the show starts") == (None, None)

    def test_speaker_header_form(self) -> None:
        assert detect_marker("Lenny Rachitsky (00:01:02):\nWelcome to the podcast.") == (
            "00:01:02",
            "Lenny Rachitsky",
        )

    def test_no_marker(self) -> None:
        assert detect_marker("Just a paragraph of talk.") == (None, None)

    def test_timestamp_must_be_leading(self) -> None:
        assert detect_marker("We met at [10:00] sharp.") == (None, None)


class TestChunkTranscript:
    def test_empty_transcript(self) -> None:
        assert chunk_transcript("") == []

    def test_whitespace_only_transcript(self) -> None:
        assert chunk_transcript("\n\n   \n\n") == []

    def test_two_paragraph_overlap_example(self) -> None:
        first, second = _para("a"), _para("b")
        chunks = chunk_transcript(f"{first}\n\n{second}", target_size=80, overlap=10)

        assert len(chunks) == 2
        assert chunks[0].content == first
        assert chunks[1].content == "a" * 10 + second
        assert len(chunks[1].content) == 60

    def test_paragraphs_within_budget_share_a_chunk(self) -> None:
        chunks = chunk_transcript("one\n\ntwo\n\nthree", target_size=100, overlap=10)
        assert len(chunks) == 1
        assert chunks[0].content == "one\n\ntwo\n\nthree"

    def test_oversized_paragraph_is_not_split(self) -> None:
        long = _para("x", 500)
        chunks = chunk_transcript(long, target_size=100, overlap=10)
        assert len(chunks) == 1
        assert chunks[0].content == long

    def test_indices_sequential_and_token_counts(self) -> None:
        text = "\n\n".join(_para(c, 60) for c in "abcdef")
        chunks = chunk_transcript(text, target_size=100, overlap=20)
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        for c in chunks:
            assert c.token_count == estimate_tokens(c.content)

    def test_size_bound_and_coverage(self) -> None:
        text = "\n\n".join(_para(c, 40) for c in "abcdefghij")
        target, overlap = 100, 15
        chunks = chunk_transcript(text, target_size=target, overlap=overlap)

        assert sum(len(c.content) for c in chunks) >= len(text)
        for c in chunks:
            assert len(c.content) <= target + overlap
        for c in "abcdefghij":
            assert any(c * 40 in chunk.content for chunk in chunks)

    def test_sticky_timestamp_and_speaker(self) -> None:
        text = "\n\n".join(
            [
                "[0:01:00] Alice: " + _para("a", 60),
                _para("b", 60),
                _para("c", 60),
            ]
        )
        chunks = chunk_transcript(text, target_size=70, overlap=0)

        assert len(chunks) == 3
        assert "[0:01:00]" not in chunks[2].content
        assert chunks[2].start_timestamp == "0:01:00"
        assert chunks[2].speaker == "Alice"

    def test_speaker_is_kept_when_marker_has_none(self) -> None:
        text = "[1:00] Alice: hello there\n\n[2:00] more words"
        chunks = chunk_transcript(text, target_size=10_000, overlap=0)
        assert chunks[0].start_timestamp == "2:00"
        assert chunks[0].speaker == "Alice"

    def test_untagged_transcript_has_no_tags(self) -> None:
        chunks = chunk_transcript("plain\n\ntext", target_size=10, overlap=2)
        assert all(c.start_timestamp is None and c.speaker is None for c in chunks)

    def test_joined_paragraphs_stay_within_target(self) -> None:
        text = f"{_para('a', 40)}\n\n{_para('b', 40)}"

        assert len(chunk_transcript(text, target_size=81, overlap=0)) == 2
        [joined] = chunk_transcript(text, target_size=82, overlap=0)
        assert len(joined.content) == 82

    def test_no_chunk_exceeds_target_without_overlap(self) -> None:
        text = "\n\n".join(_para(c, 30) for c in "abcdefgh")
        for target in (60, 61, 62, 63, 95):
            for chunk in chunk_transcript(text, target_size=target, overlap=0):
                assert len(chunk.content) <= target

    def test_zero_overlap_does_not_duplicate(self) -> None:
        chunks = chunk_transcript(f"{_para('a')}\n\n{_para('b')}", target_size=80, overlap=0)
        assert [c.content for c in chunks] == [_para("a"), _para("b")]

    def test_deterministic(self) -> None:
        text = "\n\n".join(f"[0:0{i}:00] Host: " + _para(c, 70) for i, c in enumerate("abcde"))
        assert chunk_transcript(text, 150, 30) == chunk_transcript(text, 150, 30)


def test_estimate_tokens_rounds_up() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
