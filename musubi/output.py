"""
Output helpers for musubi.

The parser returns recognized words only. These helpers put them back in
the context of the input text for display and JSON output.
"""

from typing import List, Sequence

from musubi.models import SegmentResult
from musubi.parser import ResolvedWord


def reconstruct_segments(text: str, words: Sequence[ResolvedWord]) -> List[SegmentResult]:
    """
    Split text into word and literal segments.

    Each word is located in order, starting where the previous one ended;
    characters skipped on the way become literal segments. Concatenating
    the segment texts gives back the input.

    Raises:
        ValueError: A word cannot be found after the previous one.
    """
    segments: List[SegmentResult] = []
    cursor = 0
    for word in words:
        start = text.find(word.original_text, cursor)
        if start < 0 or not word.original_text:
            raise ValueError(f"{word.original_text!r} not found after offset {cursor}")
        if start > cursor:
            segments.append(SegmentResult(text=text[cursor:start], start=cursor))
        segments.append(SegmentResult(
            text=word.original_text,
            start=start,
            word_id=word.word_id,
            reading_index=word.reading_index,
        ))
        cursor = start + len(word.original_text)
    if cursor < len(text):
        segments.append(SegmentResult(text=text[cursor:], start=cursor))
    return segments


def segments_to_text(segments: Sequence[SegmentResult]) -> str:
    """One line per segment: surface, word id and reading index (or '-')."""
    lines = []
    for s in segments:
        if s.is_word:
            lines.append(f"{s.text}\t{s.word_id}\t{s.reading_index}")
        elif s.text.strip():
            lines.append(f"{s.text}\t-")
    return "\n".join(lines)
