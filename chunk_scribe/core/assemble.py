"""Joining per-chunk transcripts into one raw transcript."""

from typing import Iterable

from .types import TranscriptSegment

SEGMENT_SEPARATOR = "\n\n"


def assemble_transcript(segments: Iterable[TranscriptSegment], separator: str = SEGMENT_SEPARATOR) -> str:
    """
    Concatenate segment texts in chunk order.

    Segments are ordered by chunk index, not by the order they were handed in,
    so results gathered out of order still assemble correctly.
    """
    ordered = sorted(segments, key=lambda segment: segment.index)
    return separator.join(segment.text.strip() for segment in ordered)
