"""Transcript accumulation, formatting and publishing."""

from .accumulator import TranscriptAccumulator
from .formatter import format_transcript
from .publisher import TranscriptPublisher, TRANSCRIPT_TOPIC

__all__ = [
    "TranscriptAccumulator",
    "format_transcript",
    "TranscriptPublisher",
    "TRANSCRIPT_TOPIC",
]
