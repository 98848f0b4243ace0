"""Data models for the Speak2Me application."""

from .recognition import (
    RecognitionResult,
    AccumulatorState,
    ListeningSession,
    ErrorKind,
    classify_error,
    RECOVERABLE_ERROR_CODES,
)
from .events import AudioEvent, TranscriptUpdate
from .audio import AudioStats

__all__ = [
    "RecognitionResult",
    "AccumulatorState",
    "ListeningSession",
    "ErrorKind",
    "classify_error",
    "RECOVERABLE_ERROR_CODES",
    "AudioEvent",
    "TranscriptUpdate",
    "AudioStats",
]
