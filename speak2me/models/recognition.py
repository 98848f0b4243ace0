"""Recognition-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# Error codes reported by recognition engines
NETWORK = "network"
NO_SPEECH = "no-speech"
ABORTED = "aborted"
NOT_ALLOWED = "not-allowed"
AUDIO_CAPTURE = "audio-capture"
SERVICE_ERROR = "service-error"
RESTART_FAILED = "restart-failed"

RECOVERABLE_ERROR_CODES = frozenset({NETWORK, NO_SPEECH})


class ErrorKind(Enum):
    """How a recognition error code affects a listening session."""
    RECOVERABLE = "recoverable"
    ABORTED = "aborted"
    FATAL = "fatal"


def classify_error(code: str) -> ErrorKind:
    """Map an engine error code onto the session error taxonomy."""
    if code in RECOVERABLE_ERROR_CODES:
        return ErrorKind.RECOVERABLE
    if code == ABORTED:
        return ErrorKind.ABORTED
    return ErrorKind.FATAL


@dataclass(frozen=True)
class RecognitionResult:
    """One utterance hypothesis reported by a recognition engine instance."""
    text: str
    is_final: bool
    sequence_index: int  # Stable within one engine instance only
    confidence: float = 0.0


@dataclass
class AccumulatorState:
    """Cumulative transcript state folded from recognition batches."""
    settled_text: str = ""  # Append-only between resets
    last_consumed_index: int = 0
    current_interim_text: str = ""


@dataclass
class ListeningSession:
    """Listening state exposed to the consuming UI."""
    is_listening: bool = False
    is_supported: bool = False
    last_error: Optional[str] = None
