"""Abstract base classes for speech recognition engines."""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from ..models.audio import AudioStats
from ..models.recognition import RecognitionResult

logger = logging.getLogger(__name__)


class RecognitionEngineError(RuntimeError):
    """Raised when an engine instance cannot be started."""


class RecognitionListener:
    """Receives the four lifecycle events of a recognition engine.

    Default implementations do nothing, so listeners only override what they
    care about.
    """

    def on_start(self) -> None:
        """Recognition became active."""

    def on_result(self, batch: List[RecognitionResult]) -> None:
        """All results recognized so far by the current engine instance."""

    def on_error(self, code: str) -> None:
        """Engine reported an error code (e.g. 'network', 'not-allowed')."""

    def on_end(self) -> None:
        """Engine instance terminated, by request or spontaneously."""


class AbstractRecognitionEngine(ABC):
    """One continuous run of a streaming speech recognizer.

    An instance is started at most once; restarting after `on_end` means
    creating a new instance through the factory. Result indices are only
    stable within one instance.
    """

    def __init__(self, language: str = "de-DE"):
        """Initialize engine with language preference."""
        self.language = language
        self.listener: Optional[RecognitionListener] = None

    def bind(self, listener: RecognitionListener) -> None:
        """Attach the listener that receives this instance's events."""
        self.listener = listener

    @abstractmethod
    def start(self) -> None:
        """Begin continuous, interim-enabled recognition.

        Raises:
            RecognitionEngineError: If the instance is already running or
                the underlying resources cannot be opened
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Request graceful termination; pending results are still delivered."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Terminate immediately, reporting 'aborted' followed by the end event."""
        pass

    def get_audio_stats(self) -> Optional[AudioStats]:
        """Microphone statistics of this instance, if the engine captures audio itself."""
        return None


class AbstractEngineFactory(ABC):
    """Creates engine instances and reports platform capability."""

    @abstractmethod
    def is_supported(self) -> bool:
        """Check whether recognition can run on this system at all."""
        pass

    @abstractmethod
    def create_engine(self) -> AbstractRecognitionEngine:
        """Construct a fresh, unstarted engine instance."""
        pass
