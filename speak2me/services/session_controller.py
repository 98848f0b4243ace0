"""Session controller exposing listening state and transcript to the UI."""

import logging
import threading
from typing import Callable, List, Optional

from ..models.events import TranscriptUpdate
from ..models.recognition import (
    RESTART_FAILED,
    ErrorKind,
    ListeningSession,
    RecognitionResult,
    classify_error,
)
from ..recognition.base import RecognitionEngineError, RecognitionListener
from ..recognition.source import RecognitionSource
from ..transcript.accumulator import TranscriptAccumulator
from ..transcript.formatter import format_transcript

logger = logging.getLogger(__name__)

NOT_SUPPORTED_MESSAGE = "Speech recognition is not supported on this system"
START_FAILED_MESSAGE = "Failed to start speech recognition"
RESTART_FAILED_MESSAGE = "Speech recognition stopped: automatic restart failed"


class SessionController(RecognitionListener):
    """Orchestrates start/stop/reset of listening and folds recognition events.

    Public operations may be called from any thread; recognition events arrive
    on the dispatcher thread. Both go through one lock.
    """

    def __init__(self,
                 source: RecognitionSource,
                 accumulator: Optional[TranscriptAccumulator] = None,
                 formatter: Callable[[str], str] = format_transcript,
                 publish_callback: Optional[Callable[[TranscriptUpdate], None]] = None):
        """Initialize session controller.

        Args:
            source: Recognition source, exclusively owned by this controller
            accumulator: Transcript state (a fresh one if omitted)
            formatter: Turns raw accumulated text into display text
            publish_callback: Receives a snapshot after every state change
        """
        self.source = source
        self.accumulator = accumulator or TranscriptAccumulator()
        self.formatter = formatter
        self.publish_callback = publish_callback

        self.lock = threading.RLock()
        self._session = ListeningSession(is_supported=source.is_supported)
        self.wants_listening = False

        if not self._session.is_supported:
            self._session.last_error = NOT_SUPPORTED_MESSAGE
            logger.warning(NOT_SUPPORTED_MESSAGE)

        source.bind(self)
        logger.info(f"SessionController initialized (supported: {self._session.is_supported})")

    @property
    def is_supported(self) -> bool:
        return self._session.is_supported

    @property
    def is_listening(self) -> bool:
        with self.lock:
            return self._session.is_listening

    @property
    def error(self) -> Optional[str]:
        with self.lock:
            return self._session.last_error

    @property
    def raw_transcript(self) -> str:
        with self.lock:
            return self.accumulator.raw_text

    @property
    def transcript(self) -> str:
        """Formatted transcript, derived on every access."""
        return self.formatter(self.raw_transcript)

    @property
    def session(self) -> ListeningSession:
        with self.lock:
            return ListeningSession(**vars(self._session))

    def snapshot(self) -> TranscriptUpdate:
        with self.lock:
            raw = self.accumulator.raw_text
            return TranscriptUpdate(
                transcript=self.formatter(raw),
                raw_transcript=raw,
                is_listening=self._session.is_listening,
                is_supported=self._session.is_supported,
                error=self._session.last_error,
            )

    def _publish(self, update: TranscriptUpdate) -> None:
        if self.publish_callback:
            self.publish_callback(update)

    def start_listening(self) -> None:
        """Start continuous recognition unless already listening or unsupported."""
        with self.lock:
            if not self._session.is_supported:
                logger.warning("Cannot start listening: speech recognition not supported")
                self._session.last_error = NOT_SUPPORTED_MESSAGE
            elif self.wants_listening:
                return
            else:
                logger.info("Starting continuous speech recognition...")
                self._session.last_error = None
                self.wants_listening = True
                try:
                    self.source.start()
                except RecognitionEngineError as e:
                    logger.error(f"Error starting recognition: {e}")
                    self._session.last_error = START_FAILED_MESSAGE
                    self.wants_listening = False
            update = self.snapshot()
        self._publish(update)

    def stop_listening(self) -> None:
        """Stop listening; the state flips immediately, before the engine ends."""
        with self.lock:
            logger.info("Stopping speech recognition...")
            self.wants_listening = False
            self.source.stop()
            self._session.is_listening = False
            update = self.snapshot()
        self._publish(update)

    def reset_transcript(self) -> None:
        """Clear the transcript; listening state is unaffected."""
        with self.lock:
            self.accumulator.reset()
            update = self.snapshot()
        self._publish(update)

    def release(self) -> None:
        """Tear down the session and release the recognition source."""
        with self.lock:
            self.wants_listening = False
            self._session.is_listening = False
            self.source.release()
        logger.info("SessionController released")

    def on_start(self) -> None:
        with self.lock:
            # Every engine instance numbers its results from 0
            self.accumulator.begin_instance()
            if self.wants_listening:
                self._session.is_listening = True
                self._session.last_error = None
            update = self.snapshot()
        self._publish(update)

    def on_result(self, batch: List[RecognitionResult]) -> None:
        with self.lock:
            self.accumulator.fold(batch)
            update = self.snapshot()
        self._publish(update)

    def on_error(self, code: str) -> None:
        kind = classify_error(code)
        if kind is not ErrorKind.FATAL:
            logger.debug(f"Ignoring non-fatal recognition error: {code}")
            return

        with self.lock:
            if code == RESTART_FAILED:
                self._session.last_error = RESTART_FAILED_MESSAGE
            else:
                self._session.last_error = f"Speech recognition error: {code}"
            self._session.is_listening = False
            self.wants_listening = False
            update = self.snapshot()
        self._publish(update)

    def on_end(self) -> None:
        with self.lock:
            self._session.is_listening = False
            self.wants_listening = False
            update = self.snapshot()
        self._publish(update)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        """Context manager exit."""
        self.release()
