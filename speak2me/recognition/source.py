"""Restart-transparent recognition source.

Streaming engines terminate on their own after silence or a service time
limit. `RecognitionSource` hides that from its listener: while the session
should still be listening, an ended engine instance is replaced by a fresh one
(one quick attempt, one more after a backoff, then a terminal
'restart-failed' error). The listener sees one `on_start` per engine instance
and a single `on_end` when listening is really over.
"""

import logging
import threading
from typing import List, Optional

from .base import (
    AbstractEngineFactory,
    AbstractRecognitionEngine,
    RecognitionEngineError,
    RecognitionListener,
)
from ..core.dispatcher import DeferredCall, EventDispatcher
from ..models.audio import AudioStats
from ..models.recognition import (
    RESTART_FAILED,
    ErrorKind,
    RecognitionResult,
    classify_error,
)

logger = logging.getLogger(__name__)

MAX_RESTART_ATTEMPTS = 2


class _InstanceListener(RecognitionListener):
    """Tags engine callbacks with their instance and moves them to the event thread."""

    def __init__(self, source: "RecognitionSource", engine: AbstractRecognitionEngine):
        self.source = source
        self.engine = engine

    def on_start(self) -> None:
        self.source.dispatcher.post(self.source._handle_start, self.engine)

    def on_result(self, batch: List[RecognitionResult]) -> None:
        self.source.dispatcher.post(self.source._handle_result, self.engine, list(batch))

    def on_error(self, code: str) -> None:
        self.source.dispatcher.post(self.source._handle_error, self.engine, code)

    def on_end(self) -> None:
        self.source.dispatcher.post(self.source._handle_end, self.engine)


class RecognitionSource:
    """Owns at most one engine instance and keeps it alive while listening."""

    def __init__(self,
                 factory: AbstractEngineFactory,
                 dispatcher: EventDispatcher,
                 restart_delay: float = 0.1,
                 retry_backoff: float = 0.5):
        """Initialize recognition source.

        Args:
            factory: Creates engine instances and reports platform capability
            dispatcher: Event queue all engine callbacks are delivered on
            restart_delay: Seconds before the first restart attempt
            retry_backoff: Seconds before the second (last) restart attempt
        """
        self.factory = factory
        self.dispatcher = dispatcher
        self.restart_delay = restart_delay
        self.retry_backoff = retry_backoff

        self.listener: RecognitionListener = RecognitionListener()
        self.engine: Optional[AbstractRecognitionEngine] = None
        self.keep_alive = False
        self.restart_call: Optional[DeferredCall] = None
        # Attempt number of a restarted instance that has not reported on_start yet
        self.pending_attempt = 0
        self.restart_count = 0
        self.lock = threading.RLock()

        self.is_supported = self._detect_support()
        logger.info(f"RecognitionSource initialized (supported: {self.is_supported})")

    def _detect_support(self) -> bool:
        try:
            return bool(self.factory.is_supported())
        except Exception as e:
            logger.warning(f"Recognition capability check failed: {e}")
            return False

    def bind(self, listener: RecognitionListener) -> None:
        """Attach the listener receiving session-level events."""
        self.listener = listener

    @property
    def is_active(self) -> bool:
        """True while an engine instance exists or a restart is pending."""
        with self.lock:
            return self.engine is not None or self.restart_call is not None

    def get_audio_stats(self) -> Optional[AudioStats]:
        """Microphone statistics of the current engine instance."""
        with self.lock:
            engine = self.engine
        return engine.get_audio_stats() if engine is not None else None

    def start(self) -> None:
        """Start listening; a no-op while an engine instance is active.

        Raises:
            RecognitionEngineError: If recognition is unsupported or the
                engine refuses to start
        """
        with self.lock:
            if self.engine is not None:
                if not self.keep_alive:
                    # Still stopping: continue with a new instance once it ends
                    logger.info("Engine still stopping, will restart when it ends")
                    self.keep_alive = True
                    self.pending_attempt = 0
                else:
                    logger.debug("Recognition already active, ignoring start")
                return
            if not self.is_supported:
                raise RecognitionEngineError("Speech recognition is not supported on this system")

            self._cancel_restart()
            self.keep_alive = True
            self.pending_attempt = 0
            try:
                self._launch()
            except RecognitionEngineError:
                self.keep_alive = False
                raise

    def stop(self) -> None:
        """Stop listening gracefully and suppress any pending restart."""
        with self.lock:
            self.keep_alive = False
            self._cancel_restart()
            engine = self.engine

        if engine is None:
            return
        logger.info("Stopping recognition engine...")
        try:
            engine.stop()
        except RecognitionEngineError as e:
            logger.error(f"Error stopping recognition: {e}")

    def release(self) -> None:
        """Tear down: abort the current instance and ignore its remaining events."""
        with self.lock:
            self.keep_alive = False
            self._cancel_restart()
            engine, self.engine = self.engine, None

        if engine is not None:
            logger.info("Releasing recognition engine")
            engine.abort()

    def _launch(self) -> None:
        """Create, bind and start a fresh engine instance (lock held)."""
        engine = self.factory.create_engine()
        engine.bind(_InstanceListener(self, engine))
        self.engine = engine
        try:
            engine.start()
        except RecognitionEngineError:
            self.engine = None
            raise

    def _cancel_restart(self) -> None:
        if self.restart_call is not None:
            self.restart_call.cancel()
            self.restart_call = None

    def _schedule_restart(self, attempt: int) -> None:
        delay = self.restart_delay if attempt == 1 else self.retry_backoff
        logger.info(f"Restarting speech recognition in {delay:.1f}s (attempt {attempt}/{MAX_RESTART_ATTEMPTS})")
        self.restart_call = self.dispatcher.call_later(delay, self._restart, attempt)

    def _restart(self, attempt: int) -> None:
        with self.lock:
            self.restart_call = None
            if not self.keep_alive or self.engine is not None:
                logger.debug("Restart no longer wanted, skipping")
                return
            try:
                self._launch()
            except RecognitionEngineError as e:
                logger.warning(f"Error restarting recognition (attempt {attempt}): {e}")
                gave_up = self._restart_failed(attempt)
            else:
                self.pending_attempt = attempt
                self.restart_count += 1
                return

        if gave_up:
            self.listener.on_error(RESTART_FAILED)
            self.listener.on_end()

    def _restart_failed(self, attempt: int) -> bool:
        """Schedule the next attempt, or give up. Returns True when giving up (lock held)."""
        if attempt < MAX_RESTART_ATTEMPTS:
            self._schedule_restart(attempt + 1)
            return False
        logger.error(f"Failed to restart recognition {MAX_RESTART_ATTEMPTS} times, giving up")
        self.keep_alive = False
        self.pending_attempt = 0
        return True

    def _is_current(self, engine: AbstractRecognitionEngine) -> bool:
        if engine is not self.engine:
            logger.debug(f"Ignoring event from stale engine instance {id(engine):#x}")
            return False
        return True

    def _handle_start(self, engine: AbstractRecognitionEngine) -> None:
        with self.lock:
            if not self._is_current(engine):
                return
            self.pending_attempt = 0
        logger.info("Speech recognition started")
        self.listener.on_start()

    def _handle_result(self, engine: AbstractRecognitionEngine, batch: List[RecognitionResult]) -> None:
        with self.lock:
            if not self._is_current(engine):
                return
        self.listener.on_result(batch)

    def _handle_error(self, engine: AbstractRecognitionEngine, code: str) -> None:
        with self.lock:
            if not self._is_current(engine):
                return
            kind = classify_error(code)
            if kind is ErrorKind.RECOVERABLE:
                logger.warning(f"Recoverable speech recognition error: {code}")
            elif kind is ErrorKind.ABORTED:
                logger.info("Speech recognition aborted")
            else:
                logger.error(f"Speech recognition error: {code}")
                self.keep_alive = False
        self.listener.on_error(code)

    def _handle_end(self, engine: AbstractRecognitionEngine) -> None:
        gave_up = False
        with self.lock:
            if not self._is_current(engine):
                return
            self.engine = None
            if not self.keep_alive:
                logger.info("Speech recognition ended")
                forward_end = True
            elif self.pending_attempt:
                # A restarted instance ended before it ever became active
                logger.warning(f"Restarted engine ended before starting (attempt {self.pending_attempt})")
                gave_up = self._restart_failed(self.pending_attempt)
                forward_end = gave_up
            else:
                logger.info("Speech recognition ended spontaneously")
                self._schedule_restart(1)
                forward_end = False

        if gave_up:
            self.listener.on_error(RESTART_FAILED)
        if forward_end:
            self.listener.on_end()
