"""Google Speech-to-Text streaming recognition engine."""

import queue
import logging
import threading
from pathlib import Path
from typing import List, Optional

from .base import AbstractEngineFactory, AbstractRecognitionEngine, RecognitionEngineError
from ..audio.capture import AudioCapture, list_input_devices
from ..models.audio import AudioStats
from ..models.events import AudioEvent
from ..models.recognition import (
    ABORTED,
    AUDIO_CAPTURE,
    NETWORK,
    NOT_ALLOWED,
    SERVICE_ERROR,
    RecognitionResult,
)

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


def map_api_error(error: gax_exceptions.GoogleAPICallError) -> Optional[str]:
    """Translate a streaming API failure into a recognition error code.

    Returns:
        Error code, or None when the failure is a normal end of stream
    """
    if isinstance(error, gax_exceptions.OutOfRange):
        # Per-stream duration limit: the instance simply ends
        return None
    if isinstance(error, (gax_exceptions.ServiceUnavailable, gax_exceptions.DeadlineExceeded)):
        return NETWORK
    if isinstance(error, (gax_exceptions.PermissionDenied, gax_exceptions.Unauthenticated)):
        return NOT_ALLOWED
    return SERVICE_ERROR


class StreamingResultCollector:
    """Turns streaming responses into cumulative result batches for one instance.

    Settled results keep their position; the current hypothesis (possibly
    several unstable pieces in one response) is reported as one trailing
    interim entry.
    """

    def __init__(self):
        self.finals: List[RecognitionResult] = []
        self.interim_text = ""

    def add_response(self, response) -> Optional[List[RecognitionResult]]:
        """Fold one StreamingRecognizeResponse.

        Returns:
            The full batch for this instance, or None if the response carried no results
        """
        if not response.results:
            return None

        interim_parts = []
        for result in response.results:
            if not result.alternatives:
                continue
            alternative = result.alternatives[0]
            if result.is_final:
                self.finals.append(RecognitionResult(
                    text=alternative.transcript.strip(),
                    is_final=True,
                    sequence_index=len(self.finals),
                    confidence=alternative.confidence,
                ))
                interim_parts = []
            else:
                interim_parts.append(alternative.transcript.strip())

        self.interim_text = " ".join(part for part in interim_parts if part)
        return self.batch()

    def batch(self) -> List[RecognitionResult]:
        batch = list(self.finals)
        if self.interim_text:
            batch.append(RecognitionResult(
                text=self.interim_text,
                is_final=False,
                sequence_index=len(self.finals),
            ))
        return batch


class GoogleStreamingEngine(AbstractRecognitionEngine):
    """One streaming_recognize call fed from the microphone."""

    def __init__(self,
                 client: speech.SpeechClient,
                 language: str = "de-DE",
                 sample_rate: int = 16000,
                 chunk_size: int = 1024,
                 channels: int = 1,
                 max_queued_chunks: int = 200):
        """Initialize Google streaming engine.

        Args:
            client: Speech client shared between engine instances
            language: Language code (e.g., 'de-DE', 'en-US')
            sample_rate: Microphone sample rate in Hz
            chunk_size: Samples per captured chunk
            channels: Number of microphone channels
            max_queued_chunks: Audio chunks buffered before dropping
        """
        super().__init__(language)
        self.client = client
        self.sample_rate = sample_rate
        self.audio_queue: "queue.Queue[Optional[bytes]]" = queue.Queue(maxsize=max_queued_chunks)
        self.capture = AudioCapture(
            callback=self._on_audio_event,
            error_callback=self._on_audio_error,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels,
        )
        self.collector = StreamingResultCollector()
        self.stream_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self.started = False
        self.opened = False
        self.open_lock = threading.Lock()
        self.aborted = False
        self.audio_error: Optional[Exception] = None
        self.dropped_chunks = 0

        self.streaming_config = speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=language,
                max_alternatives=1,
                # Raw text; capitalization and punctuation are applied by the formatter
                enable_automatic_punctuation=False,
            ),
            interim_results=True,
        )

    def start(self) -> None:
        if self.started:
            raise RecognitionEngineError("Recognition engine instance already started")
        self.started = True

        try:
            self.capture.start()
        except OSError as e:
            raise RecognitionEngineError(f"Microphone unavailable: {e}") from e

        self.stream_thread = threading.Thread(target=self._stream_loop, daemon=True)
        self.stream_thread.name = "GoogleStreamingThread"
        self.stream_thread.start()
        logger.info(f"Google streaming recognition started ({self.language})")

    def stop(self) -> None:
        if not self.started or self.stop_event.is_set():
            return
        logger.info("Stopping Google streaming recognition")
        self.stop_event.set()
        self.capture.stop()
        self._end_request_stream()

    def abort(self) -> None:
        self.aborted = True
        self.stop()

    def get_audio_stats(self) -> AudioStats:
        return self.capture.get_stats()

    def _on_audio_event(self, event: AudioEvent) -> None:
        try:
            self.audio_queue.put_nowait(event.audio_data)
        except queue.Full:
            self.dropped_chunks += 1
            logger.warning(f"Audio queue full, dropped {event.chunk_duration_ms} ms ({event.chunk_id})")

    def _on_audio_error(self, error: Exception) -> None:
        self.audio_error = error
        self.stop_event.set()
        self._end_request_stream()

    def _end_request_stream(self) -> None:
        try:
            self.audio_queue.put_nowait(None)
        except queue.Full:
            # The generator also polls stop_event
            pass

    def _request_stream(self):
        """Yield audio requests until stopped.

        gRPC pulls the first request only once the call is live, which is when
        the instance reports on_start.
        """
        while True:
            try:
                chunk = self.audio_queue.get(timeout=0.1)
            except queue.Empty:
                if self.stop_event.is_set():
                    return
                continue
            if chunk is None:
                return
            self._mark_open()
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _emit(self, event: str, *args) -> None:
        if self.listener is not None:
            getattr(self.listener, event)(*args)

    def _mark_open(self) -> None:
        with self.open_lock:
            if self.opened:
                return
            self.opened = True
        self._emit("on_start")

    def _stream_loop(self) -> None:
        """Internal method: run one streaming call in the background thread."""
        error_code = None
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config,
                requests=self._request_stream(),
            )
            for response in responses:
                if self.aborted:
                    break
                self._mark_open()
                batch = self.collector.add_response(response)
                if batch is not None:
                    logger.debug(f"Streaming batch: {len(batch)} results "
                                 f"({len(self.collector.finals)} final)")
                    self._emit("on_result", batch)
        except gax_exceptions.GoogleAPICallError as e:
            error_code = map_api_error(e)
            if error_code is None:
                logger.info(f"Streaming limit reached, ending instance: {e}")
            else:
                logger.error(f"Google streaming error ({error_code}): {e}")
        finally:
            self.stop_event.set()
            self.capture.stop()
            if self.aborted:
                error_code = ABORTED
            elif self.audio_error is not None:
                error_code = AUDIO_CAPTURE
            if error_code is not None:
                self._emit("on_error", error_code)
            if not self.opened:
                logger.warning("Google stream ended before it opened")
            logger.info(f"Google streaming recognition ended "
                        f"({len(self.collector.finals)} final results, {self.dropped_chunks} dropped chunks)")
            self._emit("on_end")


class GoogleEngineFactory(AbstractEngineFactory):
    """Creates Google streaming engines sharing one SpeechClient."""

    def __init__(self,
                 credentials_path: Optional[str],
                 language: str = "de-DE",
                 sample_rate: int = 16000,
                 chunk_size: int = 1024,
                 channels: int = 1):
        self.credentials_path = credentials_path
        self.language = language
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.client: Optional[speech.SpeechClient] = None
        self._supported: Optional[bool] = None

    def is_supported(self) -> bool:
        """Credentials are present and at least one microphone exists."""
        if self._supported is None:
            self._supported = self._probe()
        return self._supported

    def _probe(self) -> bool:
        if not self.credentials_path or not Path(self.credentials_path).exists():
            logger.warning(f"Google credentials not found: {self.credentials_path}")
            return False
        try:
            devices = list_input_devices()
        except OSError as e:
            logger.warning(f"Could not enumerate audio devices: {e}")
            return False
        if not devices:
            logger.warning("No audio input devices available")
            return False
        logger.info(f"Found {len(devices)} audio input device(s)")
        return True

    def _get_client(self) -> speech.SpeechClient:
        if self.client is None:
            logger.info(f"Loading Google credentials from: {self.credentials_path}")
            try:
                credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            except (OSError, ValueError) as e:
                raise RecognitionEngineError(f"Invalid Google credentials: {e}") from e
            self.client = speech.SpeechClient(credentials=credentials)
            logger.info(f"Using Google Cloud project: {credentials.project_id}")
        return self.client

    def create_engine(self) -> GoogleStreamingEngine:
        return GoogleStreamingEngine(
            client=self._get_client(),
            language=self.language,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
        )
