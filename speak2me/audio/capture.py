"""Microphone capture feeding streaming recognition engines."""

import time
import logging
from datetime import datetime
from threading import Event, Thread
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pyaudio

from ..models.audio import AudioStats
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)

FULL_SCALE = 32768.0


def list_input_devices() -> List[Dict[str, Any]]:
    """Device info of every audio device with at least one input channel."""
    audio = pyaudio.PyAudio()
    try:
        infos = (audio.get_device_info_by_index(i) for i in range(audio.get_device_count()))
        return [info for info in infos if info.get("maxInputChannels", 0) > 0]
    finally:
        audio.terminate()


class AudioCapture:
    """Reads 16-bit PCM chunks from the default microphone on a daemon thread.

    Every chunk is handed to `callback` as an `AudioEvent`. The device is
    opened synchronously in `start()` so a missing or busy microphone is
    reported to the caller; a failure while reading is reported once through
    `error_callback` and ends the capture.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        error_callback: Optional[Callable[[Exception], None]] = None,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize microphone capture.

        Args:
            callback: Receives every captured chunk (capture thread)
            error_callback: Receives the device error that ended capture
            sample_rate: Sample rate in Hz (16kHz for speech recognition)
            chunk_size: Samples per chunk
            channels: Number of channels (1 for mono)
            format: PyAudio sample format
        """
        self.callback = callback
        self.error_callback = error_callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        self.audio: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self.thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        self.started_at: Optional[datetime] = None
        self.total_chunks = 0
        self.peak_level = 0.0

    def start(self) -> None:
        """Open the microphone and begin capturing.

        Raises:
            OSError: If the input stream cannot be opened
        """
        if self.is_recording:
            logger.warning("Microphone capture already running")
            return

        self.stream = self._open_stream()
        self.stop_event.clear()
        self.started_at = datetime.now()
        self.total_chunks = 0
        self.peak_level = 0.0

        self.thread = Thread(target=self._capture_loop, name="AudioCaptureThread", daemon=True)
        self.is_recording = True
        self.thread.start()

    def stop(self) -> None:
        """Stop capturing; the capture thread releases the device."""
        if not self.is_recording:
            return

        self.stop_event.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)
            if self.thread.is_alive():
                logger.warning("Audio capture thread did not stop in time")

        self.is_recording = False
        logger.info(f"Microphone capture stopped after {self.total_chunks} chunks")

    def _open_stream(self):
        self.audio = pyaudio.PyAudio()
        try:
            stream = self.audio.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
            )
        except OSError:
            self.audio.terminate()
            self.audio = None
            raise
        logger.info(f"Microphone opened: {self.sample_rate}Hz, {self.chunk_size} samples/chunk")
        return stream

    def _release_stream(self, stream) -> None:
        stream.stop_stream()
        stream.close()
        self.stream = None
        if self.audio:
            self.audio.terminate()
            self.audio = None

    def _capture_loop(self) -> None:
        """Internal method: read chunks until stopped or the device fails."""
        stream = self.stream
        try:
            while not self.stop_event.is_set():
                data = stream.read(self.chunk_size, exception_on_overflow=False)
                self.total_chunks += 1
                self.peak_level = self._peak(data)
                self.callback(AudioEvent(
                    chunk_id=f"chunk_{self.total_chunks}",
                    audio_data=data,
                    timestamp=time.time(),
                    sequence_number=self.total_chunks,
                    sample_rate=self.sample_rate,
                    channels=self.channels,
                ))
        except OSError as e:
            logger.error(f"Microphone read failed: {e}")
            if self.error_callback:
                self.error_callback(e)
        finally:
            self._release_stream(stream)

    @staticmethod
    def _peak(data: bytes) -> float:
        samples = np.frombuffer(data, dtype=np.int16)
        if not samples.size:
            return 0.0
        return float(np.abs(samples.astype(np.int32)).max()) / FULL_SCALE

    def get_stats(self) -> AudioStats:
        """Capture statistics since the last `start()`."""
        elapsed = 0.0
        if self.started_at:
            elapsed = (datetime.now() - self.started_at).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=elapsed,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )

    def __del__(self):
        if self.is_recording:
            self.stop()
