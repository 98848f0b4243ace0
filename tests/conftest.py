"""Pytest configuration and fixtures for Speak2Me tests."""

import pytest
import logging
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np

from speak2me.models.recognition import RecognitionResult
from speak2me.recognition.base import (
    AbstractEngineFactory,
    AbstractRecognitionEngine,
    RecognitionEngineError,
)
from speak2me.recognition.source import RecognitionSource
from speak2me.services.session_controller import SessionController


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")


class ScriptedEngine(AbstractRecognitionEngine):
    """Engine driven by the test: events are emitted on demand."""

    def __init__(self, fail_start: bool = False):
        super().__init__("de-DE")
        self.fail_start = fail_start
        self.started = False
        self.stopped = False
        self.aborted = False

    def start(self) -> None:
        if self.fail_start:
            raise RecognitionEngineError("scripted start failure")
        if self.started:
            raise RecognitionEngineError("already started")
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def abort(self) -> None:
        self.aborted = True

    def emit_start(self) -> None:
        self.listener.on_start()

    def emit_results(self, *entries) -> None:
        """Emit one cumulative batch of (text, is_final) pairs, indexed from 0."""
        batch = [RecognitionResult(text=text, is_final=final, sequence_index=index)
                 for index, (text, final) in enumerate(entries)]
        self.listener.on_result(batch)

    def emit_error(self, code: str) -> None:
        self.listener.on_error(code)

    def emit_end(self) -> None:
        self.listener.on_end()


class ScriptedEngineFactory(AbstractEngineFactory):
    """Hands out ScriptedEngines; `start_failures` makes the next N engines fail to start."""

    def __init__(self, supported: bool = True):
        self.supported = supported
        self.start_failures = 0
        self.engines: List[ScriptedEngine] = []

    def is_supported(self) -> bool:
        return self.supported

    def create_engine(self) -> ScriptedEngine:
        fail = self.start_failures > 0
        if fail:
            self.start_failures -= 1
        engine = ScriptedEngine(fail_start=fail)
        self.engines.append(engine)
        return engine

    @property
    def latest(self) -> Optional[ScriptedEngine]:
        return self.engines[-1] if self.engines else None


class ManualDeferredCall:
    def __init__(self, due: float, callback, args):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualDispatcher:
    """Dispatcher with an explicit queue and a virtual clock."""

    def __init__(self):
        self.queue = []
        self.timers: List[ManualDeferredCall] = []
        self.now = 0.0

    def post(self, callback, *args) -> None:
        self.queue.append((callback, args))

    def call_later(self, delay: float, callback, *args) -> ManualDeferredCall:
        handle = ManualDeferredCall(self.now + delay, callback, args)
        self.timers.append(handle)
        return handle

    def run_pending(self) -> None:
        while self.queue:
            callback, args = self.queue.pop(0)
            callback(*args)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers and draining the queue."""
        self.run_pending()
        self.now += seconds
        due = sorted((t for t in self.timers if t.due <= self.now + 1e-9 and not t.cancelled),
                     key=lambda t: t.due)
        for timer in due:
            self.timers.remove(timer)
            self.post(timer.callback, *timer.args)
        self.run_pending()

    @property
    def pending_timers(self) -> List[ManualDeferredCall]:
        return [t for t in self.timers if not t.cancelled]


@pytest.fixture
def engine_factory():
    return ScriptedEngineFactory()


@pytest.fixture
def dispatcher():
    return ManualDispatcher()


@pytest.fixture
def source(engine_factory, dispatcher):
    return RecognitionSource(engine_factory, dispatcher, restart_delay=0.1, retry_backoff=0.5)


@pytest.fixture
def published():
    return Mock()


@pytest.fixture
def controller(source, published):
    return SessionController(source, publish_callback=published)


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    freq = 440

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.get_device_count.return_value = 2
        mock_pyaudio_instance.get_device_info_by_index.side_effect = [
            {"name": "Speakers", "maxInputChannels": 0},
            {"name": "USB Microphone", "maxInputChannels": 1},
        ]

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
