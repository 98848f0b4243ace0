"""Unit tests for AudioCapture class."""

import pytest
import time
from unittest.mock import Mock, patch
import numpy as np

from speak2me.audio.capture import AudioCapture, list_input_devices
from speak2me.models.audio import AudioStats


@pytest.mark.unit
class TestAudioCapture:
    """Test cases for microphone capture with mocked PyAudio."""

    def test_initialization(self):
        capture = AudioCapture(callback=Mock())

        assert capture.sample_rate == 16000
        assert capture.chunk_size == 1024
        assert capture.channels == 1
        assert capture.is_recording is False
        assert capture.total_chunks == 0
        assert capture.peak_level == 0.0

    def test_start_opens_device_synchronously(self, mock_pyaudio):
        capture = AudioCapture(callback=Mock(), sample_rate=44100, chunk_size=2048)

        with patch.object(capture, '_capture_loop') as mock_loop:
            capture.start()
            capture.thread.join(timeout=1.0)

            assert capture.is_recording is True
            assert capture.started_at is not None
            assert capture.thread.daemon is True
            mock_loop.assert_called_once()

        open_kwargs = mock_pyaudio['instance'].open.call_args.kwargs
        assert open_kwargs['rate'] == 44100
        assert open_kwargs['frames_per_buffer'] == 2048
        assert open_kwargs['input'] is True

    def test_start_while_recording_is_noop(self, mock_pyaudio):
        capture = AudioCapture(callback=Mock())
        capture.is_recording = True

        capture.start()

        mock_pyaudio['instance'].open.assert_not_called()
        capture.is_recording = False

    def test_device_unavailable(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError("Invalid input device")
        capture = AudioCapture(callback=Mock())

        with pytest.raises(OSError):
            capture.start()

        assert capture.is_recording is False
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_stop(self, mock_pyaudio):
        capture = AudioCapture(callback=Mock())

        with patch.object(capture, '_capture_loop'):
            capture.start()
            capture.stop()

        assert capture.is_recording is False
        assert capture.stop_event.is_set()

    def test_stop_when_idle(self):
        capture = AudioCapture(callback=Mock())

        capture.stop()

        assert capture.is_recording is False

    def test_chunks_delivered_to_callback(self, mock_pyaudio, sample_audio_chunk):
        events = []
        mock_pyaudio['stream'].read.return_value = sample_audio_chunk
        capture = AudioCapture(callback=events.append)

        capture.start()
        time.sleep(0.1)
        capture.stop()

        assert capture.total_chunks > 0
        assert len(events) == capture.total_chunks
        assert events[0].audio_data == sample_audio_chunk
        assert [event.sequence_number for event in events] == list(range(1, len(events) + 1))
        mock_pyaudio['stream'].close.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_read_failure_reported_once(self, mock_pyaudio):
        error_callback = Mock()
        mock_pyaudio['stream'].read.side_effect = OSError("Stream closed")
        capture = AudioCapture(callback=Mock(), error_callback=error_callback)

        capture.start()
        capture.thread.join(timeout=1.0)

        error_callback.assert_called_once()
        assert isinstance(error_callback.call_args[0][0], OSError)
        mock_pyaudio['stream'].close.assert_called_once()

        capture.stop()
        assert capture.is_recording is False

    def test_peak_level(self, mock_pyaudio):
        samples = np.array([0, 16383, 0, -16383, 0], dtype=np.int16)  # 50% peak
        mock_pyaudio['stream'].read.return_value = samples.tobytes()
        capture = AudioCapture(callback=Mock())

        capture.start()
        time.sleep(0.05)
        capture.stop()

        assert 0.4 < capture.peak_level < 0.6

    def test_stats_before_start(self):
        stats = AudioCapture(callback=Mock()).get_stats()

        assert isinstance(stats, AudioStats)
        assert stats.is_recording is False
        assert stats.duration_seconds == 0.0
        assert stats.total_chunks == 0
        assert stats.peak_level == 0.0

    def test_stats_while_recording(self, mock_pyaudio):
        capture = AudioCapture(callback=Mock())

        with patch.object(capture, '_capture_loop'):
            capture.start()
            time.sleep(0.05)

            stats = capture.get_stats()
            assert stats.is_recording is True
            assert stats.duration_seconds > 0

            capture.stop()

    def test_destructor_stops_capture(self):
        capture = AudioCapture(callback=Mock())

        with patch.object(AudioCapture, 'stop') as mock_stop:
            capture.is_recording = True
            capture.__del__()

            mock_stop.assert_called_once()
            capture.is_recording = False


@pytest.mark.unit
def test_list_input_devices(mock_pyaudio):
    devices = list_input_devices()

    assert [device["name"] for device in devices] == ["USB Microphone"]
    mock_pyaudio['instance'].terminate.assert_called_once()
