"""Audio capture module."""

from .capture import AudioCapture, list_input_devices

__all__ = [
    'AudioCapture',
    'list_input_devices'
]
