"""Speech recognition sources for Speak2Me."""

from .base import (
    AbstractEngineFactory,
    AbstractRecognitionEngine,
    RecognitionEngineError,
    RecognitionListener,
)
from .source import RecognitionSource
from .google_engine import GoogleEngineFactory, GoogleStreamingEngine

__all__ = [
    "AbstractEngineFactory",
    "AbstractRecognitionEngine",
    "RecognitionEngineError",
    "RecognitionListener",
    "RecognitionSource",
    "GoogleEngineFactory",
    "GoogleStreamingEngine",
]
