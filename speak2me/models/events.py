"""Event models for the pub/sub transcript architecture."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None  # Duration of this chunk in milliseconds

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass
class TranscriptUpdate:
    """Snapshot of the listening session published after every state change."""
    transcript: str  # Formatted display text
    raw_transcript: str
    is_listening: bool
    is_supported: bool
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
