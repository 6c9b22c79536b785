"""Event models passed from the capture thread to the recording service."""

from dataclasses import dataclass

BYTES_PER_SAMPLE = 2  # paInt16


@dataclass
class AudioEvent:
    """One captured chunk of interleaved 16-bit PCM."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    final: bool = False  # Last chunk before the capture stopped

    @property
    def frame_count(self) -> int:
        return len(self.audio_data) // (BYTES_PER_SAMPLE * self.channels)

    @property
    def duration_ms(self) -> int:
        return int(self.frame_count * 1000 / self.sample_rate)
