"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np


@dataclass
class DecodedAudio:
    """Decoded multi-channel float audio.

    ``samples`` has shape (channels, frames), nominal range [-1.0, 1.0].
    """
    samples: np.ndarray
    sample_rate: float

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0]) if self.samples.ndim == 2 else 0

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1]) if self.samples.ndim == 2 else 0

    @property
    def duration_seconds(self) -> float:
        if not self.sample_rate:
            return 0.0
        return self.frame_count / float(self.sample_rate)


@dataclass
class ReconstructedArtifact:
    """A single in-memory audio buffer tagged with its container type."""
    data: bytes
    mime_type: str
    transcoded: bool = False

    @property
    def size_bytes(self) -> int:
        return len(self.data)
