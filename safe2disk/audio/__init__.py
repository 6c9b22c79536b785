"""Audio capture, decoding and encoding."""

from .arbiter import ResourceArbiter
from .engine import AudioEngine
from .wav_encoder import encode_wav
from .capture import AudioCapture
from .audio_pub import AudioPublisher

__all__ = [
    'ResourceArbiter',
    'AudioEngine',
    'encode_wav',
    'AudioCapture',
    'AudioPublisher',
]
