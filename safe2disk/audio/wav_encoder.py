"""Canonical 16-bit PCM WAV encoding of decoded float audio."""

import io
import logging
import math
import wave

import numpy as np

from ..errors import InvalidAudioBuffer
from ..models.audio import DecodedAudio

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44
BYTES_PER_SAMPLE = 2


def encode_wav(buffer: DecodedAudio) -> bytes:
    """Encode a float buffer as a 44-byte-header RIFF/WAVE PCM byte stream.

    Each sample is clamped to [-1.0, 1.0]; negative values scale by 32768 and
    non-negative values by 32767, truncated toward zero. Frames are interleaved
    across channels.

    Args:
        buffer: Decoded audio with samples shaped (channels, frames)

    Returns:
        Exactly 44 + frames * channels * 2 bytes

    Raises:
        InvalidAudioBuffer: if the buffer has no channels or a bad sample rate
    """
    samples = np.asarray(buffer.samples)
    if samples.ndim != 2 or samples.shape[0] == 0:
        raise InvalidAudioBuffer(f"Audio buffer has no channels (shape {samples.shape})")

    try:
        sample_rate = float(buffer.sample_rate)
    except (TypeError, ValueError) as e:
        raise InvalidAudioBuffer(f"Sample rate is not a number: {buffer.sample_rate!r}") from e
    if not math.isfinite(sample_rate):
        raise InvalidAudioBuffer(f"Invalid sample rate: {buffer.sample_rate!r}")
    # The header field is an unsigned integer; fractional rates are truncated
    header_rate = int(sample_rate)
    if header_rate <= 0:
        raise InvalidAudioBuffer(f"Sample rate below 1 Hz: {buffer.sample_rate!r}")

    channels, frames = samples.shape
    data_length = frames * channels * BYTES_PER_SAMPLE

    clamped = np.clip(samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * 32768.0, clamped * 32767.0)
    # astype truncates toward zero; NaN has no defined int16 value, so map it to silence
    scaled = np.nan_to_num(scaled, nan=0.0)
    interleaved = scaled.T.reshape(-1).astype("<i2")

    out = io.BytesIO()
    with wave.open(out, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(BYTES_PER_SAMPLE)
        wf.setframerate(header_rate)
        wf.setnframes(frames)
        wf.writeframes(interleaved.tobytes())

    encoded = out.getvalue()
    if len(encoded) != WAV_HEADER_SIZE + data_length:
        raise InvalidAudioBuffer(
            f"Encoded size {len(encoded)} != {WAV_HEADER_SIZE + data_length}"
        )

    logger.debug(f"Encoded WAV: {channels}ch, {header_rate}Hz, {frames} frames")
    return encoded
