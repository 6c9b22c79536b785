"""Shared audio context: container decoding and the PortAudio handle."""

import io
import logging
from typing import List, Optional

import av
import numpy as np
import pyaudio

from ..mime import PCM_MIME_TYPE, split_mime_type
from ..models.audio import DecodedAudio

logger = logging.getLogger(__name__)


class AudioEngine:
    """Decode/encode context shared across capture and recovery.

    Owns at most one ``pyaudio.PyAudio`` instance, created on first use and
    terminated by close(). Instances are handed out by a ResourceArbiter;
    nothing should call close() directly except the arbiter.
    """

    def __init__(self):
        self._pyaudio: Optional[pyaudio.PyAudio] = None
        self.closed = False
        logger.debug("AudioEngine created")

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("AudioEngine used after close()")

    def decode(self, data: bytes, mime_type: str) -> DecodedAudio:
        """Decode a complete audio byte stream into planar float samples.

        Args:
            data: Encoded audio (a container file, or raw PCM)
            mime_type: Container type the bytes were recorded in

        Returns:
            DecodedAudio with samples shaped (channels, frames)

        Raises:
            ValueError: if the data is empty or holds no decodable audio
        """
        self._check_open()
        if not data:
            raise ValueError("No audio data to decode")

        base, params = split_mime_type(mime_type)
        if base == PCM_MIME_TYPE:
            return self._decode_pcm(data, params)
        return self._decode_container(data)

    def _decode_pcm(self, data: bytes, params: dict) -> DecodedAudio:
        """Raw signed 16-bit little-endian interleaved PCM."""
        sample_rate = int(params.get("rate", 16000))
        channels = int(params.get("channels", 1))
        if channels <= 0:
            raise ValueError(f"Invalid PCM channel count: {channels}")

        frame_bytes = 2 * channels
        usable = len(data) - (len(data) % frame_bytes)
        if usable == 0:
            raise ValueError("PCM data shorter than one frame")
        if usable != len(data):
            # A torn final write leaves a partial frame behind
            logger.warning(f"Dropping {len(data) - usable} trailing bytes of partial PCM frame")

        pcm = np.frombuffer(data[:usable], dtype="<i2")
        samples = pcm.reshape(-1, channels).T.astype(np.float32) / 32768.0
        return DecodedAudio(samples=samples, sample_rate=sample_rate)

    def _decode_container(self, data: bytes) -> DecodedAudio:
        """Demux and decode with PyAV, resampled to planar float."""
        chunks: List[np.ndarray] = []
        sample_rate = None

        with av.open(io.BytesIO(data), mode="r") as container:
            if not container.streams.audio:
                raise ValueError("No audio stream found in container")

            resampler = av.AudioResampler(format="fltp")
            try:
                for frame in container.decode(audio=0):
                    if sample_rate is None:
                        sample_rate = frame.sample_rate
                    for out_frame in resampler.resample(frame):
                        chunks.append(out_frame.to_ndarray())
            except av.error.FFmpegError as e:
                # Recordings cut short by a crash usually end mid-packet
                if not chunks:
                    raise
                logger.warning(f"Decoding stopped early, keeping audio decoded so far: {e}")

            for out_frame in resampler.resample(None):
                chunks.append(out_frame.to_ndarray())

        if not chunks or sample_rate is None:
            raise ValueError("Container holds no decodable audio frames")

        samples = np.concatenate(chunks, axis=1)
        logger.debug(f"Decoded {samples.shape[1]} frames x {samples.shape[0]} channels "
                     f"at {sample_rate}Hz")
        return DecodedAudio(samples=samples, sample_rate=sample_rate)

    def open_input_stream(self, sample_rate: int, channels: int, chunk_size: int):
        """Open a 16-bit microphone input stream on the shared PortAudio handle."""
        self._check_open()
        if self._pyaudio is None:
            self._pyaudio = pyaudio.PyAudio()
            logger.debug("PortAudio initialized")

        stream = self._pyaudio.open(
            format=pyaudio.paInt16,
            channels=channels,
            rate=sample_rate,
            input=True,
            frames_per_buffer=chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {sample_rate}Hz, "
                    f"{chunk_size} samples/chunk")
        return stream

    def close(self) -> None:
        """Release the PortAudio handle. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self._pyaudio is not None:
            pa = self._pyaudio
            self._pyaudio = None
            pa.terminate()
            logger.debug("PortAudio terminated")
