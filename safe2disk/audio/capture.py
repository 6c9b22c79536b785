"""Audio capture module with continuous recording and event publishing."""

import time
import logging
from threading import Thread, Event
from typing import Optional, Callable

from ..models.events import AudioEvent
from .engine import AudioEngine


logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous microphone capture that hands each chunk to a callback.

    The input stream is opened on the shared AudioEngine; the engine, not the
    capture, owns the PortAudio handle.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        engine: AudioEngine,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives every captured AudioEvent, on the capture thread
            engine: Shared audio context used to open the input stream
            sample_rate: Audio sample rate
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
        """
        self.audio_event_callback = callback
        self.engine = engine
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self.error: Optional[Exception] = None

        # Statistics tracking
        self.total_chunks = 0

    def start_recording(self) -> None:
        """Start continuous recording in background thread."""
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.total_chunks = 0
        self.error = None

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def stop_recording(self) -> None:
        """Stop recording and wait for the capture thread to publish its final chunk."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")

    def _read_audio_chunk(self, stream) -> bytes:
        audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return audio_chunk

    def _publish_audio_event(self, audio_chunk: bytes, final: bool = False) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=final
        )
        self.audio_event_callback(audio_event)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream = None
        try:
            stream = self.engine.open_input_stream(
                sample_rate=self.sample_rate,
                channels=self.channels,
                chunk_size=self.chunk_size,
            )
            while not self.stop_event.is_set():
                audio_chunk = self._read_audio_chunk(stream)
                self._publish_audio_event(audio_chunk)
            # Publish final event, so consumers know we are done
            audio_chunk = self._read_audio_chunk(stream)
            self._publish_audio_event(audio_chunk, final=True)
        except Exception as e:
            logger.error(f"Audio capture failed: {e}")
            self.error = e
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
