"""Recording service: streams captured audio into a crash-safe session."""

import logging
import threading
from typing import Any, Callable, List, Optional

from pubsub import pub

from ..audio.arbiter import ResourceArbiter
from ..audio.audio_pub import AudioPublisher
from ..audio.capture import AudioCapture
from ..audio.engine import AudioEngine
from ..errors import CaptureFailed
from ..mime import pcm_mime_type
from ..models.events import AudioEvent
from ..models.session import Session
from ..storage.session_store import SessionStore
from .assembler import ArtifactAssembler
from .recovery import generate_timestamped_name

logger = logging.getLogger(__name__)

ProcessFn = Callable[[bytes, str, str], Any]
CaptureFactory = Callable[..., AudioCapture]


class RecordingService:
    """Writes captured chunks to disk as fragments and finalizes on stop.

    A crash at any point leaves the session directory behind for
    RecoveryCoordinator; a normal stop hands the finished artifact to ``process``
    and deletes the session.
    """

    def __init__(self,
                 store: SessionStore,
                 arbiter: ResourceArbiter,
                 assembler: ArtifactAssembler,
                 process: ProcessFn,
                 sample_rate: int = 16000,
                 channels: int = 1,
                 chunk_size: int = 1024,
                 chunks_per_fragment: int = 16,
                 topic: str = "audio.frame",
                 capture_factory: CaptureFactory = AudioCapture):
        """Initialize recording service.

        Args:
            store: Session storage receiving fragments
            arbiter: Shared audio context provider
            assembler: Builds the finished artifact on stop
            process: Consumer entry point receiving (bytes, mime_type, file_name)
            sample_rate: Capture sample rate
            channels: Capture channel count
            chunk_size: Samples per captured chunk
            chunks_per_fragment: Captured chunks grouped into one fragment file
            topic: Pub/sub topic carrying AudioEvents
            capture_factory: Builds the AudioCapture (replaced in tests)
        """
        if chunks_per_fragment < 1:
            raise ValueError("chunks_per_fragment must be at least 1")
        self.store = store
        self.arbiter = arbiter
        self.assembler = assembler
        self.process = process
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.chunks_per_fragment = chunks_per_fragment
        self.topic = topic
        self.capture_factory = capture_factory

        self.publisher = AudioPublisher(topic)
        self.session: Optional[Session] = None
        self.capture: Optional[AudioCapture] = None
        self.capture_error: Optional[Exception] = None
        self.is_recording = False
        self._engine: Optional[AudioEngine] = None
        self._pending: List[bytes] = []
        self._next_index = 0
        self._lock = threading.Lock()

    @property
    def mime_type(self) -> str:
        return pcm_mime_type(self.sample_rate, self.channels)

    @property
    def fragments_written(self) -> int:
        return self._next_index

    @property
    def capture_failed(self) -> bool:
        """True once the capture thread has stopped with an error."""
        return self.capture is not None and self.capture.error is not None

    def start(self) -> Session:
        """Start a new session and begin capturing into it."""
        if self.is_recording:
            raise RuntimeError("Recording already in progress")

        self.session = self.store.start_session(self.mime_type)
        self._pending = []
        self._next_index = 0
        self.capture = None
        self.capture_error = None

        try:
            self._engine = self.arbiter.acquire()
            self.capture = self.capture_factory(
                callback=self.publisher.publish_audio_event,
                engine=self._engine,
                sample_rate=self.sample_rate,
                chunk_size=self.chunk_size,
                channels=self.channels,
            )
            pub.subscribe(self.handle_audio_event, self.topic)
            self.capture.start_recording()
        except Exception:
            self._detach()
            self.store.delete_session(self.session)
            self.session = None
            raise

        self.is_recording = True
        logger.info(f"Recording into session {self.session.session_id}")
        return self.session

    def handle_audio_event(self, event: AudioEvent) -> None:
        """Buffer a captured chunk and write a fragment once enough are pending."""
        with self._lock:
            if self.session is None:
                return
            if event.audio_data:
                self._pending.append(event.audio_data)
            if event.final:
                logger.debug(f"Final chunk {event.sequence_number} received "
                             f"({event.duration_ms} ms)")
            if len(self._pending) >= self.chunks_per_fragment or event.final:
                self._flush_locked()

    def _flush_locked(self) -> None:
        if not self._pending:
            return
        data = b"".join(self._pending)
        self._pending = []
        self.store.append_fragment(self.session, self._next_index, data)
        self._next_index += 1

    def _detach(self) -> None:
        """Stop capture, write what is buffered and give back the audio context."""
        if self.capture is not None:
            if self.capture.is_recording:
                self.capture.stop_recording()
            if self.capture.error is not None:
                self.capture_error = self.capture.error

        try:
            pub.unsubscribe(self.handle_audio_event, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")

        with self._lock:
            if self.session is not None:
                self._flush_locked()

        if self._engine is not None:
            self.arbiter.release(self._engine)
            self._engine = None
        self.is_recording = False

    def stop(self) -> Any:
        """Stop recording and deliver the finished artifact.

        Returns:
            Whatever ``process`` returned, or None if nothing was captured

        Raises:
            CaptureFailed: if the capture thread stopped with an error. Audio
                           written before the failure stays on disk for recovery.
        """
        if not self.is_recording or self.session is None:
            logger.warning("No recording in progress")
            return None

        self._detach()
        session = self.session
        self.session = None

        if self.capture_error is not None:
            if self._next_index == 0:
                self.store.delete_session(session)
                message = f"Audio capture failed: {self.capture_error}"
            else:
                message = (f"Audio capture failed after {self._next_index} fragment(s): "
                           f"{self.capture_error}; session {session.session_id} kept for recovery")
            logger.error(message)
            raise CaptureFailed(message) from self.capture_error

        if self._next_index == 0:
            logger.warning("Recording produced no audio; discarding empty session")
            self.store.delete_session(session)
            return None

        artifact = self.assembler.assemble(session)
        file_name = generate_timestamped_name(artifact.mime_type, session.started_at)
        try:
            outcome = self.process(artifact.data, artifact.mime_type, file_name)
        except Exception as e:
            # Fragments stay on disk and are offered for recovery on next startup
            logger.error(f"Processing finished recording failed: {e}")
            raise

        self.store.delete_session(session)
        logger.info(f"Recording finished: {file_name} ({artifact.size_bytes} bytes)")
        return outcome

    def abort(self) -> Optional[Session]:
        """Stop capturing without finalizing; the session stays on disk."""
        if not self.is_recording:
            return None
        self._detach()
        session, self.session = self.session, None
        if self.capture_error is not None:
            logger.error(f"Audio capture had failed before abort: {self.capture_error}")
        logger.info(f"Recording aborted, session {session.session_id} kept for recovery")
        return session
