"""Reconstruction of a single audio artifact from a session's fragments."""

import logging

from ..audio.arbiter import ResourceArbiter
from ..audio.wav_encoder import encode_wav
from ..errors import NoRecoverableData, TranscodeFailed
from ..mime import WAV_MIME_TYPE, extension_for, is_same_container, mime_type_for_extension
from ..models.audio import ReconstructedArtifact
from ..models.session import Session
from ..storage.session_store import SessionStore

logger = logging.getLogger(__name__)


class ArtifactAssembler:
    """Concatenates fragments in order and transcodes them to the canonical format."""

    def __init__(self,
                 store: SessionStore,
                 arbiter: ResourceArbiter,
                 canonical_mime_type: str = WAV_MIME_TYPE):
        """Initialize assembler.

        Args:
            store: Session storage to read fragments from
            arbiter: Hands out the shared audio context for decoding
            canonical_mime_type: Container type delivered after transcoding
        """
        self.store = store
        self.arbiter = arbiter
        self.canonical_mime_type = canonical_mime_type

    def read_raw(self, session: Session) -> ReconstructedArtifact:
        """Concatenate a session's fragments, or read its legacy single file.

        Raises:
            NoRecoverableData: if neither fragments nor a legacy file exist
        """
        fragments = self.store.list_fragments(session)
        if fragments:
            data = b"".join(path.read_bytes() for path in fragments)
            logger.info(f"Assembled {len(fragments)} fragments ({len(data)} bytes) "
                        f"from session {session.session_id}")
            if session.fragment_count and session.fragment_count != len(fragments):
                logger.debug(f"Manifest lists {session.fragment_count} fragments, "
                             f"found {len(fragments)}")
            return ReconstructedArtifact(data=data, mime_type=session.mime_type)

        legacy_path = self.store.find_legacy_recording(session)
        if legacy_path is not None:
            data = legacy_path.read_bytes()
            mime_type = session.mime_type
            ext = legacy_path.suffix.lstrip(".")
            if ext and ext != "dat" and ext.lower() != extension_for(mime_type):
                mime_type = mime_type_for_extension(ext)
            logger.info(f"Using legacy recording file {legacy_path} ({len(data)} bytes, {mime_type})")
            return ReconstructedArtifact(data=data, mime_type=mime_type)

        raise NoRecoverableData(f"No recording data found in session {session.session_id}")

    def transcode(self, artifact: ReconstructedArtifact) -> ReconstructedArtifact:
        """Decode and re-encode an artifact as canonical WAV.

        Raises:
            ResourceCreationFailed: if the audio context cannot be created
            TranscodeFailed: on any decode or encode failure
        """
        with self.arbiter.scoped() as engine:
            try:
                decoded = engine.decode(artifact.data, artifact.mime_type)
                encoded = encode_wav(decoded)
            except Exception as e:
                raise TranscodeFailed(f"Transcoding {artifact.mime_type} failed: {e}") from e

        logger.info(f"Transcoded {artifact.mime_type} ({artifact.size_bytes} bytes) "
                    f"to {self.canonical_mime_type} ({len(encoded)} bytes)")
        return ReconstructedArtifact(data=encoded, mime_type=self.canonical_mime_type, transcoded=True)

    def assemble(self, session: Session) -> ReconstructedArtifact:
        """Reconstruct a session, falling back to raw bytes if transcoding fails."""
        raw = self.read_raw(session)
        if is_same_container(raw.mime_type, self.canonical_mime_type):
            return raw

        try:
            return self.transcode(raw)
        except TranscodeFailed as e:
            logger.warning(f"{e}; delivering original {raw.mime_type} bytes")
            return raw
