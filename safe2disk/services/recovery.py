"""Startup recovery of recordings abandoned by a crash or forced exit."""

import logging
from datetime import datetime
from typing import Any, Callable

from ..errors import NoRecoverableData, ProcessingFailed
from ..mime import extension_for
from ..models.audio import ReconstructedArtifact
from ..models.recovery import Decision, RecoveryOutcome, RecoveryResult
from ..storage.session_store import SessionStore
from .assembler import ArtifactAssembler

logger = logging.getLogger(__name__)

DecideFn = Callable[[datetime, ReconstructedArtifact], Decision]
ProcessFn = Callable[[bytes, str, str], Any]


def generate_timestamped_name(mime_type: str, now: datetime) -> str:
    """File name like ``2024-01-31_14-25.wav`` for a recovered recording."""
    return f"{now.strftime('%Y-%m-%d_%H-%M')}.{extension_for(mime_type)}"


class RecoveryCoordinator:
    """Finds the most recent abandoned session, reconstructs it and acts on a decision.

    Only one session is handled per run; older abandoned sessions stay on disk
    and are offered on later startups. Must run before any new session starts.
    """

    def __init__(self,
                 store: SessionStore,
                 assembler: ArtifactAssembler,
                 decide: DecideFn,
                 process: ProcessFn,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize recovery coordinator.

        Args:
            store: Session storage to scan
            assembler: Rebuilds an artifact from a session
            decide: Asked once per attempt whether to recover or discard
            process: Consumer entry point receiving (bytes, mime_type, file_name)
            clock: Source of the current time for generated file names
        """
        self.store = store
        self.assembler = assembler
        self.decide = decide
        self.process = process
        self.clock = clock

    def run(self) -> RecoveryResult:
        """Run one recovery pass.

        Raises:
            ResourceCreationFailed: if the audio context needed for transcoding
                                    cannot be created; the session is left on disk
        """
        sessions = self.store.list_sessions()
        if not sessions:
            logger.debug("No abandoned sessions found")
            return RecoveryResult(outcome=RecoveryOutcome.NO_SESSION)

        session = sessions[0]
        logger.info(f"Found abandoned session {session.session_id} "
                    f"started at {session.started_at.isoformat()}")
        if len(sessions) > 1:
            logger.info(f"{len(sessions) - 1} older abandoned session(s) left for a later run")

        try:
            artifact = self.assembler.assemble(session)
        except NoRecoverableData as e:
            if self.store.has_only_metadata(session):
                logger.warning(f"{e}; removing empty session")
                self.store.delete_session(session)
            else:
                logger.error(f"{e}; unrecognized files kept in {session.directory_path}")
            return RecoveryResult(outcome=RecoveryOutcome.NO_RECOVERABLE_DATA,
                                  session=session, error=e)

        decision = self.decide(session.started_at, artifact)
        if not isinstance(decision, Decision):
            raise ValueError(f"Decision interface returned {decision!r}")

        if decision is Decision.DISCARD:
            logger.info(f"Discarding abandoned session {session.session_id}")
            self.store.delete_session(session)
            return RecoveryResult(outcome=RecoveryOutcome.DISCARDED,
                                  session=session, artifact=artifact)

        file_name = generate_timestamped_name(artifact.mime_type, self.clock())
        try:
            processed = self.process(artifact.data, artifact.mime_type, file_name)
        except Exception as e:
            error = ProcessingFailed(f"Processing recovered recording {file_name} failed: {e}")
            error.__cause__ = e
            logger.error(str(error))
            self.store.delete_session(session)
            return RecoveryResult(outcome=RecoveryOutcome.PROCESSING_FAILED,
                                  session=session, artifact=artifact,
                                  file_name=file_name, error=error)

        self.store.delete_session(session)
        logger.info(f"Recovered previous recording as {file_name}")
        return RecoveryResult(outcome=RecoveryOutcome.RECOVERED,
                              session=session, artifact=artifact,
                              file_name=file_name, processed=processed)
