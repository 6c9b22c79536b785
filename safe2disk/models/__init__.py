"""Data models for the safe2disk application."""

from .audio import DecodedAudio, ReconstructedArtifact
from .events import AudioEvent
from .session import Session, Manifest
from .recovery import Decision, RecoveryOutcome, RecoveryResult

__all__ = [
    "DecodedAudio",
    "ReconstructedArtifact",
    "AudioEvent",
    "Session",
    "Manifest",
    "Decision",
    "RecoveryOutcome",
    "RecoveryResult",
]
