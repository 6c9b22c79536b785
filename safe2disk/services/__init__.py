"""Reconstruction, recovery and recording services."""

from .assembler import ArtifactAssembler
from .recovery import RecoveryCoordinator, generate_timestamped_name
from .recording_service import RecordingService

__all__ = [
    'ArtifactAssembler',
    'RecoveryCoordinator',
    'RecordingService',
    'generate_timestamped_name',
]
