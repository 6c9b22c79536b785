"""Recovery decision and outcome models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .audio import ReconstructedArtifact
from .session import Session


class Decision(Enum):
    """Answer from the decision interface for an abandoned session."""
    DISCARD = "discard"
    RECOVER = "recover"


class RecoveryOutcome(Enum):
    """How a single recovery run ended."""
    NO_SESSION = "no_session"
    NO_RECOVERABLE_DATA = "no_recoverable_data"
    DISCARDED = "discarded"
    RECOVERED = "recovered"
    PROCESSING_FAILED = "processing_failed"


@dataclass
class RecoveryResult:
    """Result of one RecoveryCoordinator run."""
    outcome: RecoveryOutcome
    session: Optional[Session] = None
    artifact: Optional[ReconstructedArtifact] = None
    file_name: Optional[str] = None
    processed: Any = None  # Whatever the consumer returned
    error: Optional[Exception] = None
