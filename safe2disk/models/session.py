"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict


@dataclass
class Session:
    """One on-disk recording session, active or abandoned."""
    session_id: str
    directory_path: Path
    mime_type: str
    started_at: datetime
    fragment_count: int = 0  # Advisory only, copied from the manifest


@dataclass
class Manifest:
    """Advisory metadata stored next to a session's fragments."""
    mime_type: str
    started_at: datetime
    fragment_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mimeType": self.mime_type,
            "startedAt": self.started_at.isoformat(),
            "fragmentCount": self.fragment_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """Build a manifest from its JSON form.

        Raises:
            KeyError, TypeError, ValueError: if a field is missing or malformed
        """
        started_at = data["startedAt"]
        # fromisoformat() before 3.11 does not accept a trailing 'Z'
        if isinstance(started_at, str) and started_at.endswith("Z"):
            started_at = started_at[:-1] + "+00:00"
        return cls(
            mime_type=str(data["mimeType"]),
            started_at=datetime.fromisoformat(started_at),
            fragment_count=int(data.get("fragmentCount", 0)),
        )
