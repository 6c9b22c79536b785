"""Session persistence and output storage."""

from .session_store import SessionStore
from .output import OutputWriter

__all__ = [
    'SessionStore',
    'OutputWriter',
]
