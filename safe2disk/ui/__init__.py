"""Terminal user interface pieces."""

from .recovery_prompt import ConsoleRecoveryPrompt, AutoDecision

__all__ = [
    'ConsoleRecoveryPrompt',
    'AutoDecision',
]
