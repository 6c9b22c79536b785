"""Terminal decision prompt for abandoned recordings."""

import logging
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.text import Text

from ..models.audio import ReconstructedArtifact
from ..models.recovery import Decision

logger = logging.getLogger(__name__)


class ConsoleRecoveryPrompt:
    """Asks on the terminal whether to recover or discard a previous recording.

    Blocks until the user answers; there is no timeout.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def decide(self, started_at: datetime, artifact: ReconstructedArtifact) -> Decision:
        body = Text()
        body.append("A previous recording was detected.\n")
        body.append(f"Started at: {started_at.strftime('%Y-%m-%d %H:%M:%S')}\n")
        body.append(f"Size: {artifact.size_bytes / 1024:.1f} KiB ({artifact.mime_type})")
        self.console.print(Panel(body, title="Recover unsaved recording?", border_style="yellow"))

        recover = Confirm.ask("Recover and process it now?", default=True, console=self.console)
        decision = Decision.RECOVER if recover else Decision.DISCARD
        logger.info(f"User chose to {decision.value} the previous recording")
        return decision

    __call__ = decide


class AutoDecision:
    """Non-interactive decider that always returns the same answer."""

    def __init__(self, decision: Decision):
        self.decision = decision

    def __call__(self, started_at: datetime, artifact: ReconstructedArtifact) -> Decision:
        logger.info(f"Automatically choosing to {self.decision.value} recording "
                    f"started at {started_at.isoformat()}")
        return self.decision
