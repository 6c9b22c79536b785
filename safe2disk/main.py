"""Main application entry point for safe2disk."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from .audio.arbiter import ResourceArbiter
from .config import Safe2DiskConfig
from .errors import ResourceCreationFailed, Safe2DiskError
from .models.recovery import Decision, RecoveryResult
from .services.assembler import ArtifactAssembler
from .services.recording_service import RecordingService
from .services.recovery import RecoveryCoordinator
from .storage.output import OutputWriter
from .storage.session_store import SessionStore
from .ui.recovery_prompt import AutoDecision, ConsoleRecoveryPrompt

logger = logging.getLogger(__name__)


def setup_logging(config: Safe2DiskConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/safe2disk.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("safe2disk starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


class Application:
    """Wires storage, the shared audio context, recovery and recording together."""

    def __init__(self, config: Safe2DiskConfig, decider=None):
        """Initialize application.

        Args:
            config: Loaded configuration
            decider: Decision interface for recovery; defaults to a terminal prompt
        """
        self.config = config
        self.arbiter = ResourceArbiter()
        self.store = SessionStore(
            config.get_session_root(),
            fallback_mime_type=config.get('recovery.fallback_mime_type', 'audio/webm'),
            index_width=config.get('storage.fragment_index_width', 6),
        )
        self.assembler = ArtifactAssembler(
            self.store,
            self.arbiter,
            canonical_mime_type=config.get('recovery.canonical_mime_type', 'audio/wav'),
        )
        self.output = OutputWriter(config.get_output_directory())
        self.decider = decider or ConsoleRecoveryPrompt()
        self.recording_service: Optional[RecordingService] = None

    def recover(self) -> RecoveryResult:
        """Offer the most recent abandoned recording, if any."""
        coordinator = RecoveryCoordinator(
            store=self.store,
            assembler=self.assembler,
            decide=self.decider,
            process=self.output.process_reconstructed_audio,
        )
        result = coordinator.run()
        logger.info(f"Recovery finished: {result.outcome.value}")
        return result

    def record(self, duration: int) -> Optional[Path]:
        """Record for ``duration`` seconds and save the result."""
        self.recording_service = RecordingService(
            store=self.store,
            arbiter=self.arbiter,
            assembler=self.assembler,
            process=self.output.process_reconstructed_audio,
            sample_rate=self.config.get('recording.sample_rate', 16000),
            channels=self.config.get('recording.channels', 1),
            chunk_size=self.config.get('recording.chunk_size', 1024),
            chunks_per_fragment=self.config.get('recording.chunks_per_fragment', 16),
        )
        self.recording_service.start()
        deadline = time.time() + duration
        while time.time() < deadline and not self.recording_service.capture_failed:
            time.sleep(0.1)
        return self.recording_service.stop()

    def cleanup(self) -> None:
        """Leave any in-progress session on disk and release audio resources."""
        if self.recording_service is not None and self.recording_service.is_recording:
            self.recording_service.abort()
        self.arbiter.force_teardown()


def main() -> None:
    """Main entry point for safe2disk."""
    parser = argparse.ArgumentParser(
        description="safe2disk - crash-safe audio recording with startup recovery"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: safe2disk.yaml if present)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    decision_group = parser.add_mutually_exclusive_group()
    decision_group.add_argument(
        "--recover",
        action="store_true",
        help="Recover an abandoned recording without asking"
    )
    decision_group.add_argument(
        "--discard",
        action="store_true",
        help="Discard an abandoned recording without asking"
    )

    parser.add_argument(
        "--record",
        action="store_true",
        help="After recovery, record from the default microphone"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Duration in seconds for --record (default: 10)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="safe2disk v0.1.0"
    )

    args = parser.parse_args()

    try:
        config = Safe2DiskConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    decider = None
    if args.recover:
        decider = AutoDecision(Decision.RECOVER)
    elif args.discard:
        decider = AutoDecision(Decision.DISCARD)

    app = Application(config, decider=decider)
    try:
        try:
            result = app.recover()
        except ResourceCreationFailed as e:
            # The abandoned session stays on disk and is offered again next start
            logger.error(f"Recovery skipped: {e}")
            print(f"Warning: could not check for unsaved recordings: {e}")
        else:
            if result.processed is not None:
                print(f"Recovered recording saved to {result.processed}")
        if args.record:
            saved = app.record(args.duration)
            if saved is not None:
                print(f"Recording saved to {saved}")
    except KeyboardInterrupt:
        print("\nInterrupted; any unfinished recording will be offered on next start.")
    except Safe2DiskError as e:
        print(f"Error: {e}")
        logger.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
