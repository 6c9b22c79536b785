"""Default consumer for finished recordings: writes them to the output directory."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class OutputWriter:
    """Writes reconstructed audio artifacts to disk."""

    def __init__(self, output_dir: str):
        """Initialize output writer.

        Args:
            output_dir: Directory receiving finished recordings
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"OutputWriter initialized with output_dir: {self.output_dir}")

    def _unique_path(self, file_name: str) -> Path:
        candidate = self.output_dir / file_name
        stem, suffix = candidate.stem, candidate.suffix
        counter = 1
        while candidate.exists():
            candidate = self.output_dir / f"{stem}_{counter}{suffix}"
            counter += 1
        return candidate

    def process_reconstructed_audio(self, data: bytes, mime_type: str, suggested_file_name: str) -> Path:
        """Save audio bytes under the suggested name, never overwriting.

        Returns:
            Path of the written file
        """
        path = self._unique_path(Path(suggested_file_name).name)
        try:
            with open(path, 'wb') as f:
                f.write(data)
        except Exception as e:
            logger.error(f"Error saving audio file: {e}")
            raise

        logger.info(f"Audio file saved: {path} ({len(data)} bytes, {mime_type})")
        return path
