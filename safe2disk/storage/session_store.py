"""Durable, append-only storage of recording sessions.

Layout under the session root::

    session-20240131_142501/
        manifest.json            advisory: mimeType, startedAt, fragmentCount
        fragment-000000.webm     write-once chunks, in capture order
        fragment-000001.webm
        recording.webm           optional legacy whole-file snapshot

Sessions written by older versions use ``chunk-NNNN.dat`` fragment names; they
are listed alongside ``fragment-*`` files.

Recovery trusts the directory listing, never the manifest's fragmentCount: a crash
between writing a fragment and updating the manifest is expected.
"""

import json
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..errors import ManifestCorrupt, StorageUnavailable
from ..mime import extension_for, mime_type_for_extension
from ..models.session import Manifest, Session

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session-"
MANIFEST_FILENAME = "manifest.json"
LEGACY_RECORDING_STEM = "recording"
FRAGMENT_PATTERN = re.compile(r"^(?:fragment|chunk)-\d+\.[^.]+$")
SESSION_ID_FORMAT = "%Y%m%d_%H%M%S"


class SessionStore:
    """Owns the on-disk representation of recording sessions."""

    def __init__(self, root: str, fallback_mime_type: str = "audio/webm", index_width: int = 6):
        """Initialize session store.

        Args:
            root: Directory holding one subdirectory per session
            fallback_mime_type: Assumed container type when a manifest is unreadable
            index_width: Zero-padding width of fragment sequence indices. A session
                         holds at most 10 ** index_width fragments.
        """
        if index_width < 4:
            raise ValueError("index_width must be at least 4")
        self.root = Path(root)
        self.fallback_mime_type = fallback_mime_type
        self.index_width = index_width
        self.max_fragments = 10 ** index_width
        self._active_session: Optional[Session] = None
        self._snapshot_count = 0

        logger.info(f"SessionStore initialized with root: {self.root}")

    @property
    def active_session(self) -> Optional[Session]:
        """Session most recently started by this store, until it is deleted."""
        return self._active_session

    def start_session(self, mime_type: str) -> Session:
        """Create a new session directory with an initial manifest.

        Session ids have one-second resolution; callers must not start two
        sessions within the same second.

        Raises:
            StorageUnavailable: if the directory or manifest cannot be written
        """
        now = datetime.now()
        session_id = now.strftime(SESSION_ID_FORMAT)
        session_path = self.root / f"{SESSION_PREFIX}{session_id}"

        manifest = Manifest(mime_type=mime_type, started_at=now, fragment_count=0)
        try:
            session_path.mkdir(parents=True, exist_ok=True)
            self._write_manifest(session_path, manifest)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create session directory {session_path}: {e}") from e

        session = Session(
            session_id=session_id,
            directory_path=session_path,
            mime_type=mime_type,
            started_at=now,
            fragment_count=0,
        )
        self._active_session = session
        self._snapshot_count = 0

        logger.info(f"Created session directory: {session_path} ({mime_type})")
        return session

    def fragment_path(self, session: Session, sequence_index: int) -> Path:
        """Path of the fragment file for a sequence index."""
        ext = extension_for(session.mime_type)
        return session.directory_path / f"fragment-{sequence_index:0{self.index_width}d}.{ext}"

    def legacy_recording_path(self, session: Session) -> Path:
        """Path of the single-file recording written by write_snapshot()."""
        ext = extension_for(session.mime_type)
        return session.directory_path / f"{LEGACY_RECORDING_STEM}.{ext}"

    def find_legacy_recording(self, session: Session) -> Optional[Path]:
        """Locate a non-empty ``recording.*`` file, whatever its extension.

        The file named after the session's MIME type wins; otherwise the first
        match by name. The session's MIME type may be a fallback guess, so the
        extension on disk is not assumed to agree with it.
        """
        expected = self.legacy_recording_path(session)
        if expected.is_file() and expected.stat().st_size > 0:
            return expected

        directory = session.directory_path
        if not directory.is_dir():
            return None
        candidates = sorted(
            path for path in directory.glob(f"{LEGACY_RECORDING_STEM}.*")
            if path.is_file() and path.stat().st_size > 0
        )
        return candidates[0] if candidates else None

    def has_only_metadata(self, session: Session) -> bool:
        """True if the session directory holds nothing besides its manifest."""
        directory = session.directory_path
        if not directory.is_dir():
            return True
        metadata = {MANIFEST_FILENAME, f"{MANIFEST_FILENAME}.tmp"}
        return all(path.name in metadata for path in directory.iterdir())

    def append_fragment(self, session: Session, sequence_index: int, data: bytes) -> Optional[Path]:
        """Write one immutable fragment, then best-effort bump the manifest.

        Args:
            session: Session receiving the fragment
            sequence_index: Capture order of this fragment, starting at 0
            data: Raw captured bytes

        Returns:
            Path of the written fragment, or None when ``data`` is empty

        Raises:
            ValueError: if sequence_index is outside [0, max_fragments)
            OSError: if the fragment itself cannot be written
        """
        if not data:
            return None
        if not 0 <= sequence_index < self.max_fragments:
            raise ValueError(
                f"Fragment index {sequence_index} outside 0..{self.max_fragments - 1}"
            )

        path = self.fragment_path(session, sequence_index)
        with open(path, 'wb') as f:
            f.write(data)
        logger.debug(f"Fragment written: {path.name} ({len(data)} bytes)")

        try:
            manifest = self.read_manifest(session.directory_path)
            manifest.fragment_count = max(manifest.fragment_count, sequence_index + 1)
            self._write_manifest(session.directory_path, manifest)
            session.fragment_count = manifest.fragment_count
        except Exception as e:
            # The fragment is already durable; a stale manifest is tolerated
            logger.error(f"Failed to update manifest for {session.session_id}: {e}")

        return path

    def write_snapshot(self, session: Session, data: bytes) -> Optional[Path]:
        """Overwrite the legacy single-file recording with the recording so far.

        Returns:
            Path of the snapshot file, or None when ``data`` is empty
        """
        if not data:
            return None

        path = self.legacy_recording_path(session)
        with open(path, 'wb') as f:
            f.write(data)
        self._snapshot_count += 1

        try:
            manifest = self.read_manifest(session.directory_path)
            manifest.fragment_count = self._snapshot_count
            self._write_manifest(session.directory_path, manifest)
            session.fragment_count = manifest.fragment_count
        except Exception as e:
            logger.warning(f"Failed to update manifest after snapshot: {e}")

        logger.debug(f"Snapshot written: {path} ({len(data)} bytes)")
        return path

    def read_manifest(self, session_path: Path) -> Manifest:
        """Read a session's manifest.

        Raises:
            ManifestCorrupt: if the manifest is missing or malformed
        """
        manifest_path = Path(session_path) / MANIFEST_FILENAME
        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                return Manifest.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise ManifestCorrupt(f"Unreadable manifest {manifest_path}: {e}") from e

    def _write_manifest(self, session_path: Path, manifest: Manifest) -> None:
        manifest_path = session_path / MANIFEST_FILENAME
        tmp_path = session_path / f"{MANIFEST_FILENAME}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(manifest.to_dict(), f, indent=2)
        tmp_path.replace(manifest_path)

    def _infer_mime_type(self, session_path: Path) -> str:
        """Container type implied by the files present, for sessions without a manifest."""
        names = sorted(path.name for path in session_path.iterdir() if path.is_file())
        for name in names:
            stem, _, ext = name.partition(".")
            if ext and ext != "dat" and (stem == LEGACY_RECORDING_STEM or FRAGMENT_PATTERN.match(name)):
                return mime_type_for_extension(ext)
        return self.fallback_mime_type

    def _load_session(self, session_path: Path) -> Session:
        session_id = session_path.name[len(SESSION_PREFIX):]
        try:
            manifest = self.read_manifest(session_path)
        except ManifestCorrupt as e:
            mime_type = self._infer_mime_type(session_path)
            logger.warning(f"{e}; assuming {mime_type}")
            try:
                started_at = datetime.strptime(session_id, SESSION_ID_FORMAT)
            except ValueError:
                started_at = datetime.fromtimestamp(session_path.stat().st_mtime)
            manifest = Manifest(mime_type=mime_type, started_at=started_at)

        return Session(
            session_id=session_id,
            directory_path=session_path,
            mime_type=manifest.mime_type or self.fallback_mime_type,
            started_at=manifest.started_at,
            fragment_count=manifest.fragment_count,
        )

    def list_sessions(self) -> List[Session]:
        """List all sessions on disk, most recent first."""
        if not self.root.is_dir():
            return []

        try:
            session_paths = [
                path for path in self.root.iterdir()
                if path.is_dir() and path.name.startswith(SESSION_PREFIX)
            ]
        except OSError as e:
            logger.error(f"Error listing sessions under {self.root}: {e}")
            return []

        session_paths.sort(key=lambda p: p.name, reverse=True)
        sessions = [self._load_session(path) for path in session_paths]
        logger.debug(f"Found {len(sessions)} sessions")
        return sessions

    def has_abandoned_sessions(self) -> bool:
        """True if at least one session directory exists under the root."""
        return bool(self.list_sessions())

    def list_fragments(self, session: Session) -> List[Path]:
        """Fragment files of a session in capture order."""
        directory = session.directory_path
        if not directory.is_dir():
            return []
        fragments = [
            path for path in directory.iterdir()
            if path.is_file() and FRAGMENT_PATTERN.match(path.name)
        ]
        fragments.sort(key=lambda p: p.name)
        return fragments

    def delete_session(self, session: Optional[Session] = None) -> bool:
        """Remove a session directory and everything in it.

        Failures are logged, not raised: an undeleted session reappears as an
        abandoned session on next startup.

        Args:
            session: Session to delete; defaults to the active session

        Returns:
            True if the directory no longer exists
        """
        target = session or self._active_session
        if target is None:
            return True

        is_active = (
            self._active_session is not None
            and target.directory_path == self._active_session.directory_path
        )

        deleted = True
        try:
            if target.directory_path.exists():
                shutil.rmtree(target.directory_path)
            logger.info(f"Deleted session: {target.directory_path}")
        except OSError as e:
            logger.warning(f"Failed to remove session folder {target.directory_path}: {e}")
            deleted = False

        if is_active:
            self._active_session = None
            self._snapshot_count = 0
        return deleted
