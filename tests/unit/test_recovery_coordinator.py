"""Unit tests for RecoveryCoordinator class."""

import json
from datetime import datetime
from pathlib import Path

import pytest
from unittest.mock import Mock

from safe2disk.audio.arbiter import ResourceArbiter
from safe2disk.errors import ProcessingFailed
from safe2disk.models.recovery import Decision, RecoveryOutcome
from safe2disk.services.assembler import ArtifactAssembler
from safe2disk.services.recovery import RecoveryCoordinator, generate_timestamped_name


FIXED_NOW = datetime(2025, 3, 9, 7, 5, 42)


def _abandoned(root: Path, session_id: str, mime_type: str, fragments, started_at="2025-03-08T22:10:00"):
    path = root / f"session-{session_id}"
    path.mkdir(parents=True)
    (path / "manifest.json").write_text(json.dumps(
        {"mimeType": mime_type, "startedAt": started_at, "fragmentCount": len(fragments)}))
    ext = mime_type.split("/")[1].split(";")[0]
    for index, data in enumerate(fragments):
        (path / f"fragment-{index:06d}.{ext}").write_bytes(data)
    return path


@pytest.fixture
def assembler(session_store, engine_factory):
    return ArtifactAssembler(session_store, ResourceArbiter(factory=engine_factory))


def _coordinator(store, assembler, decision=Decision.RECOVER, process=None):
    decide = Mock(return_value=decision)
    process = process or Mock(return_value="saved")
    coordinator = RecoveryCoordinator(store, assembler, decide, process, clock=lambda: FIXED_NOW)
    return coordinator, decide, process


@pytest.mark.unit
class TestRecoveryCoordinator:
    """Test cases for RecoveryCoordinator class."""

    def test_no_sessions(self, session_store, assembler):
        """Test nothing is asked when no session exists."""
        coordinator, decide, process = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.NO_SESSION
        decide.assert_not_called()
        process.assert_not_called()

    def test_recover_delivers_and_deletes(self, session_store, session_root, assembler):
        """Test an accepted recovery hands off the artifact and removes the session."""
        path = _abandoned(Path(session_root), "20250308_221000", "audio/wav", [b"RI", b"FF", b"data"])
        coordinator, decide, process = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.RECOVERED
        decide.assert_called_once()
        started_at, artifact = decide.call_args.args
        assert started_at == datetime(2025, 3, 8, 22, 10)
        assert artifact.data == b"RIFFdata"
        process.assert_called_once_with(b"RIFFdata", "audio/wav", "2025-03-09_07-05.wav")
        assert result.processed == "saved"
        assert result.file_name == "2025-03-09_07-05.wav"
        assert not path.exists()

    def test_recover_transcoded_name_uses_wav_extension(self, session_store, session_root, assembler):
        """Test the suggested name matches the delivered container type."""
        _abandoned(Path(session_root), "20250308_221000", "audio/webm", [b"a", b"b"])
        coordinator, _, process = _coordinator(session_store, assembler)

        coordinator.run()

        data, mime_type, file_name = process.call_args.args
        assert mime_type == "audio/wav"
        assert data[:4] == b"RIFF"
        assert file_name == "2025-03-09_07-05.wav"

    def test_discard_deletes_without_processing(self, session_store, session_root, assembler):
        """Test a discard removes the session and never calls the consumer."""
        path = _abandoned(Path(session_root), "20250308_221000", "audio/wav", [b"x"])
        coordinator, decide, process = _coordinator(session_store, assembler, Decision.DISCARD)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.DISCARDED
        decide.assert_called_once()
        process.assert_not_called()
        assert not path.exists()

    def test_only_most_recent_session_is_handled(self, session_store, session_root, assembler):
        """Test older abandoned sessions are left for a later run."""
        older = _abandoned(Path(session_root), "20250101_080000", "audio/wav", [b"old"])
        newer = _abandoned(Path(session_root), "20250308_221000", "audio/wav", [b"new"])
        coordinator, decide, process = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.session.session_id == "20250308_221000"
        assert process.call_args.args[0] == b"new"
        assert decide.call_count == 1
        assert not newer.exists()
        assert older.exists()

    def test_empty_session_is_no_recoverable_data(self, session_store, assembler):
        """Test a session without fragments is reported and cleaned up."""
        session = session_store.start_session("audio/webm")
        coordinator, decide, process = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.NO_RECOVERABLE_DATA
        decide.assert_not_called()
        process.assert_not_called()
        assert not session.directory_path.exists()

    def test_session_with_unrecognized_files_is_kept(self, session_store, assembler):
        """Test files that might still hold audio are never removed unread."""
        session = session_store.start_session("audio/webm")
        (session.directory_path / "take.m4a").write_bytes(b"audio?")
        coordinator, decide, process = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.NO_RECOVERABLE_DATA
        decide.assert_not_called()
        process.assert_not_called()
        assert (session.directory_path / "take.m4a").exists()

    def test_corrupt_manifest_legacy_file_is_recovered(self, session_store, assembler, engine_factory):
        """Test a whole-file recording survives a manifest that no longer names its type."""
        session = session_store.start_session("audio/ogg")
        session_store.write_snapshot(session, b"whole ogg recording")
        (session.directory_path / "manifest.json").write_text("{garbage")
        process = Mock(return_value="saved")
        coordinator, decide, _ = _coordinator(session_store, assembler, process=process)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.RECOVERED
        decide.assert_called_once()
        assert engine_factory.created[0].decode_calls == [(b"whole ogg recording", "audio/ogg")]
        process.assert_called_once()
        assert not session.directory_path.exists()

    def test_processing_failure_still_deletes(self, session_store, session_root, assembler):
        """Test a failing consumer is reported, not retried, and the session is removed."""
        path = _abandoned(Path(session_root), "20250308_221000", "audio/wav", [b"x"])
        process = Mock(side_effect=IOError("vault is read-only"))
        coordinator, _, _ = _coordinator(session_store, assembler, process=process)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.PROCESSING_FAILED
        assert isinstance(result.error, ProcessingFailed)
        assert isinstance(result.error.__cause__, IOError)
        process.assert_called_once()
        assert not path.exists()

    def test_transcode_failure_delivers_raw_bytes(self, session_store, session_root, assembler, engine_factory):
        """Test recovery falls back to the untranscoded recording."""
        engine_factory.decode_error = ValueError("truncated")
        _abandoned(Path(session_root), "20250308_221000", "audio/webm", [b"ab", b"cd"])
        coordinator, _, process = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.RECOVERED
        process.assert_called_once_with(b"abcd", "audio/webm", "2025-03-09_07-05.webm")

    def test_corrupt_manifest_assumes_fallback_type(self, session_store, session_root, assembler, engine_factory):
        """Test a session with a broken manifest is still recovered."""
        path = Path(session_root) / "session-20250308_221000"
        path.mkdir(parents=True)
        (path / "manifest.json").write_text("{")
        (path / "fragment-000000.webm").write_bytes(b"data")
        coordinator, decide, _ = _coordinator(session_store, assembler)

        result = coordinator.run()

        assert result.outcome is RecoveryOutcome.RECOVERED
        assert engine_factory.created[0].decode_calls == [(b"data", "audio/webm")]
        assert decide.call_args.args[0] == datetime(2025, 3, 8, 22, 10)

    def test_invalid_decision_is_rejected(self, session_store, session_root, assembler):
        path = _abandoned(Path(session_root), "20250308_221000", "audio/wav", [b"x"])
        coordinator, _, process = _coordinator(session_store, assembler, decision="maybe")

        with pytest.raises(ValueError):
            coordinator.run()

        process.assert_not_called()
        assert path.exists()


@pytest.mark.unit
def test_generate_timestamped_name():
    assert generate_timestamped_name("audio/webm;codecs=opus", FIXED_NOW) == "2025-03-09_07-05.webm"
    assert generate_timestamped_name("", FIXED_NOW) == "2025-03-09_07-05.dat"
