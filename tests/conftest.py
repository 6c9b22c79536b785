"""Pytest configuration and fixtures for safe2disk tests."""

import pytest
import tempfile
import logging
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np

from safe2disk.models.audio import DecodedAudio
from safe2disk.storage.session_store import SessionStore


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def session_root(temp_data_dir):
    return str(Path(temp_data_dir) / "tmp")


@pytest.fixture
def session_store(session_root):
    return SessionStore(session_root)


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


class FakeEngine:
    """Stand-in audio context that records how it was used."""

    def __init__(self, decoded=None, decode_error=None):
        self.decoded = decoded
        self.decode_error = decode_error
        self.closed = False
        self.decode_calls = []

    def decode(self, data, mime_type):
        self.decode_calls.append((data, mime_type))
        if self.decode_error is not None:
            raise self.decode_error
        return self.decoded

    def close(self):
        self.closed = True


@pytest.fixture
def engine_factory():
    """Factory that builds FakeEngines and remembers each one."""

    class Factory:
        def __init__(self):
            self.created = []
            self.decoded = DecodedAudio(
                samples=np.array([[0.5, -0.5, 0.0, 1.0]], dtype=np.float32),
                sample_rate=16000,
            )
            self.decode_error = None

        def __call__(self):
            engine = FakeEngine(decoded=self.decoded, decode_error=self.decode_error)
            self.created.append(engine)
            return engine

    return Factory()
