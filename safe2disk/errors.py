"""Error taxonomy for session persistence, reconstruction and recovery."""


class Safe2DiskError(RuntimeError):
    """Base class for all safe2disk errors."""


class StorageUnavailable(Safe2DiskError):
    """Session directory could not be created or accessed."""


class ManifestCorrupt(Safe2DiskError):
    """Manifest is missing or unreadable. Callers substitute defaults."""


class NoRecoverableData(Safe2DiskError):
    """Session directory holds neither fragments nor a legacy recording."""


class TranscodeFailed(Safe2DiskError):
    """Decode or re-encode of reconstructed audio failed."""


class InvalidAudioBuffer(Safe2DiskError):
    """Decoded buffer cannot be encoded (no channels, bad sample rate)."""


class ResourceCreationFailed(Safe2DiskError):
    """Shared audio context could not be created."""


class ProcessingFailed(Safe2DiskError):
    """Consumer failed to handle a reconstructed artifact."""


class CaptureFailed(Safe2DiskError):
    """Microphone capture stopped with an error."""
