"""safe2disk - crash-safe incremental audio recording with startup recovery."""

__version__ = "0.1.0"
