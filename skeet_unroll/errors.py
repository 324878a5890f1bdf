from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class FeedError(RuntimeError):
    """Raised when the upstream getPostThread call fails or returns an unusable body."""


class StorageError(RuntimeError):
    """Raised when reading or writing the thread cache in SQLite fails."""
