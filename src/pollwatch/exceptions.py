"""Custom exceptions for the pollwatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class ConfigurationError(WatcherError):
    """Watcher configuration is invalid; the worker is never started."""
    pass


class DirectoryMismatchError(WatcherError, ValueError):
    """Two snapshots of different directories were compared."""
    pass


class TransientScanError(WatcherError):
    """I/O failure while listing or statting a watched directory."""
    pass


class PersistenceWriteError(WatcherError):
    """Snapshot state could not be serialized or written."""
    pass


class RestoreError(WatcherError):
    """Persisted snapshot state could not be restored."""
    pass


class SnapshotVersionError(RestoreError):
    """Snapshot file was written with an unsupported format version."""
    pass


class SnapshotCorruptionError(RestoreError):
    """Snapshot file is truncated or structurally corrupt."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher is already running."""
    pass
