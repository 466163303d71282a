"""
Polling File Watcher Package

Detects additions, modifications and deletions of regular files under a
fixed set of directories by periodic polling, and persists its last-known
state so changes made while it was down are reported after a restart.

Features:
- Recursive snapshots of regular files (path, size, modification time)
- Quiet-period stabilization so files still being written are not reported
- Change events: ADD, MODIFY, DELETE, batched per directory
- Suffix / regex / accept-all file predicates
- Discard, in-memory and file-backed snapshot repositories
"""

from .models import (
    ChangeType,
    FileRecord,
    DirectorySnapshot,
    ChangeRecord,
    ChangeBatch,
    WatchState,
)

from .config import WatcherConfig, parse_duration_ms

from .exceptions import (
    WatcherError,
    ConfigurationError,
    DirectoryMismatchError,
    TransientScanError,
    PersistenceWriteError,
    RestoreError,
    SnapshotVersionError,
    SnapshotCorruptionError,
    WatcherAlreadyRunningError,
)

from .diff import diff, snapshots_equal, states_differ
from .filters import MatchingStrategy, AnyFilter, SuffixFilter, RegexFilter, create_filter
from .codec import encode_state, decode_state, SERIALIZATION_VERSION
from .repository import (
    SnapshotRepository,
    DiscardSnapshotRepository,
    MemorySnapshotRepository,
    FileSnapshotRepository,
    create_repository,
)
from .listeners import ChangeListener, CallbackListener, LoggingChangeListener
from .scan_loop import ScanLoop, ScanPhase, ScanSettings, ScanCounter
from .watcher import FileSystemWatcher


__all__ = [
    # Models
    "ChangeType",
    "FileRecord",
    "DirectorySnapshot",
    "ChangeRecord",
    "ChangeBatch",
    "WatchState",
    # Config
    "WatcherConfig",
    "parse_duration_ms",
    # Exceptions
    "WatcherError",
    "ConfigurationError",
    "DirectoryMismatchError",
    "TransientScanError",
    "PersistenceWriteError",
    "RestoreError",
    "SnapshotVersionError",
    "SnapshotCorruptionError",
    "WatcherAlreadyRunningError",
    # Diff
    "diff",
    "snapshots_equal",
    "states_differ",
    # Filters
    "MatchingStrategy",
    "AnyFilter",
    "SuffixFilter",
    "RegexFilter",
    "create_filter",
    # Persistence
    "encode_state",
    "decode_state",
    "SERIALIZATION_VERSION",
    "SnapshotRepository",
    "DiscardSnapshotRepository",
    "MemorySnapshotRepository",
    "FileSnapshotRepository",
    "create_repository",
    # Listeners
    "ChangeListener",
    "CallbackListener",
    "LoggingChangeListener",
    # Scanning
    "ScanLoop",
    "ScanPhase",
    "ScanSettings",
    "ScanCounter",
    "FileSystemWatcher",
]

__version__ = "0.1.0"
