"""Configuration for the pollwatch package."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from .exceptions import ConfigurationError
from .filters import MatchingStrategy, create_filter

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {"ms": 1, "s": 1000, "m": 60_000}


def parse_duration_ms(value: Union[int, float, str]) -> int:
    """
    Convert a duration value to milliseconds.

    Numbers are taken as milliseconds. Strings may carry an "ms", "s" or
    "m" unit, e.g. "400ms", "2s", "1.5s".
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ConfigurationError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(float(amount) * _DURATION_UNITS[(unit or "ms").lower()])


def _normalize_key(key: str) -> str:
    return re.sub(r"[-_]", "", key.lower())


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class WatcherConfig:
    """
    Configuration options for the file watcher.

    Attributes:
        directories: Watched root directories
        poll_interval_ms: Target time between the starts of two scan cycles
        quiet_period_ms: Time a directory must stay unchanged to be stable
        remaining_scans: Number of cycles to run, -1 to run forever
        snapshot_enabled: Whether snapshots are persisted across restarts
        snapshot_path: File holding the persisted snapshots
        strict: Reject symlinked roots and require an existing snapshot file
        matching_strategy: How watched files are selected
        matching_patterns: Suffixes or regular expressions for the strategy
        thread_name: Name of the worker thread
        daemon: Whether the worker thread is a daemon thread
    """
    directories: List[str] = field(default_factory=list)
    poll_interval_ms: int = 1000
    quiet_period_ms: int = 400
    remaining_scans: int = -1
    snapshot_enabled: bool = False
    snapshot_path: Path = field(default_factory=lambda: Path("file-watcher.snapshot"))
    strict: bool = True
    matching_strategy: MatchingStrategy = MatchingStrategy.ANY
    matching_patterns: List[str] = field(default_factory=list)
    thread_name: str = "File Watcher"
    daemon: bool = True

    def __post_init__(self):
        self.directories = [os.path.abspath(os.fspath(d)) for d in self.directories]
        if isinstance(self.snapshot_path, str):
            self.snapshot_path = Path(self.snapshot_path)
        if isinstance(self.matching_strategy, str):
            try:
                self.matching_strategy = MatchingStrategy(self.matching_strategy.lower())
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown matching strategy: {self.matching_strategy}"
                ) from e
        self.matching_patterns = list(self.matching_patterns)

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            ConfigurationError: If any option is invalid
        """
        if not self.directories:
            raise ConfigurationError("directories must not be empty")
        for directory in self.directories:
            self._validate_directory(directory)
        validate_timing(self.poll_interval_ms, self.quiet_period_ms)
        if self.remaining_scans < -1:
            raise ConfigurationError(
                f"remaining_scans must be -1 or non-negative, got {self.remaining_scans}"
            )
        if self.snapshot_enabled:
            self._validate_snapshot_path()
        create_filter(self.matching_strategy, self.matching_patterns)

    def _validate_directory(self, directory: str) -> None:
        path = Path(directory)
        if not path.exists():
            raise ConfigurationError(f"Watched directory does not exist: {directory}")
        if not path.is_dir():
            raise ConfigurationError(f"Watched path is not a directory: {directory}")
        if self.strict and path.is_symlink():
            raise ConfigurationError(f"Watched directory must not be a symbolic link: {directory}")

    def _validate_snapshot_path(self) -> None:
        path = self.snapshot_path
        if self.strict:
            if path.is_symlink():
                raise ConfigurationError(f"Snapshot file must not be a symbolic link: {path}")
            if not path.is_file():
                raise ConfigurationError(f"Snapshot file must be an existing regular file: {path}")
        else:
            if path.exists() and not path.is_file():
                raise ConfigurationError(f"Snapshot path is not a regular file: {path}")
            if not path.absolute().parent.is_dir():
                raise ConfigurationError(f"Snapshot directory does not exist: {path.parent}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WatcherConfig":
        """
        Create from a generic mapping.

        Keys are matched case-insensitively with dashes and underscores
        ignored, so "poll-interval", "pollInterval" and "poll_interval" are
        the same option. Unknown keys are rejected.

        Raises:
            ConfigurationError: If a key is unknown or a value cannot be converted
        """
        aliases = {
            "directories": "directories",
            "pollinterval": "poll_interval_ms",
            "pollintervalms": "poll_interval_ms",
            "quietperiod": "quiet_period_ms",
            "quietperiodms": "quiet_period_ms",
            "remainingscans": "remaining_scans",
            "snapshotenabled": "snapshot_enabled",
            "snapshotpath": "snapshot_path",
            "strict": "strict",
            "matchingstrategy": "matching_strategy",
            "acceptedstrategy": "matching_strategy",
            "matchingpatterns": "matching_patterns",
            "acceptedstrategypatterns": "matching_patterns",
            "threadname": "thread_name",
            "name": "thread_name",
            "daemon": "daemon",
        }
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = aliases.get(_normalize_key(key))
            if name is None:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            kwargs[name] = value

        try:
            if "directories" in kwargs and isinstance(kwargs["directories"], str):
                kwargs["directories"] = [kwargs["directories"]]
            if "matching_patterns" in kwargs and isinstance(kwargs["matching_patterns"], str):
                kwargs["matching_patterns"] = [kwargs["matching_patterns"]]
            for name in ("poll_interval_ms", "quiet_period_ms"):
                if name in kwargs:
                    kwargs[name] = parse_duration_ms(kwargs[name])
            if "remaining_scans" in kwargs:
                kwargs["remaining_scans"] = int(kwargs["remaining_scans"])
            for name in ("snapshot_enabled", "strict", "daemon"):
                if name in kwargs:
                    kwargs[name] = _parse_bool(kwargs[name])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        return cls(**kwargs)

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "directories": list(self.directories),
            "poll_interval_ms": self.poll_interval_ms,
            "quiet_period_ms": self.quiet_period_ms,
            "remaining_scans": self.remaining_scans,
            "snapshot_enabled": self.snapshot_enabled,
            "snapshot_path": str(self.snapshot_path),
            "strict": self.strict,
            "matching_strategy": self.matching_strategy.value,
            "matching_patterns": list(self.matching_patterns),
            "thread_name": self.thread_name,
            "daemon": self.daemon,
        }


def validate_timing(poll_interval_ms: int, quiet_period_ms: int) -> None:
    """
    Check a poll interval / quiet period pair.

    Raises:
        ConfigurationError: If either is non-positive or the quiet period is
            not shorter than the poll interval
    """
    if poll_interval_ms <= 0:
        raise ConfigurationError("poll_interval_ms must be positive")
    if quiet_period_ms <= 0:
        raise ConfigurationError("quiet_period_ms must be positive")
    if poll_interval_ms <= quiet_period_ms:
        raise ConfigurationError("poll_interval_ms must be greater than quiet_period_ms")
