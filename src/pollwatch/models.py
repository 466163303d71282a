"""Data models for the pollwatch package."""

import os
import time
from dataclasses import dataclass, field
from enum import Enum
from stat import S_ISREG
from typing import Callable, Dict, FrozenSet, Iterator, Optional

from watchdog.utils.dirsnapshot import DirectorySnapshot as WalkSnapshot

from .exceptions import TransientScanError


Predicate = Callable[[str], bool]


class _AccessError(Exception):
    """Carries an access failure through the walk, which skips OSErrors below the root."""

    def __init__(self, error: OSError):
        super().__init__(str(error))
        self.error = error


def _strict_lstat(path: str) -> os.stat_result:
    try:
        return os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        raise
    except OSError as e:
        raise _AccessError(e) from e


def _strict_scandir(path: str):
    # A directory that vanished mid-walk is a deletion; other errors abort the capture.
    try:
        return os.scandir(path)
    except (FileNotFoundError, NotADirectoryError):
        raise
    except OSError as e:
        raise _AccessError(e) from e


class ChangeType(Enum):
    """Types of file changes detected between two snapshots."""
    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass(frozen=True)
class FileRecord:
    """
    Observed metadata of a single regular file.

    Identity is the path string, not the physical file, so two spellings
    of the same file are two distinct records.

    Attributes:
        path: Absolute path of the file
        exists: Whether the file existed when it was observed
        length: Size of the file in bytes
        last_modified: Modification time in epoch milliseconds
    """
    path: str
    exists: bool
    length: int
    last_modified: int

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @classmethod
    def from_stat(cls, path: str, st: os.stat_result) -> "FileRecord":
        """Create a record from a stat result."""
        return cls(
            path=path,
            exists=True,
            length=st.st_size,
            last_modified=st.st_mtime_ns // 1_000_000,
        )


@dataclass(frozen=True)
class DirectorySnapshot:
    """
    The regular files under a directory at a point in time.

    Attributes:
        directory: Absolute path of the watched root
        captured_at: Unix timestamp when the snapshot was taken
        files: Records of every regular file below the root
    """
    directory: str
    captured_at: float = field(default_factory=time.time)
    files: FrozenSet[FileRecord] = frozenset()

    @classmethod
    def capture(cls, directory: str) -> "DirectorySnapshot":
        """
        Walk a directory recursively and record its regular files.

        Subdirectories are traversed but not recorded. Symbolic links below
        the root are neither followed nor recorded.

        Args:
            directory: Absolute path of the directory to capture

        Returns:
            A new snapshot

        Raises:
            TransientScanError: If the directory cannot be listed or statted
        """
        captured_at = time.time()
        try:
            walk = WalkSnapshot(directory, recursive=True, stat=_strict_lstat, listdir=_strict_scandir)
            files = []
            for path in walk.paths:
                if path == directory:
                    continue
                st = walk.stat_info(path)
                if S_ISREG(st.st_mode):
                    files.append(FileRecord.from_stat(path, st))
        except (OSError, _AccessError) as e:
            raise TransientScanError(f"Failed to capture snapshot of {directory}: {e}") from e
        return cls(directory=directory, captured_at=captured_at, files=frozenset(files))

    @classmethod
    def empty(cls, directory: str) -> "DirectorySnapshot":
        """Create a snapshot without any files."""
        return cls(directory=directory)

    def files_by_path(self) -> Dict[str, FileRecord]:
        """Index the file records by path."""
        return {record.path: record for record in self.files}

    def filtered(self, predicate: Optional[Predicate]) -> FrozenSet[FileRecord]:
        """Return the records accepted by the predicate."""
        if predicate is None:
            return self.files
        return frozenset(record for record in self.files if predicate(record.path))

    def __str__(self) -> str:
        stamp = time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(self.captured_at))
        return f"{self.directory} snapshot at {stamp}"


# Watched root -> its snapshot. Replaced wholesale, never edited in place.
WatchState = Dict[str, DirectorySnapshot]


@dataclass(frozen=True)
class ChangeRecord:
    """
    A single file that changed between two snapshots.

    Equality is by path and change type; the directory is informational.

    Attributes:
        directory: The watched root the file belongs to
        path: Absolute path of the changed file
        change_type: ADD, MODIFY or DELETE
    """
    directory: str = field(compare=False)
    path: str
    change_type: ChangeType

    @property
    def relative_name(self) -> str:
        """
        Return the path of the file relative to its directory.

        Raises:
            ValueError: If the file is not contained in the directory
        """
        prefix = self.directory.rstrip(os.sep) + os.sep
        if not self.path.startswith(prefix):
            raise ValueError(
                f"The file {self.path} is not contained in the directory {self.directory}"
            )
        return self.path[len(prefix):]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "directory": self.directory,
            "path": self.path,
            "change_type": self.change_type.value,
        }

    def __str__(self) -> str:
        return f"{self.path} ({self.change_type.name})"


@dataclass(frozen=True)
class ChangeBatch:
    """
    All changes detected for one directory in one committed cycle.

    Attributes:
        directory: The watched root
        changes: The change records for files below it
    """
    directory: str
    changes: FrozenSet[ChangeRecord] = frozenset()

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self) -> Iterator[ChangeRecord]:
        return iter(self.changes)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "directory": self.directory,
            "changes": [
                c.to_dict() for c in sorted(self.changes, key=lambda c: (c.path, c.change_type.value))
            ],
        }

    def __str__(self) -> str:
        return f"{self.directory} {sorted(str(c) for c in self.changes)}"
