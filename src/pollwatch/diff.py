"""Change classification between two snapshots of the same directory."""

from typing import Optional, Set

from .exceptions import DirectoryMismatchError
from .models import (
    ChangeBatch,
    ChangeRecord,
    ChangeType,
    DirectorySnapshot,
    Predicate,
    WatchState,
)


def _accepts(predicate: Optional[Predicate], path: str) -> bool:
    return predicate is None or predicate(path)


def diff(
    previous: DirectorySnapshot,
    current: DirectorySnapshot,
    predicate: Optional[Predicate] = None,
) -> ChangeBatch:
    """
    Compute the changes between two snapshots of the same directory.

    The predicate is applied to every record individually. A previous record
    rejected by the predicate is never reported as deleted, and renames are
    reported as a DELETE of the old path plus an ADD of the new one.

    Args:
        previous: The last committed snapshot
        current: The newly captured snapshot
        predicate: Optional path filter, None accepts everything

    Returns:
        The batch of changes for the directory (possibly empty)

    Raises:
        DirectoryMismatchError: If the snapshots are of different directories
    """
    if previous.directory != current.directory:
        raise DirectoryMismatchError(
            f"Snapshot directory must be '{previous.directory}', got '{current.directory}'"
        )

    directory = previous.directory
    remaining = previous.files_by_path()
    changes: Set[ChangeRecord] = set()

    for record in current.files:
        if not _accepts(predicate, record.path):
            continue
        matched = remaining.pop(record.path, None)
        if matched is None:
            changes.add(ChangeRecord(directory, record.path, ChangeType.ADD))
        elif matched != record:
            changes.add(ChangeRecord(directory, record.path, ChangeType.MODIFY))

    for record in remaining.values():
        if _accepts(predicate, record.path):
            changes.add(ChangeRecord(directory, record.path, ChangeType.DELETE))

    return ChangeBatch(directory, frozenset(changes))


def snapshots_equal(
    first: DirectorySnapshot,
    second: DirectorySnapshot,
    predicate: Optional[Predicate] = None,
) -> bool:
    """
    Check whether two snapshots hold the same filtered records.

    Used for stabilization only; capture times are ignored.
    """
    if first.directory != second.directory:
        return False
    return first.filtered(predicate) == second.filtered(predicate)


def states_differ(
    previous: WatchState,
    current: WatchState,
    predicate: Optional[Predicate] = None,
) -> bool:
    """Check whether any watched root differs between two states."""
    if previous.keys() != current.keys():
        return True
    for directory, snapshot in previous.items():
        if not snapshots_equal(snapshot, current[directory], predicate):
            return True
    return False
