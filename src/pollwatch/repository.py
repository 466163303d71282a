"""Persistence of watch state across restarts."""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .codec import decode_state, encode_state
from .config import WatcherConfig
from .exceptions import PersistenceWriteError, SnapshotCorruptionError, SnapshotVersionError
from .models import WatchState

logger = logging.getLogger(__name__)


class SnapshotRepository(ABC):
    """Stores and restores the snapshot of every watched root."""

    @abstractmethod
    def save(self, state: WatchState) -> None:
        """
        Save the given state.

        Implementations log failures instead of raising them.
        """
        pass

    @abstractmethod
    def restore(self) -> Optional[WatchState]:
        """
        Restore any previously saved state.

        Returns:
            The saved state, or None if there is nothing usable
        """
        pass


class DiscardSnapshotRepository(SnapshotRepository):
    """Repository that does not keep state."""

    def save(self, state: WatchState) -> None:
        pass

    def restore(self) -> Optional[WatchState]:
        return None


class MemorySnapshotRepository(SnapshotRepository):
    """Keeps the last saved state for the lifetime of the instance."""

    def __init__(self):
        self._state: Optional[WatchState] = None
        self._lock = threading.Lock()

    def save(self, state: WatchState) -> None:
        with self._lock:
            self._state = dict(state)

    def restore(self) -> Optional[WatchState]:
        with self._lock:
            return dict(self._state) if self._state is not None else None


class FileSnapshotRepository(SnapshotRepository):
    """
    Keeps state in a local binary file so a restarted watcher can detect
    changes that happened while it was down.

    Saves are written to a temporary file next to the target and moved into
    place, so a failed save leaves the previous file intact.
    """

    def __init__(self, path: Path):
        """
        Initialize the repository.

        Args:
            path: Path of the snapshot file
        """
        if path is None:
            raise ValueError("Storage path must not be None")
        self.path = Path(path)
        self._lock = threading.Lock()

    def save(self, state: WatchState) -> None:
        if not state:
            logger.error("Unable to save snapshot state: state is empty")
            return

        with self._lock:
            try:
                self._write(encode_state(state))
            except (PersistenceWriteError, OSError) as e:
                logger.error(f"Failed to save snapshot state to {self.path}: {e}")
                return
        logger.debug(f"Saved snapshot state of {len(state)} director(ies) to {self.path}")

    def _write(self, data: bytes) -> None:
        directory = self.path.absolute().parent
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def restore(self) -> Optional[WatchState]:
        with self._lock:
            if not self.path.exists():
                logger.info(
                    f"No snapshot file found at {self.path}. "
                    "A new one will be created on the first save"
                )
                return None

            try:
                if self.path.stat().st_size == 0:
                    logger.warning(
                        f"Snapshot file {self.path} is empty; nothing to restore. "
                        "An empty snapshot is invalid and may indicate an earlier problem"
                    )
                    return None
                data = self.path.read_bytes()
            except OSError as e:
                logger.error(f"Failed to restore snapshot state from {self.path}: {e}")
                return None

            try:
                state = decode_state(data)
            except SnapshotVersionError as e:
                logger.error(f"Failed to restore snapshot state: {e}")
                return None
            except SnapshotCorruptionError as e:
                logger.error(f"Corrupted snapshot detected in {self.path} ({e}). Deleting...")
                try:
                    self.path.unlink()
                except OSError as ex:
                    logger.error(f"Failed to delete corrupted snapshot file {self.path}: {ex}")
                return None

        logger.info(f"Restored snapshot state of {len(state)} director(ies) from {self.path}")
        return state


def create_repository(config: WatcherConfig) -> SnapshotRepository:
    """Select the repository for a configuration."""
    if config.snapshot_enabled:
        return FileSnapshotRepository(config.snapshot_path)
    return DiscardSnapshotRepository()
