"""File system watcher facade: configuration, listeners and lifecycle."""

import logging
import threading
from typing import Callable, List, Optional, Set, Union

from .config import WatcherConfig, validate_timing
from .exceptions import TransientScanError, WatcherAlreadyRunningError
from .filters import create_filter
from .listeners import CallbackListener, ChangeListener
from .models import ChangeBatch, DirectorySnapshot, Predicate, WatchState
from .repository import SnapshotRepository, create_repository
from .scan_loop import ScanCounter, ScanLoop, ScanPhase, ScanSettings

logger = logging.getLogger(__name__)

ListenerLike = Union[ChangeListener, Callable[[Set[ChangeBatch]], None]]


class FileSystemWatcher:
    """
    Watches a fixed set of directories for file changes by polling.

    Listeners are registered before start() and receive, at most once per
    cycle, the set of change batches of every directory that changed. One
    worker thread does all scanning; keep a single instance per set of
    directories.
    """

    def __init__(
        self,
        config: WatcherConfig,
        repository: Optional[SnapshotRepository] = None,
    ):
        """
        Initialize the watcher.

        Args:
            config: Watcher configuration, validated here
            repository: Snapshot repository (default: chosen from config)

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        if config is None:
            raise ValueError("config must not be None")
        config.validate()
        self.config = config
        self._repository = repository or create_repository(config)
        self._listeners: List[ChangeListener] = []
        self._settings = ScanSettings(
            poll_interval_ms=config.poll_interval_ms,
            quiet_period_ms=config.quiet_period_ms,
            predicate=create_filter(config.matching_strategy, config.matching_patterns),
        )
        self._counter = ScanCounter(config.remaining_scans)
        self._state: WatchState = {}
        self._loop: Optional[ScanLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def repository(self) -> SnapshotRepository:
        return self._repository

    @property
    def directories(self) -> List[str]:
        return list(self.config.directories)

    def add_listener(self, listener: ListenerLike) -> None:
        """
        Register a change listener.

        Args:
            listener: A ChangeListener, or a callable taking the batch set

        Raises:
            WatcherAlreadyRunningError: If the watcher has been started
        """
        if listener is None:
            raise ValueError("listener must not be None")
        if not isinstance(listener, ChangeListener):
            listener = CallbackListener(listener)
        with self._lock:
            self._check_not_started()
            self._listeners.append(listener)

    def replace_predicate(self, predicate: Optional[Predicate]) -> None:
        """
        Replace the file predicate. A running watcher applies it from the next cycle.

        Args:
            predicate: Callable taking a file path, None accepts every file
        """
        with self._lock:
            self._apply_settings(ScanSettings(
                poll_interval_ms=self._settings.poll_interval_ms,
                quiet_period_ms=self._settings.quiet_period_ms,
                predicate=predicate,
            ))

    def update_timing(self, poll_interval_ms: int, quiet_period_ms: int) -> None:
        """
        Change the poll interval and quiet period. Applied from the next cycle.

        Raises:
            ConfigurationError: If the durations are invalid
        """
        validate_timing(poll_interval_ms, quiet_period_ms)
        with self._lock:
            self._apply_settings(ScanSettings(
                poll_interval_ms=poll_interval_ms,
                quiet_period_ms=quiet_period_ms,
                predicate=self._settings.predicate,
            ))

    def _apply_settings(self, settings: ScanSettings) -> None:
        self._settings = settings
        if self._loop is not None:
            self._loop.settings = settings

    def _check_not_started(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            raise WatcherAlreadyRunningError("FileSystemWatcher already started")

    def start(self) -> None:
        """
        Restore or capture the initial snapshots and start the worker thread.

        Raises:
            WatcherAlreadyRunningError: If already running
        """
        with self._lock:
            self._check_not_started()
            initial = self._create_or_restore_initial_snapshots()
            self._state = initial
            self._counter.set(self.config.remaining_scans)
            self._loop = ScanLoop(
                state=initial,
                listeners=self._listeners,
                repository=self._repository,
                settings=self._settings,
                counter=self._counter,
                stop_event=threading.Event(),
            )
            self._thread = threading.Thread(
                target=self._loop.run,
                name=self.config.thread_name,
                daemon=self.config.daemon,
            )
            self._thread.start()
        logger.info(f"Watching {len(initial)} director(ies) every {self._settings.poll_interval_ms}ms")

    def _create_or_restore_initial_snapshots(self) -> WatchState:
        restored = self._repository.restore() or {}
        state: WatchState = {}
        for directory in self.config.directories:
            snapshot = restored.get(directory)
            if snapshot is None:
                try:
                    snapshot = DirectorySnapshot.capture(directory)
                except TransientScanError as e:
                    logger.warning(f"Starting {directory} from an empty snapshot: {e}")
                    snapshot = DirectorySnapshot.empty(directory)
            state[directory] = snapshot
        return state

    def stop(self) -> None:
        """Stop immediately, abandoning any cycle in progress."""
        self.stop_after(0)

    def stop_after(self, remaining_scans: int) -> None:
        """
        Stop the watcher after a number of further scan cycles.

        Zero stops immediately. A positive count lets the worker finish that
        many cycles and exit on its own. Called from another thread, this
        blocks until the worker has exited. Called from the worker itself it
        returns at once, and the watcher counts as running until the worker
        has exited.
        """
        with self._lock:
            thread = self._thread
            loop = self._loop
            if thread is None or not thread.is_alive():
                return
            self._counter.set(remaining_scans)
            if remaining_scans <= 0:
                loop.stop_event.set()
        if threading.current_thread() is thread:
            return
        thread.join()
        with self._lock:
            if self._thread is thread:
                self._state = loop.state

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the worker to exit on its own.

        Returns:
            True if the worker is no longer running
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def phase(self) -> ScanPhase:
        loop = self._loop
        return loop.phase if loop is not None else ScanPhase.IDLE

    @property
    def state(self) -> WatchState:
        """The last committed snapshot of every watched root."""
        loop = self._loop
        if loop is not None:
            return loop.state
        return dict(self._state)

    @property
    def remaining_scans(self) -> int:
        return self._counter.get()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
