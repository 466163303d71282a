"""Polling worker that captures, stabilizes, diffs and dispatches changes."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence

from .diff import diff, states_differ
from .exceptions import PersistenceWriteError, TransientScanError
from .listeners import ChangeListener
from .models import ChangeBatch, DirectorySnapshot, Predicate, WatchState
from .repository import SnapshotRepository

logger = logging.getLogger(__name__)

FOREVER = -1


class ScanPhase(Enum):
    """Phases of the scan loop."""
    IDLE = "idle"
    SLEEPING = "sleeping"
    PROBING = "probing"
    COMMITTING = "committing"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ScanSettings:
    """
    Inputs the worker reads once at the start of every cycle.

    The whole value is replaced to change any of them, so a cycle never sees
    a half-applied update.

    Attributes:
        poll_interval_ms: Target time between the starts of two cycles
        quiet_period_ms: Time the roots must stay unchanged to be stable
        predicate: Path filter, None accepts every file
    """
    poll_interval_ms: int
    quiet_period_ms: int
    predicate: Optional[Predicate] = None


class ScanCounter:
    """Thread-safe count of remaining scan cycles (-1 means unbounded)."""

    def __init__(self, value: int = FOREVER):
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> int:
        with self._lock:
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    def decrement(self) -> int:
        """Decrement a positive count and return the new value."""
        with self._lock:
            if self._value > 0:
                self._value -= 1
            return self._value


class ScanLoop:
    """
    The state machine run by the watcher thread.

    Each cycle sleeps for the poll interval minus the quiet period, probes the
    roots until two captures a quiet period apart agree, then commits the
    stable state: diff against the last committed state, persist, notify.
    """

    def __init__(
        self,
        state: WatchState,
        listeners: Sequence[ChangeListener],
        repository: SnapshotRepository,
        settings: ScanSettings,
        counter: Optional[ScanCounter] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scan loop.

        Args:
            state: Initial committed snapshot of every watched root
            listeners: Listeners notified of changes, fixed for the loop lifetime
            repository: Where committed state is persisted
            settings: Initial timing and predicate
            counter: Remaining scan count shared with the owner
            stop_event: Event that interrupts the loop's waits when set
        """
        self._state: WatchState = dict(state)
        self._directories = tuple(self._state.keys())
        self._listeners: List[ChangeListener] = list(listeners)
        self._repository = repository
        self._settings = settings
        self.counter = counter or ScanCounter()
        self.stop_event = stop_event or threading.Event()
        self._phase = ScanPhase.IDLE
        self.last_error: Optional[Exception] = None

    @property
    def settings(self) -> ScanSettings:
        return self._settings

    @settings.setter
    def settings(self, settings: ScanSettings) -> None:
        self._settings = settings

    @property
    def state(self) -> WatchState:
        """A copy of the last committed state."""
        return dict(self._state)

    @property
    def phase(self) -> ScanPhase:
        return self._phase

    def run(self) -> None:
        """Run cycles until the counter reaches zero."""
        logger.debug(f"Scan loop started for {len(self._directories)} director(ies)")
        try:
            remaining = self.counter.get()
            while remaining > 0 or remaining == FOREVER:
                if remaining > 0:
                    self.counter.decrement()
                self.scan()
                remaining = self.counter.get()
        finally:
            self._phase = ScanPhase.STOPPED
            logger.debug("Scan loop stopped")

    def scan(self) -> bool:
        """
        Run one cycle.

        Returns:
            True if the cycle reached the end, False if it was interrupted by
            a stop request or abandoned after a scan failure
        """
        settings = self._settings
        predicate = settings.predicate
        try:
            self._phase = ScanPhase.SLEEPING
            if self._wait(settings.poll_interval_ms - settings.quiet_period_ms):
                return False

            self._phase = ScanPhase.PROBING
            stable = self._stabilize(settings)
            if stable is None:
                return False

            if states_differ(self._state, stable, predicate):
                self._phase = ScanPhase.COMMITTING
                self._commit(stable, predicate)
            return True
        except TransientScanError as e:
            self.last_error = e
            logger.warning(f"Scan cycle abandoned: {e}")
            return False
        finally:
            self._phase = ScanPhase.IDLE

    def _stabilize(self, settings: ScanSettings) -> Optional[WatchState]:
        baseline = self._capture_all()
        while True:
            if self._wait(settings.quiet_period_ms):
                return None
            current = self._capture_all()
            if not states_differ(baseline, current, settings.predicate):
                return current
            logger.debug("Directories still changing, waiting for another quiet period")
            baseline = current

    def _capture_all(self) -> WatchState:
        return {directory: DirectorySnapshot.capture(directory) for directory in self._directories}

    def _commit(self, stable: WatchState, predicate: Optional[Predicate]) -> None:
        batches = set()
        for directory, snapshot in stable.items():
            previous = self._state.get(directory) or DirectorySnapshot.empty(directory)
            batch = diff(previous, snapshot, predicate)
            if batch:
                batches.add(batch)

        self._state = stable
        try:
            self._repository.save(dict(stable))
        except (PersistenceWriteError, OSError) as e:
            self.last_error = e
            logger.error(f"Failed to persist snapshot state: {e}")

        if batches:
            self._fire(frozenset(batches))

    def _fire(self, batches: FrozenSet[ChangeBatch]) -> None:
        count = sum(len(b) for b in batches)
        logger.debug(f"Dispatching {count} change(s) in {len(batches)} batch(es)")
        for listener in self._listeners:
            try:
                listener.on_change(batches)
            except Exception:
                logger.exception(f"Change listener {listener!r} failed")

    def _wait(self, milliseconds: int) -> bool:
        """Wait for the given time; return True if a stop was requested."""
        return self.stop_event.wait(max(milliseconds, 0) / 1000.0)
