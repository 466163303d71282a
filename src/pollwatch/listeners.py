"""Listeners notified with the changes of each committed scan cycle."""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Set

from .models import ChangeBatch

logger = logging.getLogger(__name__)


class ChangeListener(ABC):
    """Callback interface invoked when files have changed."""

    @abstractmethod
    def on_change(self, batches: Set[ChangeBatch]) -> None:
        """
        Called once per cycle with every non-empty change batch.

        Args:
            batches: One batch per directory that had changes
        """
        pass


class CallbackListener(ChangeListener):
    """Adapts a plain callable to the listener interface."""

    def __init__(self, callback: Callable[[Set[ChangeBatch]], None]):
        self.callback = callback

    def on_change(self, batches: Set[ChangeBatch]) -> None:
        self.callback(batches)

    def __repr__(self) -> str:
        return f"CallbackListener({self.callback!r})"


class LoggingChangeListener(ChangeListener):
    """Logs every changed file."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_change(self, batches: Set[ChangeBatch]) -> None:
        for batch in batches:
            for change in sorted(batch, key=lambda c: c.path):
                logger.log(self.level, f"{change.change_type.name}: {change.path}")
