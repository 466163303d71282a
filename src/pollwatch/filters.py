"""Match predicates deciding which files take part in change detection."""

import logging
import os
import re
from enum import Enum
from typing import Iterable, List, Optional

from .exceptions import ConfigurationError
from .models import Predicate

logger = logging.getLogger(__name__)


class MatchingStrategy(Enum):
    """How watched files are selected."""
    ANY = "any"
    SUFFIX = "suffix"
    REGEX = "regex"


class AnyFilter:
    """Accepts every file."""

    def __call__(self, path: str) -> bool:
        return True

    accept = __call__

    def __repr__(self) -> str:
        return "AnyFilter()"


class SuffixFilter:
    """
    Accepts files whose extension is one of the configured suffixes.

    Suffixes are compared case-insensitively against the text after the last
    dot of the file name. "txt", ".txt" and "*.txt" are equivalent.
    """

    def __init__(self, suffixes: Iterable[str]):
        normalized = {self._normalize(s) for s in suffixes if s}
        normalized.discard("")
        if not normalized:
            raise ConfigurationError("Suffixes must not be empty")
        self.suffixes = frozenset(normalized)

    @staticmethod
    def _normalize(suffix: str) -> str:
        return suffix.rsplit(".", 1)[-1].lower()

    def __call__(self, path: str) -> bool:
        name = os.path.basename(path)
        if "." not in name:
            return False
        return name.rsplit(".", 1)[-1].lower() in self.suffixes

    accept = __call__

    def __repr__(self) -> str:
        return f"SuffixFilter({sorted(self.suffixes)})"


class RegexFilter:
    """Accepts files whose name fully matches any of the patterns."""

    def __init__(self, patterns: Iterable[str]):
        compiled: List[re.Pattern] = []
        for pattern in patterns:
            if not pattern:
                raise ConfigurationError("Pattern must not be null or empty")
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                raise ConfigurationError(f"Invalid regular expression '{pattern}': {e}") from e
        if not compiled:
            raise ConfigurationError("Patterns must not be empty")
        self.patterns = compiled

    def __call__(self, path: str) -> bool:
        name = os.path.basename(path)
        return any(p.fullmatch(name) for p in self.patterns)

    accept = __call__

    def __repr__(self) -> str:
        return f"RegexFilter({[p.pattern for p in self.patterns]})"


def create_filter(
    strategy: MatchingStrategy = MatchingStrategy.ANY,
    patterns: Optional[Iterable[str]] = None,
) -> Predicate:
    """
    Build the predicate for a matching strategy.

    Args:
        strategy: The matching strategy
        patterns: Suffixes for SUFFIX, regular expressions for REGEX

    Returns:
        A callable taking a file path and returning whether it is watched

    Raises:
        ConfigurationError: If the patterns are missing or invalid
    """
    patterns = list(patterns or [])
    if strategy == MatchingStrategy.SUFFIX:
        logger.info(f"Matching strategy is SUFFIX, accepting {patterns}")
        return SuffixFilter(patterns)
    if strategy == MatchingStrategy.REGEX:
        logger.info(f"Matching strategy is REGEX, accepting {patterns}")
        return RegexFilter(patterns)
    logger.info("Matching strategy is ANY, accepting all files")
    return AnyFilter()
