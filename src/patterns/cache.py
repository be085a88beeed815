"""
Compiled Pattern Cache.

Shared by every document-processing thread. Lookups of already compiled
patterns read a plain dict without locking; a miss takes a per-key lock
so that each pattern is compiled exactly once even under concurrent
first access. Compilation errors are cached too, so a broken regex is
reported once instead of on every document.

Keys combine pattern identity with a hash of the regex source and
flags, so an edited pattern that keeps its id is compiled afresh.

Author: ML Engineering Team
"""

import re
import threading
from typing import Any, Dict, Tuple, Union

from src.utils.exceptions import PatternCompilationError
from src.utils.logger import get_logger
from .models import ExtractionPattern

# Initialize module logger
logger = get_logger(__name__)

CacheKey = Tuple[Any, int]


class CompiledPatternCache:
    """
    Compute-once cache of compiled regular expressions.

    Example:
        >>> cache = CompiledPatternCache()
        >>> compiled = cache.get(pattern)
        >>> compiled.search("Invoice No 123100401").group(1)
        '123100401'
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Union[re.Pattern, PatternCompilationError]] = {}
        self._key_locks: Dict[CacheKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.compilations = 0

    def get(self, pattern: ExtractionPattern) -> re.Pattern:
        """
        Return the compiled regex for a pattern.

        Raises:
            PatternCompilationError: If the regex does not compile.
        """
        key = pattern.cache_key
        entry = self._entries.get(key)
        if entry is None:
            entry = self._compile_once(key, pattern)

        if isinstance(entry, PatternCompilationError):
            raise entry
        return entry

    def _compile_once(self, key: CacheKey, pattern: ExtractionPattern) -> Union[re.Pattern, PatternCompilationError]:
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is not None:
                return entry

            try:
                entry = re.compile(pattern.regex, pattern.re_flags)
            except re.error as e:
                entry = PatternCompilationError(pattern.name, pattern.regex, str(e))
                logger.warning(f"Pattern '{pattern.name}' excluded: {e}")

            with self._locks_guard:
                self.compilations += 1
                self._entries[key] = entry
            return entry

    def _lock_for(self, key: CacheKey) -> threading.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            with self._locks_guard:
                lock = self._key_locks.setdefault(key, threading.Lock())
        return lock

    def invalidate(self) -> None:
        """Drop every compiled entry."""
        with self._locks_guard:
            self._entries = {}
            self._key_locks = {}
        logger.debug("Compiled pattern cache cleared")

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def failed_count(self) -> int:
        return sum(1 for entry in list(self._entries.values()) if isinstance(entry, PatternCompilationError))

    def __contains__(self, pattern: ExtractionPattern) -> bool:
        return pattern.cache_key in self._entries
