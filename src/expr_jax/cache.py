"""Lock-guarded LRU cache from source text to parsed expressions."""

from __future__ import annotations

import logging
import os
import threading
from collections import OrderedDict
from typing import Callable, Final

from .parser import ParsedExpression, parse_source

logger = logging.getLogger(__name__)

_PARSE_CACHE_MAX: Final[int] = max(1, int(os.environ.get("EXPR_JAX_PARSE_CACHE_MAX", "4096")))


class ParseCache:
    """Thread-safe memo of ``parse_source`` results.

    Concurrent misses on the same string may both parse; the later store
    wins. Parsing runs outside the lock.
    """

    def __init__(
        self,
        max_size: int = _PARSE_CACHE_MAX,
        parser: Callable[[str], ParsedExpression] = parse_source,
    ) -> None:
        self.max_size = max(1, int(max_size))
        self._parser = parser
        self._entries: OrderedDict[str, ParsedExpression] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, source: str) -> ParsedExpression | None:
        with self._lock:
            parsed = self._entries.get(source)
            if parsed is None:
                self._stats["misses"] += 1
                return None
            self._entries.move_to_end(source)
            self._stats["hits"] += 1
            return parsed

    def put(self, source: str, parsed: ParsedExpression) -> None:
        with self._lock:
            self._entries[source] = parsed
            self._entries.move_to_end(source)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._stats["evictions"] += 1
                logger.debug("Evicted %r from parse cache", evicted)

    def parse(self, source: str) -> ParsedExpression:
        parsed = self.get(source)
        if parsed is not None:
            return parsed
        logger.debug("Parse cache miss for %r", source)
        parsed = self._parser(source)
        self.put(source, parsed)
        return parsed

    def contains(self, source: str) -> bool:
        with self._lock:
            return source in self._entries

    is_cached = contains

    def clear(self, source: str | None = None) -> None:
        """Drop one entry, or every entry when ``source`` is None."""
        with self._lock:
            if source is None:
                self._entries.clear()
            else:
                self._entries.pop(source, None)
        logger.debug("Cleared parse cache%s", "" if source is None else f" entry {source!r}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self, *, reset: bool = False) -> dict[str, float | int]:
        with self._lock:
            hits = self._stats["hits"]
            misses = self._stats["misses"]
            total = hits + misses
            stats = {
                "hits": hits,
                "misses": misses,
                "evictions": self._stats["evictions"],
                "size": len(self._entries),
                "max_size": self.max_size,
                "hit_rate": float(hits / total) if total else 0.0,
            }
            if reset:
                self._entries.clear()
                for key in self._stats:
                    self._stats[key] = 0
        return stats


_DEFAULT_CACHE = ParseCache()


def default_cache() -> ParseCache:
    return _DEFAULT_CACHE


def clear_cache(source: str | None = None) -> None:
    _DEFAULT_CACHE.clear(source)


def parse_cache_stats(*, reset: bool = False) -> dict[str, float | int]:
    return _DEFAULT_CACHE.stats(reset=reset)
