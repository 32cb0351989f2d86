"""Session cache for scan verdicts.

Verdicts are keyed by the normalized input, so ``example.com`` and
``EXAMPLE.com/`` share an entry. Entries never expire and are not persisted;
the cache lives as long as the scanner that owns it.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .scanner.models import Verdict

logger = logging.getLogger(__name__)


class VerdictCache:
    """
    In-memory verdict store.

    Usage:
        cache = VerdictCache()
        cache.set("example.com", verdict)
        cached = cache.get("example.com")

    Concurrent scans of the same input are not collapsed; the last writer wins.
    """

    def __init__(self):
        self._entries: Dict[str, Verdict] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Verdict]:
        """Return the cached verdict for a normalized input, if any."""
        with self._lock:
            verdict = self._entries.get(key)
            if verdict is None:
                self._misses += 1
            else:
                self._hits += 1
            return verdict

    def set(self, key: str, verdict: Verdict) -> None:
        with self._lock:
            if key in self._entries:
                logger.debug(f"Replacing cached verdict for {key}")
            self._entries[key] = verdict

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }
