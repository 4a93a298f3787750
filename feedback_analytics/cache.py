"""LRU cache for AI-derived sentiment verdicts."""
import hashlib
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from schemas import SentimentVerdict


class VerdictCache:
    """LRU cache with TTL for classifier verdicts.

    Only verdicts that came back from the AI provider are stored, so repeated
    identical submissions do not trigger repeated provider calls. Keys are
    hashes; raw feedback text is never kept as a key.
    """

    def __init__(self, max_size: int = 1000, ttl_seconds: int = 3600):
        """Initialize the cache.

        Args:
            max_size: Maximum number of entries
            ttl_seconds: Time-to-live in seconds
        """
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        # key -> (expires_at, verdict)
        self._entries: "OrderedDict[str, Tuple[float, SentimentVerdict]]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(feedback_text: str, rating: Optional[int] = None) -> str:
        raw = f"{rating if rating is not None else '-'}|{feedback_text}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, feedback_text: str, rating: Optional[int] = None) -> Optional[SentimentVerdict]:
        """Cached verdict for these inputs, or None if absent or expired."""
        key = self.make_key(feedback_text, rating)
        entry = self._entries.get(key)

        if entry is None:
            self._misses += 1
            return None

        expires_at, verdict = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            self._misses += 1
            return None

        self._entries.move_to_end(key)
        self._hits += 1
        return verdict

    def set(self, feedback_text: str, rating: Optional[int], verdict: SentimentVerdict) -> None:
        key = self.make_key(feedback_text, rating)
        self._entries[key] = (time.monotonic() + self.ttl_seconds, verdict)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self._evictions += 1

    def clear(self) -> None:
        self._entries.clear()
        self._hits = self._misses = self._evictions = 0

    def get_stats(self) -> Dict[str, Any]:
        """Hits, misses, evictions, size and hit rate."""
        lookups = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "size": len(self._entries),
            "max_size": self.max_size,
            "hit_rate": round(self._hits / lookups, 3) if lookups else 0,
        }
