"""
Near-duplicate content detection.
"""

import re
import time
from collections import Counter, OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sitescan.core.logging import get_logger

T = TypeVar('T')


def string_similarity(a: str, b: str) -> float:
    """
    Sørensen-Dice coefficient over character bigrams.

    Whitespace is removed first. Identical strings score 1.0 and the
    measure is symmetric.
    """
    a = re.sub(r'\s+', '', a or '')
    b = re.sub(r'\s+', '', b or '')

    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    bigrams_a = Counter(a[i:i + 2] for i in range(len(a) - 1))
    bigrams_b = Counter(b[i:i + 2] for i in range(len(b) - 1))
    overlap = sum((bigrams_a & bigrams_b).values())

    return (2.0 * overlap) / (len(a) - 1 + len(b) - 1)


class DuplicateDetector:
    """
    Bounded cache of recently seen content keyed by URL.

    Least recently added entries are evicted once max_entries is reached;
    entries older than ttl seconds are ignored and dropped.
    """

    def __init__(self, threshold: float = 0.85, max_entries: int = 1000,
                 ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.threshold = threshold
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._cache: 'OrderedDict[str, Tuple[str, float]]' = OrderedDict()
        self.logger = get_logger(__name__)

    def __len__(self) -> int:
        self._expire()
        return len(self._cache)

    def __contains__(self, url: str) -> bool:
        self._expire()
        return url in self._cache

    @staticmethod
    def similarity(a: str, b: str) -> float:
        return string_similarity(a, b)

    def _expire(self) -> None:
        if self.ttl is None:
            return
        cutoff = self._clock() - self.ttl
        expired = [url for url, (_, added) in self._cache.items() if added < cutoff]
        for url in expired:
            del self._cache[url]

    def add(self, url: str, content: str) -> None:
        """Cache content for a URL, evicting the oldest entry when full"""
        if url in self._cache:
            del self._cache[url]
        self._cache[url] = (content, self._clock())
        while len(self._cache) > self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            self.logger.debug(f"Evicted {evicted} from duplicate cache")

    def find_duplicates(self, content: str, threshold: Optional[float] = None,
                        exclude_url: Optional[str] = None) -> List[str]:
        """
        URLs of cached content at least `threshold` similar to the given content

        Args:
            content: Content to compare
            threshold: Minimum similarity; defaults to the detector threshold
            exclude_url: URL to leave out of the comparison (usually the page itself)
        """
        self._expire()
        limit = self.threshold if threshold is None else threshold
        duplicates = []
        for url, (cached, _) in self._cache.items():
            if url == exclude_url:
                continue
            if string_similarity(content, cached) >= limit:
                duplicates.append(url)
        return duplicates

    def deduplicate(self, items: List[T], key: Callable[[T], str],
                    threshold: Optional[float] = None) -> List[T]:
        """
        Keep the first item of each group of near-duplicates, preserving order
        """
        limit = self.threshold if threshold is None else threshold
        kept: List[T] = []
        kept_keys: List[str] = []
        for item in items:
            text = key(item)
            if any(string_similarity(text, other) >= limit for other in kept_keys):
                continue
            kept.append(item)
            kept_keys.append(text)

        removed = len(items) - len(kept)
        if removed:
            self.logger.info(f"Removed {removed} near-duplicate items")
        return kept

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        return {
            'entries': len(self),
            'max_entries': self.max_entries,
            'ttl': self.ttl,
            'threshold': self.threshold,
        }
