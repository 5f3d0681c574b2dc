"""
Per-domain rate limiting for outbound requests.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Any
from urllib.parse import urlparse

from sitescan.core.logging import get_logger


@dataclass
class DomainRateLimit:
    """Rate limiting state for a domain"""
    domain: str
    last_request: Optional[float] = None
    request_count: int = 0
    total_wait: float = 0.0


class DomainRateLimiter:
    """
    Minimum-interval gate keyed by host.

    Waiters for the same host are serialized by a per-host lock, so two
    consecutive dispatches to a host are never closer than
    1 / requests_per_second seconds no matter how many workers share it.
    """

    def __init__(self, requests_per_second: float = 5.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.requests_per_second = requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._domains: Dict[str, DomainRateLimit] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = get_logger(__name__)

    @property
    def min_interval(self) -> float:
        return 1.0 / self.requests_per_second

    @staticmethod
    def domain_of(url_or_domain: str) -> str:
        if '://' in url_or_domain:
            return (urlparse(url_or_domain).hostname or '').lower()
        return url_or_domain.lower()

    async def wait(self, url_or_domain: str, requests_per_second: Optional[float] = None) -> float:
        """
        Suspend until a request to the domain is allowed, then record it.

        Args:
            url_or_domain: Target URL or bare host
            requests_per_second: Per-call override of the configured rate

        Returns:
            Seconds spent waiting
        """
        domain = self.domain_of(url_or_domain)
        rate = requests_per_second or self.requests_per_second
        min_interval = 1.0 / rate

        lock = self._locks.setdefault(domain, asyncio.Lock())
        async with lock:
            state = self._domains.setdefault(domain, DomainRateLimit(domain=domain))
            waited = 0.0
            if state.last_request is not None:
                elapsed = self._clock() - state.last_request
                if elapsed < min_interval:
                    waited = min_interval - elapsed
                    self.logger.debug(f"Rate limiting {domain}: waiting {waited:.3f}s")
                    await self._sleep(waited)

            state.last_request = self._clock()
            state.request_count += 1
            state.total_wait += waited
            return waited

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics per domain"""
        return {
            domain: {
                'request_count': state.request_count,
                'total_wait': state.total_wait,
                'last_request': state.last_request,
            }
            for domain, state in self._domains.items()
        }

    def reset(self) -> None:
        self._domains.clear()
        self._locks.clear()
