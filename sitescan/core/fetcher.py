"""
HTTP Fetcher for the Website Scanner

Fetches pages over aiohttp, honouring robots.txt, per-domain rate limits
and an exponential-backoff retry policy.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from .base import BaseComponent, FetchResult, HttpStatusError, RobotsDisallowed
from .config import ScanConfig
from .logging import get_logger
from .rate_limiter import DomainRateLimiter
from .retry import RetryPolicy, with_retry
from .robots import RobotsGate


class Fetcher(BaseComponent):
    """
    Page fetcher combining the robots gate, the rate limiter and retries.

    Sequence per URL: robots check (once), then for every attempt a
    rate-limit wait followed by a GET. Robots denial is never retried.
    """

    def __init__(self, config: Optional[ScanConfig] = None,
                 rate_limiter: Optional[DomainRateLimiter] = None,
                 robots_gate: Optional[RobotsGate] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        super().__init__(config or ScanConfig())
        self.logger = get_logger(__name__)
        self.rate_limiter = rate_limiter or DomainRateLimiter(self.config.rate_limit)
        self.robots_gate = robots_gate or RobotsGate(self.config)
        self.session = session
        self._owns_session = session is None
        self._sleep = sleep

        # Statistics
        self.stats = {
            'total_fetched': 0,
            'successful_fetches': 0,
            'failed_fetches': 0,
            'retries': 0,
            'total_time': 0.0
        }

    async def initialize(self) -> None:
        """Initialize the HTTP session and the robots gate"""
        if self._initialized:
            return

        if self.session is None:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=10,
                ttl_dns_cache=300,
                use_dns_cache=True
            )
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                connector=connector
            )

        await self.robots_gate.initialize()

        self._initialized = True
        self.logger.info(f"Fetcher initialized with rate_limit={self.config.rate_limit}/s per domain")

    async def cleanup(self) -> None:
        """Clean up HTTP resources"""
        await self.robots_gate.cleanup()
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
        self._initialized = False
        self.logger.info("Fetcher cleaned up successfully")

    @staticmethod
    def build_headers(config: ScanConfig) -> Dict[str, str]:
        return {
            'User-Agent': config.user_agent,
            'Accept': config.accept,
            'Accept-Language': config.accept_language,
        }

    def _resolve_config(self, config: Any) -> ScanConfig:
        if config is None:
            return self.config
        if isinstance(config, ScanConfig):
            return config
        return self.config.with_overrides(config)

    async def fetch(self, url: str, config: Any = None) -> FetchResult:
        """
        Fetch a single URL.

        Args:
            url: Absolute URL to fetch
            config: ScanConfig or dict of overrides for this fetch

        Returns:
            FetchResult with the page body

        Raises:
            RobotsDisallowed: robots.txt forbids the URL
            FetchExhausted: every attempt failed; carries the last error
        """
        if not self.session:
            await self.initialize()

        cfg = self._resolve_config(config)
        start_time = time.time()
        self.stats['total_fetched'] += 1

        if cfg.respect_robots_txt and not await self.robots_gate.is_allowed(url, cfg.user_agent):
            self.stats['failed_fetches'] += 1
            raise RobotsDisallowed(url)

        headers = self.build_headers(cfg)
        timeout = aiohttp.ClientTimeout(total=cfg.timeout)

        async def attempt_fetch(attempt: int) -> FetchResult:
            if attempt > 1:
                self.stats['retries'] += 1
            await self.rate_limiter.wait(url, cfg.rate_limit)
            self.logger.debug(f"GET {url} (attempt {attempt})")
            async with self.session.get(url, headers=headers, timeout=timeout,
                                        allow_redirects=True) as response:
                if not 200 <= response.status < 300:
                    raise HttpStatusError(url, response.status, response.reason or "")
                html = await response.text()
                return FetchResult(
                    url=url,
                    final_url=str(response.url),
                    status=response.status,
                    html=html,
                    headers=dict(response.headers or {}),
                    attempts=attempt,
                )

        policy = RetryPolicy(
            max_attempts=cfg.max_retries,
            base_delay=cfg.retry_base_delay,
            retry_on=(aiohttp.ClientError, asyncio.TimeoutError, HttpStatusError),
        )

        try:
            result = await with_retry(attempt_fetch, policy, description=url, sleep=self._sleep)
        except Exception:
            self.stats['failed_fetches'] += 1
            self.stats['total_time'] += time.time() - start_time
            raise

        result.elapsed = time.time() - start_time
        self.stats['successful_fetches'] += 1
        self.stats['total_time'] += result.elapsed
        self.logger.debug(f"Fetched {url} in {result.elapsed:.2f}s")
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get fetch statistics"""
        return {
            **self.stats,
            'success_rate': (
                self.stats['successful_fetches'] / max(self.stats['total_fetched'], 1)
            ) * 100,
            'average_time': (
                self.stats['total_time'] / max(self.stats['total_fetched'], 1)
            ),
            'domains': self.rate_limiter.stats()
        }
