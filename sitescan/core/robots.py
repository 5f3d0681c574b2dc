"""
robots.txt gate for the Website Scanner
"""

import asyncio
import urllib.robotparser
from typing import Dict, Optional
from urllib.parse import urlparse

import aiohttp

from .base import BaseComponent
from .config import ScanConfig
from .logging import get_logger


class RobotsGate(BaseComponent):
    """
    Answers whether a URL may be fetched for a user agent.

    Policies are fetched once per origin and cached for the lifetime of the
    gate. Anything that prevents reading a policy (network error, non-2xx
    status, unparseable body) allows the fetch.
    """

    def __init__(self, config: Optional[ScanConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(config or ScanConfig())
        self.logger = get_logger(__name__)
        self.session = session
        self._owns_session = session is None
        # origin -> parsed policy, or None when every path is allowed
        self._cache: Dict[str, Optional[urllib.robotparser.RobotFileParser]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def initialize(self) -> None:
        if self._initialized:
            return
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.robots_timeout),
                headers={'User-Agent': self.config.user_agent}
            )
        self._initialized = True

    async def cleanup(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
        self._initialized = False

    @staticmethod
    def origin_of(url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}"

    async def is_allowed(self, url: str, user_agent: Optional[str] = None) -> bool:
        """
        Check whether robots.txt allows fetching a URL.

        Args:
            url: Absolute URL to check
            user_agent: Agent name to evaluate rules for; defaults to the configured one

        Returns:
            True when the fetch is allowed
        """
        agent = user_agent or self.config.user_agent
        origin = self.origin_of(url)

        lock = self._locks.setdefault(origin, asyncio.Lock())
        async with lock:
            if origin not in self._cache:
                self._cache[origin] = await self._load_policy(origin)

        parser = self._cache[origin]
        if parser is None:
            return True

        try:
            allowed = parser.can_fetch(agent, url)
        except Exception as e:
            self.logger.debug(f"Could not evaluate robots.txt for {url}: {e}")
            return True

        if not allowed:
            self.logger.info(f"robots.txt disallows {url} for {agent}")
        return allowed

    async def _load_policy(self, origin: str) -> Optional[urllib.robotparser.RobotFileParser]:
        """Fetch and parse robots.txt for an origin; None means allow everything"""
        robots_url = f"{origin}/robots.txt"

        if not self.session:
            await self.initialize()

        try:
            async with self.session.get(robots_url) as response:
                if not 200 <= response.status < 300:
                    self.logger.debug(f"No robots.txt at {robots_url} (HTTP {response.status})")
                    return None
                body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            self.logger.debug(f"Failed to fetch {robots_url}: {e}")
            return None

        parser = urllib.robotparser.RobotFileParser(robots_url)
        try:
            parser.parse(body.splitlines())
        except Exception as e:
            self.logger.debug(f"Failed to parse {robots_url}: {e}")
            return None

        self.logger.debug(f"Loaded robots.txt for {origin}")
        return parser

    def clear_cache(self) -> None:
        self._cache.clear()
        self._locks.clear()
