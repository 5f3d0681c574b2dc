"""
URL Validation for the Website Scanner

Implements URL syntax validation, normalization and an accessibility check
(HEAD request with redirects followed) for URLs submitted to a scan job.
"""

import asyncio
from typing import List, Optional
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

import aiohttp
import validators

from .base import BaseComponent, InvalidUrl, UrlValidationResult
from .config import ScanConfig
from .logging import get_logger


class UrlValidator(BaseComponent):
    """
    Validates submitted URLs: format check, normalization and a HEAD request.

    Read-only; never mutates shared state besides its own HTTP session.
    """

    def __init__(self, config: Optional[ScanConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(config or ScanConfig())
        self.logger = get_logger(__name__)
        self.session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        """Initialize the HTTP session used for accessibility checks"""
        if self._initialized:
            return

        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.validation_timeout)
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers={'User-Agent': self.config.user_agent}
            )

        self._initialized = True
        self.logger.info("URL Validator initialized successfully")

    async def cleanup(self) -> None:
        """Clean up resources"""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
        self._initialized = False

    @staticmethod
    def parse_url(url: str) -> str:
        """
        Check that a URL is an absolute http(s) URL and return it normalized.

        Raises:
            InvalidUrl: If the URL is malformed or uses another scheme
        """
        candidate = (url or '').strip()
        if not candidate or not validators.url(candidate, simple_host=True):
            raise InvalidUrl(f"Invalid URL format: {url}")

        parsed = urlparse(candidate)
        if parsed.scheme not in ('http', 'https') or not parsed.hostname:
            raise InvalidUrl(f"Invalid URL format: {url}")

        return UrlValidator.normalize_url(candidate)

    @staticmethod
    def normalize_url(url: str) -> str:
        """
        Normalize URL by lowercasing the host, dropping default ports and
        fragments, and sorting query parameters.
        """
        parsed = urlparse(url.strip())
        netloc = parsed.netloc.lower()

        if netloc.endswith(':80') and parsed.scheme == 'http':
            netloc = netloc[:-3]
        elif netloc.endswith(':443') and parsed.scheme == 'https':
            netloc = netloc[:-4]

        path = parsed.path or '/'

        query = ''
        if parsed.query:
            query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))

        return urlunparse((parsed.scheme.lower(), netloc, path, parsed.params, query, ''))

    async def validate_url(self, url: str) -> UrlValidationResult:
        """
        Validate a single URL.

        Args:
            url: URL as submitted by the user

        Returns:
            UrlValidationResult; is_valid is False on format errors, non-2xx
            HEAD responses and network errors
        """
        result = UrlValidationResult(url=url)

        try:
            normalized = self.parse_url(url)
        except InvalidUrl:
            result.errors.append("Invalid URL format")
            self.logger.warning(f"URL validation failed: {url}")
            return result

        result.normalized_url = normalized

        if not self.session:
            await self.initialize()

        try:
            async with self.session.head(normalized, allow_redirects=True) as response:
                history = list(getattr(response, 'history', None) or [])
                if history:
                    result.redirects = [str(r.url) for r in history]
                    result.final_url = str(response.url)
                    result.warnings.append(f"URL redirects to {result.final_url}")
                else:
                    result.final_url = normalized

                if 200 <= response.status < 300:
                    result.is_valid = True
                else:
                    reason = response.reason or ''
                    result.errors.append(f"HTTP {response.status}: {reason}".rstrip(': '))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.debug(f"HEAD request failed for {normalized}: {e}")
            result.errors.append("Unable to access URL")

        if result.is_valid:
            self.logger.debug(f"URL validated: {normalized}")
        else:
            self.logger.warning(f"URL validation failed: {url} ({'; '.join(result.errors)})")

        return result

    async def validate_urls(self, urls: List[str]) -> List[UrlValidationResult]:
        """
        Validate URLs concurrently.

        Returns:
            One result per input URL, in input order
        """
        results = await asyncio.gather(*(self.validate_url(url) for url in urls))
        valid_count = sum(1 for r in results if r.is_valid)
        self.logger.info(f"Validated {valid_count} out of {len(urls)} URLs")
        return list(results)
