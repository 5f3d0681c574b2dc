"""
Text Generation Client

Thin client for an OpenAI-compatible chat-completions endpoint, used to
summarize, tag and review knowledge items. Callers depend on the
TextGenerator interface so tests can substitute a canned generator.
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp

from sitescan.core.base import APIError, BaseComponent, FetchExhausted
from sitescan.core.config import AIConfig
from sitescan.core.logging import get_logger
from sitescan.core.retry import RetryPolicy, with_retry


class TextGenerator(ABC):
    """Produces text for a prompt"""

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int) -> str:
        """Return the completion for a prompt; raises APIError on failure"""
        pass


class HttpTextGenerator(TextGenerator, BaseComponent):
    """
    TextGenerator backed by a chat-completions HTTP API.

    The API key is read from the environment variable named by
    AIConfig.api_key_env when the generator is initialized.
    """

    def __init__(self, config: Optional[AIConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 retry_policy: Optional[RetryPolicy] = None):
        super().__init__(config or AIConfig())
        self.logger = get_logger(__name__)
        self.session = session
        self._owns_session = session is None
        self.api_key: Optional[str] = None
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=3,
            base_delay=1.0,
            max_delay=60.0,
            retry_on=(aiohttp.ClientError, TimeoutError)
        )
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
        }

    async def initialize(self) -> None:
        """Read the API key and open the HTTP session"""
        self.api_key = os.getenv(self.config.api_key_env)
        if not self.api_key:
            raise APIError(f"API key not found in environment variable: {self.config.api_key_env}")

        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                headers={'Content-Type': 'application/json'}
            )
        self._initialized = True
        self.logger.info(f"Text generator ready ({self.config.model})")

    async def cleanup(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
        self._initialized = False

    def build_payload(self, prompt: str, max_tokens: int) -> Dict[str, Any]:
        return {
            'model': self.config.model,
            'messages': [{'role': 'user', 'content': prompt}],
            'max_tokens': max_tokens,
        }

    async def generate(self, prompt: str, max_tokens: int) -> str:
        """
        Request a completion

        Args:
            prompt: User prompt
            max_tokens: Completion length limit

        Returns:
            The first choice's message content

        Raises:
            APIError: On transport failures, non-2xx answers or malformed bodies
        """
        if not self._initialized:
            await self.initialize()

        headers = {'Authorization': f'Bearer {self.api_key}'}
        payload = self.build_payload(prompt, max_tokens)
        self.stats['total_requests'] += 1

        async def _attempt(attempt: int) -> Dict[str, Any]:
            async with self.session.post(self.config.api_url, json=payload, headers=headers) as response:
                if response.status == 429 or response.status >= 500:
                    # Transient; let the retry policy back off
                    raise aiohttp.ClientResponseError(
                        response.request_info, response.history,
                        status=response.status, message=response.reason or ''
                    )
                if response.status >= 400:
                    body = await response.text()
                    raise APIError(f"Text generation failed: HTTP {response.status}: {body[:200]}")
                return await response.json()

        try:
            data = await with_retry(_attempt, self.retry_policy, description="text generation")
            content = data['choices'][0]['message']['content']
        except FetchExhausted as e:
            self.stats['failed_requests'] += 1
            raise APIError(f"Text generation failed after {e.attempts} attempts: {e.last_error}") from e
        except (KeyError, IndexError, TypeError) as e:
            self.stats['failed_requests'] += 1
            raise APIError(f"Unexpected text generation response: {e}") from e
        except APIError:
            self.stats['failed_requests'] += 1
            raise

        self.stats['successful_requests'] += 1
        return content or ''
