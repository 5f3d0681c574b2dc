"""
Shared fixtures for the scanner tests
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from sitescan.knowledge.ai import TextGenerator
from sitescan.storage import InMemoryStorage


class FakeClock:
    """Monotonic clock advanced only by the fake sleep"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeGenerator(TextGenerator):
    """Returns canned responses in order; an exception instance is raised instead"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def generate(self, prompt, max_tokens):
        self.prompts.append((prompt, max_tokens))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeDateClock:
    """datetime.now replacement that moves only when told to"""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_response(status=200, text='', url='https://example.com/', reason='OK',
                  headers=None, history=(), json_data=None):
    """Mock of an aiohttp response"""
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.url = url
    response.headers = headers or {'Content-Type': 'text/html'}
    response.history = list(history)
    response.text = AsyncMock(return_value=text)
    response.json = AsyncMock(return_value=json_data)
    return response


def as_context(response):
    """Wrap a response so it can be used with `async with session.get(...)`"""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def raising_context(error):
    context = MagicMock()
    context.__aenter__ = AsyncMock(side_effect=error)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def date_clock():
    return FakeDateClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def sample_page_html():
    return """
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <title>Acme Pricing Plans</title>
        <meta name="description" content="Simple pricing for every team">
        <meta property="og:title" content="Acme Pricing">
        <meta name="twitter:card" content="summary">
        <script type="application/ld+json">{"@type": "Organization", "name": "Acme"}</script>
        <style>body { color: red; }</style>
    </head>
    <body>
        <nav><a href="/home">Home</a><a href="/about">About</a></nav>
        <main>
            <h1>Pricing</h1>
            <p>Choose the plan that fits your team. Every plan includes unlimited projects,
               email support and a great onboarding experience for new users.</p>
            <h2>Starter</h2>
            <p>The starter plan costs $10 per month with monthly billing and no setup cost.</p>
            <h2>Business</h2>
            <p>The business plan costs $49 per month. Annual subscription saves 20 percent.</p>
            <a href="/contact">Contact sales</a>
            <a href="mailto:sales@acme.com">Email us</a>
            <img src="/img/plans.png" alt="Plans">
        </main>
        <footer>Copyright Acme</footer>
        <script>console.log('tracking');</script>
    </body>
    </html>
    """
