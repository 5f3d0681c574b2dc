"""
Tests for URL validation and normalization
"""

import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from sitescan.core.base import InvalidUrl
from sitescan.core.url_validator import UrlValidator
from conftest import as_context, make_response, raising_context


class TestUrlValidator:
    """Test suite for UrlValidator"""

    @pytest.fixture
    def session(self):
        return MagicMock()

    @pytest.fixture
    def validator(self, session):
        return UrlValidator(session=session)

    def test_normalize_url(self):
        assert UrlValidator.normalize_url("HTTPS://Example.COM:443") == "https://example.com/"
        assert UrlValidator.normalize_url("http://example.com:80/a?b=2&a=1#frag") == \
            "http://example.com/a?a=1&b=2"
        assert UrlValidator.normalize_url("https://example.com:8443/x") == "https://example.com:8443/x"

    @pytest.mark.parametrize("url", ["", "not a url", "ftp://example.com/file", "javascript:alert(1)"])
    def test_parse_url_rejects_invalid(self, url):
        with pytest.raises(InvalidUrl):
            UrlValidator.parse_url(url)

    @pytest.mark.asyncio
    async def test_invalid_format_skips_request(self, validator, session):
        result = await validator.validate_url("not a url")

        assert not result.is_valid
        assert result.errors == ["Invalid URL format"]
        session.head.assert_not_called()

    @pytest.mark.asyncio
    async def test_reachable_url(self, validator, session):
        session.head.return_value = as_context(make_response(200, url="https://example.com/"))

        result = await validator.validate_url("https://example.com")

        assert result.is_valid
        assert result.normalized_url == "https://example.com/"
        assert result.final_url == "https://example.com/"
        assert result.errors == []
        session.head.assert_called_once_with("https://example.com/", allow_redirects=True)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url,normalized", [
        ("http://localhost:8080/", "http://localhost:8080/"),
        ("http://intranet/docs", "http://intranet/docs"),
    ])
    async def test_single_label_hosts_are_checked(self, validator, session, url, normalized):
        session.head.return_value = as_context(make_response(200, url=normalized))

        result = await validator.validate_url(url)

        assert result.is_valid
        assert result.normalized_url == normalized
        session.head.assert_called_once_with(normalized, allow_redirects=True)

    @pytest.mark.asyncio
    async def test_redirect_is_reported(self, validator, session):
        hop = MagicMock()
        hop.url = "http://example.com/"
        session.head.return_value = as_context(
            make_response(200, url="https://www.example.com/", history=[hop])
        )

        result = await validator.validate_url("http://example.com/")

        assert result.is_valid
        assert result.redirects == ["http://example.com/"]
        assert result.final_url == "https://www.example.com/"
        assert result.warnings == ["URL redirects to https://www.example.com/"]

    @pytest.mark.asyncio
    async def test_http_error_status(self, validator, session):
        session.head.return_value = as_context(make_response(404, reason="Not Found"))

        result = await validator.validate_url("https://example.com/missing")

        assert not result.is_valid
        assert result.errors == ["HTTP 404: Not Found"]
        session.head.assert_called_once()
        session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_network_error(self, validator, session):
        session.head.return_value = raising_context(aiohttp.ClientConnectionError("refused"))

        result = await validator.validate_url("https://example.com/")

        assert not result.is_valid
        assert result.errors == ["Unable to access URL"]

    @pytest.mark.asyncio
    async def test_timeout(self, validator, session):
        session.head.return_value = raising_context(asyncio.TimeoutError())

        result = await validator.validate_url("https://example.com/")

        assert result.errors == ["Unable to access URL"]

    @pytest.mark.asyncio
    async def test_validate_urls_keeps_input_order(self, validator, session):
        session.head.return_value = as_context(make_response(200))

        results = await validator.validate_urls(["https://a.example.com", "bad", "https://b.example.com"])

        assert [r.url for r in results] == ["https://a.example.com", "bad", "https://b.example.com"]
        assert [r.is_valid for r in results] == [True, False, True]
