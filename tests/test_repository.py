"""
Tests for the release index client.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from torfetch.exceptions import ResolutionError, TransportError, ValidationError
from torfetch.tor_browser.platforms import Branch
from torfetch.tor_browser.release import Release
from torfetch.tor_browser.repository import (
    Repository,
    parse_index_versions,
    version_sort_key,
)

INDEX_PAGE = """
<html><body><h1>Index of /torbrowser</h1>
<pre>
<a href="?C=N;O=D">Name</a>
<a href="/">Parent Directory</a>
<a href="8.5/">8.5/</a>                  2019-05-21 13:14    -
<a href="8.5a1/">8.5a1/</a>              2019-02-01 10:00    -
<a href="9.0/">9.0/</a>                  2019-10-22 18:20    -
<a href="9.0a2/">9.0a2/</a>              2019-06-20 09:12    -
<a href="10.0/">10.0/</a>                2020-11-17 12:30    -
<a href="README">README</a>              2020-11-17 12:30  512
</pre></body></html>
"""

STABLE_ONLY_PAGE = """
<a href="8.5/">8.5/</a>
<a href="/9.0/">9.0/</a>
"""


def _repository(page, url="https://dist.example.org/torbrowser/"):
    client = Mock()
    client.fetch_text = AsyncMock(return_value=page)
    return Repository(url, client=client), client


pytestmark = pytest.mark.unit


def test_parse_index_versions():
    assert parse_index_versions(INDEX_PAGE) == ["8.5", "8.5a1", "9.0", "9.0a2", "10.0"]
    assert parse_index_versions(STABLE_ONLY_PAGE) == ["8.5", "9.0"]


def test_version_sort_key_strips_separators():
    assert version_sort_key("10.0") == 100
    assert version_sort_key("9.0a2") == 902
    assert version_sort_key("8.5") == 85


@pytest.mark.asyncio
async def test_latest_stable_version():
    repository, client = _repository(INDEX_PAGE)

    assert await repository.latest_version(Branch.STABLE) == "10.0"
    client.fetch_text.assert_awaited_once_with("https://dist.example.org/torbrowser/")


@pytest.mark.asyncio
async def test_latest_alpha_version():
    repository, _ = _repository(INDEX_PAGE)

    assert await repository.latest_version("alpha") == "9.0a2"


@pytest.mark.asyncio
async def test_latest_version_defaults_to_stable():
    repository, _ = _repository(INDEX_PAGE)

    assert await repository.latest_version() == "10.0"


@pytest.mark.asyncio
async def test_no_alpha_version_raises_resolution_error():
    repository, _ = _repository(STABLE_ONLY_PAGE)

    with pytest.raises(ResolutionError) as exc_info:
        await repository.latest_version(Branch.ALPHA)

    assert exc_info.value.branch == "alpha"
    assert "alpha" in str(exc_info.value)


@pytest.mark.asyncio
async def test_empty_index_raises_resolution_error():
    repository, _ = _repository("<html></html>")

    with pytest.raises(ResolutionError):
        await repository.latest_version(Branch.STABLE)


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    client = Mock()
    client.fetch_text = AsyncMock(side_effect=TransportError("HTTP error 503"))
    repository = Repository(client=client)

    with pytest.raises(TransportError):
        await repository.latest_version()


@pytest.mark.asyncio
async def test_resolution_without_client_fails():
    with pytest.raises(ResolutionError):
        await Repository().latest_version()


class TestUrls:
    def test_base_url_gets_trailing_slash(self):
        assert (
            Repository("https://mirror.example.org/tor").repository_url
            == "https://mirror.example.org/tor/"
        )

    def test_default_repository(self):
        assert Repository().repository_url == "https://dist.torproject.org/torbrowser/"

    def test_release_urls(self):
        repository = Repository("https://dist.example.org/torbrowser/")
        release = Release("10.0", "linux", "x64")

        assert repository.release_directory_url("10.0") == (
            "https://dist.example.org/torbrowser/10.0/"
        )
        assert repository.release_url(release) == (
            "https://dist.example.org/torbrowser/10.0/tor-browser-linux64-10.0_en-US.mar"
        )
        assert repository.auxiliary_tool_url(release) == (
            "https://dist.example.org/torbrowser/10.0/mar-tools-linux64.zip"
        )
        assert repository.signature_url(release) == (
            "https://dist.example.org/torbrowser/10.0/tor-browser-linux64-10.0_en-US.mar.asc"
        )


@pytest.mark.asyncio
async def test_unknown_branch_raises_validation_error():
    repository, client = _repository(INDEX_PAGE)

    with pytest.raises(ValidationError):
        await repository.latest_version("nightly")

    client.fetch_text.assert_not_awaited()
