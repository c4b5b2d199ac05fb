"""
Tor Browser release repository client.

Discovers the latest version of a branch from the distribution index page and
builds absolute download URLs for release descriptors.
"""

import re
from typing import List, Optional, Protocol, Union

from torfetch.constants import (
    ALPHA_MARKER,
    DEFAULT_REPOSITORY_URL,
    SIGNATURE_EXTENSION,
    VERSION_ANCHOR_PATTERN,
)
from torfetch.exceptions import ResolutionError
from torfetch.log_utils import logger

from .platforms import Branch
from .release import Release

VERSION_ANCHOR_RX = re.compile(VERSION_ANCHOR_PATTERN)


class TextFetcher(Protocol):
    async def fetch_text(self, url: str) -> str: ...


def version_sort_key(version: str) -> int:
    """
    Numeric ordering key for index versions.

    Dots and the alpha marker are stripped and the remaining digits are read as
    one integer, so "9.0a2" sorts as 902 and "10.0" as 100. This only orders
    versions correctly when the stripped forms have comparable digit counts.
    """
    return int(version.replace(".", "").replace(ALPHA_MARKER, ""))


def parse_index_versions(page: str) -> List[str]:
    """Return every version linked from a repository index page, in page order."""
    return [match.group("version") for match in VERSION_ANCHOR_RX.finditer(page)]


class Repository:
    """
    Client for the Tor Browser distribution index.

    Parameters:
        repository_url (str): Base URL of the release index.
        client: Object providing ``async fetch_text(url)``; required for version
            resolution, unused by the URL builders.
    """

    def __init__(
        self,
        repository_url: str = DEFAULT_REPOSITORY_URL,
        client: Optional[TextFetcher] = None,
    ) -> None:
        if not repository_url.endswith("/"):
            repository_url = f"{repository_url}/"
        self._repository_url = repository_url
        self.client = client

    @property
    def repository_url(self) -> str:
        return self._repository_url

    async def latest_version(self, branch: Union[Branch, str] = Branch.STABLE) -> str:
        """
        Find the newest version published on a branch.

        Parameters:
            branch: The release branch to resolve.

        Returns:
            str: The latest version string, e.g. "10.0" or "9.0a2".

        Raises:
            ResolutionError: If the index lists no version for the branch.
            TransportError: If the index page cannot be fetched.
        """
        branch = Branch.parse(branch)
        if self.client is None:
            raise ResolutionError(
                "Repository has no HTTP client for version resolution",
                branch=branch.value,
                url=self.repository_url,
            )

        page = await self.client.fetch_text(self.repository_url)
        candidates = [
            version for version in parse_index_versions(page) if branch.accepts(version)
        ]

        if not candidates:
            raise ResolutionError(
                f'No latest "{branch.value}" version found on the repository',
                branch=branch.value,
                url=self.repository_url,
            )

        latest = sorted(candidates, key=version_sort_key)[-1]
        logger.debug(
            f"Resolved {branch.value} release {latest} from {len(candidates)} candidates"
        )
        return latest

    def release_directory_url(self, version: str) -> str:
        return f"{self.repository_url}{version}/"

    def release_url(self, release: Release) -> str:
        return f"{self.release_directory_url(release.version)}{release.main_bundle_filename()}"

    def auxiliary_tool_url(self, release: Release) -> str:
        return f"{self.release_directory_url(release.version)}{release.auxiliary_tool_filename()}"

    def signature_url(self, release: Release) -> str:
        return f"{self.release_url(release)}{SIGNATURE_EXTENSION}"
