"""
Release descriptor for a single Tor Browser distributable.
"""

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, Union

from torfetch.constants import (
    AUXILIARY_TOOL_TEMPLATE,
    DEFAULT_LOCALE,
    MAIN_BUNDLE_TEMPLATE,
)
from torfetch.exceptions import ValidationError

from .platforms import Branch, Platform, normalize_architecture

if TYPE_CHECKING:
    from .repository import Repository

# mar-tools bundles use "mac" where release bundles use "osx"
_TOOLS_PLATFORM_NAMES = {
    Platform.OSX: "mac",
    Platform.LINUX: "linux",
    Platform.WINDOWS: "win",
}


@dataclass(frozen=True)
class Release:
    """
    Identifies one release bundle: version, target platform, architecture and branch.

    Platform aliases ("darwin", "win32", ...) and architecture names ("x64",
    "x86_64", ...) are normalized on construction. When `branch` is omitted it is
    derived from the version; an explicit branch that disagrees with the version
    is rejected.
    """

    version: str
    platform: Platform
    architecture: str
    branch: Optional[Branch] = None
    locale: str = DEFAULT_LOCALE

    def __post_init__(self) -> None:
        version = str(self.version).strip()
        if not version:
            raise ValidationError("Release version must not be empty", field="version")

        object.__setattr__(self, "version", version)
        object.__setattr__(self, "platform", Platform.parse(self.platform))
        object.__setattr__(
            self, "architecture", normalize_architecture(self.architecture)
        )

        derived = Branch.for_version(version)
        if self.branch is None:
            object.__setattr__(self, "branch", derived)
            return

        branch = Branch.parse(self.branch)
        if branch is not derived:
            raise ValidationError(
                f"Version {version} does not belong to the {branch.value} branch",
                field="branch",
                value=branch.value,
            )
        object.__setattr__(self, "branch", branch)

    @classmethod
    async def from_branch(
        cls,
        branch: Union[Branch, str],
        platform: Union[Platform, str],
        architecture: str,
        repository: "Repository",
        locale: str = DEFAULT_LOCALE,
    ) -> "Release":
        """
        Build the descriptor of the latest release on a branch.

        Raises:
            ResolutionError: If the repository lists no version for the branch.
            TransportError: If the repository index cannot be fetched.
        """
        branch = Branch.parse(branch)
        version = await repository.latest_version(branch)
        return cls(
            version=version,
            platform=platform,
            architecture=architecture,
            branch=branch,
            locale=locale,
        )

    def main_bundle_filename(self) -> str:
        """Return the filename of the release MAR bundle."""
        return MAIN_BUNDLE_TEMPLATE.format(
            platform=self.platform.value,
            arch=self.architecture,
            version=self.version,
            locale=self.locale,
        )

    def auxiliary_tool_filename(self) -> str:
        """Return the filename of the mar-tools zip for this descriptor's platform."""
        return AUXILIARY_TOOL_TEMPLATE.format(
            platform=_TOOLS_PLATFORM_NAMES[self.platform],
            arch=self.architecture,
        )

    def auxiliary_tool_release(
        self,
        host_platform: Union[Platform, str],
        host_architecture: str,
    ) -> "Release":
        """
        Return the descriptor of the mar-tools bundle runnable on the given host.

        The tools are published alongside each release but built per host, so
        the result keeps this release's version and branch and swaps in the host
        platform and architecture.
        """
        return replace(self, platform=host_platform, architecture=host_architecture)
