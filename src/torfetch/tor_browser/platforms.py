"""
Release platforms, architectures and branches.

Host detection lives here too, but only the outermost entry points call it;
everything below them receives the platform and architecture explicitly.
"""

import platform as _platform
import sys
from enum import Enum
from typing import Optional, Union

from torfetch.constants import ALPHA_MARKER
from torfetch.exceptions import UnsupportedPlatformError, ValidationError


class Platform(str, Enum):
    """Platform families Tor Browser is published for."""

    OSX = "osx"
    LINUX = "linux"
    WINDOWS = "win"

    @classmethod
    def parse(cls, value: Union["Platform", str]) -> "Platform":
        """
        Resolve a platform name or alias to a Platform member.

        Parameters:
            value: A Platform, or a case-insensitive name such as "darwin", "osx", "linux", "win32" or "win".

        Returns:
            Platform: The matching member.

        Raises:
            UnsupportedPlatformError: If the value names no known platform.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            resolved = _PLATFORM_ALIASES.get(value.strip().lower())
            if resolved is not None:
                return resolved
        raise UnsupportedPlatformError(str(value))

    @property
    def is_windows(self) -> bool:
        return self is Platform.WINDOWS


_PLATFORM_ALIASES = {
    "osx": Platform.OSX,
    "darwin": Platform.OSX,
    "mac": Platform.OSX,
    "macos": Platform.OSX,
    "linux": Platform.LINUX,
    "win": Platform.WINDOWS,
    "win32": Platform.WINDOWS,
    "windows": Platform.WINDOWS,
}

# Bit width suffix used in release filenames
_ARCHITECTURE_ALIASES = {
    "64": "64",
    "x64": "64",
    "x86_64": "64",
    "amd64": "64",
    "arm64": "64",
    "aarch64": "64",
    "32": "32",
    "ia32": "32",
    "x86": "32",
    "i386": "32",
    "i686": "32",
}


def normalize_architecture(value: str) -> str:
    """
    Map an architecture name to the bit width used in release filenames.

    Raises:
        UnsupportedPlatformError: If the architecture is not recognized.
    """
    resolved = _ARCHITECTURE_ALIASES.get(str(value).strip().lower())
    if resolved is None:
        raise UnsupportedPlatformError(str(value), field="architecture")
    return resolved


class Branch(str, Enum):
    """Release channels of the distribution."""

    STABLE = "stable"
    ALPHA = "alpha"

    @classmethod
    def parse(cls, value: Union["Branch", str]) -> "Branch":
        """
        Resolve a case-insensitive branch name to a Branch member.

        Raises:
            ValidationError: If the value names no known branch.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ValidationError(
                f"Unsupported branch: {value}", field="branch", value=str(value)
            ) from e

    @classmethod
    def for_version(cls, version: str) -> "Branch":
        """Return the branch a version string belongs to."""
        return cls.ALPHA if ALPHA_MARKER in version else cls.STABLE

    def accepts(self, version: str) -> bool:
        return Branch.for_version(version) is self


def detect_host_platform(system: Optional[str] = None) -> Platform:
    """Return the platform of the running interpreter."""
    return Platform.parse(system if system is not None else sys.platform)


def detect_host_architecture(machine: Optional[str] = None) -> str:
    """Return the bit width of the running machine, e.g. "64"."""
    return normalize_architecture(
        machine if machine is not None else _platform.machine()
    )
