"""
Tor Browser distribution model: platforms, release descriptors, the release
index client and optional signature verification.
"""

from .platforms import (
    Branch,
    Platform,
    detect_host_architecture,
    detect_host_platform,
    normalize_architecture,
)
from .release import Release
from .repository import Repository, parse_index_versions, version_sort_key
from .signature import SignatureVerifier, VerificationOutcome

__all__ = [
    "Branch",
    "Platform",
    "Release",
    "Repository",
    "SignatureVerifier",
    "VerificationOutcome",
    "detect_host_architecture",
    "detect_host_platform",
    "normalize_architecture",
    "parse_index_versions",
    "version_sort_key",
]
