"""
torfetch - retrieve the tor executable from official Tor Browser releases.
"""

from .config import TorfetchConfig, load_config
from .downloader import RetrievalSession, TorDownloader, retrieve_tor
from .exceptions import (
    ConfigFileError,
    ConfigurationError,
    DecompressionError,
    ExternalToolError,
    ExtractionError,
    FileSystemError,
    ResolutionError,
    SignatureError,
    TorfetchError,
    TransportError,
    UnsupportedPlatformError,
    ValidationError,
)
from .tor_browser import (
    Branch,
    Platform,
    Release,
    Repository,
    SignatureVerifier,
    VerificationOutcome,
)

__all__ = [
    "TorDownloader",
    "RetrievalSession",
    "retrieve_tor",
    "TorfetchConfig",
    "load_config",
    "Branch",
    "Platform",
    "Release",
    "Repository",
    "SignatureVerifier",
    "VerificationOutcome",
    "TorfetchError",
    "ConfigurationError",
    "ConfigFileError",
    "ValidationError",
    "UnsupportedPlatformError",
    "ResolutionError",
    "TransportError",
    "FileSystemError",
    "DecompressionError",
    "ExtractionError",
    "ExternalToolError",
    "SignatureError",
]
