"""
Custom exceptions for torfetch.

Every failure of the retrieval pipeline surfaces as one of the exceptions
defined here, so callers can catch ``TorfetchError`` for all of them or a
specific subclass for a single failure kind.
"""


class TorfetchError(Exception):
    """
    Base exception for all torfetch errors.

    All custom exceptions in torfetch inherit from this class to allow for
    easy catching of all package-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(TorfetchError):
    """Exception raised when a configuration value is invalid."""

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(TorfetchError):
    """
    Exception raised when a value fails validation.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class UnsupportedPlatformError(ValidationError):
    """
    Exception raised for a platform or architecture outside the known set.

    Attributes:
        platform: The offending platform (or architecture) value.
    """

    def __init__(self, platform: str, field: str = "platform") -> None:
        super().__init__(
            f"Unsupported {field}: {platform}", field=field, value=str(platform)
        )
        self.platform = platform


# =============================================================================
# Resolution Errors
# =============================================================================


class ResolutionError(TorfetchError):
    """
    Exception raised when no release version satisfies the requested branch.

    Attributes:
        branch: The release branch that could not be resolved.
        url: The index page that was searched.
    """

    def __init__(
        self,
        message: str,
        branch: str | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.branch = branch
        self.url = url


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(TorfetchError):
    """
    Exception raised for any failed network fetch.

    This includes connection failures, non-2xx responses and interrupted
    response streams.

    Attributes:
        url: The URL that was being fetched.
        status_code: The HTTP status code, when the server answered.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(TorfetchError):
    """
    Exception raised for file system-related errors.

    Attributes:
        path: The file path that caused the error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class DecompressionError(FileSystemError):
    """Exception raised when a file cannot be decompressed in place."""

    pass


# =============================================================================
# Archive Errors
# =============================================================================


class ArchiveError(TorfetchError):
    """
    Exception raised for archive-related errors.

    Attributes:
        archive_path: Path to the problematic archive.
    """

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path


class ExtractionError(ArchiveError):
    """Exception raised when archive extraction fails."""

    pass


class ExternalToolError(ArchiveError):
    """
    Exception raised when the external extraction tool fails.

    Attributes:
        command: The command line that was run.
        returncode: The process exit status; negative when killed by a signal,
            None when the process could not be launched.
        stderr: Captured standard error output, if any.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str | None = None,
        archive_path: str | None = None,
    ) -> None:
        super().__init__(message, archive_path=archive_path, details=stderr or None)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


# =============================================================================
# Signature Errors
# =============================================================================


class SignatureError(TorfetchError):
    """
    Exception raised when a release artifact cannot be trusted.

    Attributes:
        filename: The artifact whose signature was checked.
    """

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.filename = filename
