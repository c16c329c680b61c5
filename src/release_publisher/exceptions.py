"""
Custom exceptions for release-publisher.

Every exception carries the process exit status the command line uses when it
escapes the pipeline, so the CLI maps failures to exit codes in one place.
"""

from typing import Sequence

from release_publisher.constants import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    EXIT_UNEXPECTED_RESPONSE,
)


class PublisherError(Exception):
    """
    Base exception for all release-publisher errors.

    Attributes:
        exit_code: Process exit status used when this error aborts a run.
    """

    exit_code: int = EXIT_FAILURE

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


class ConfigurationError(PublisherError):
    """
    Exception raised when configuration is invalid or missing.

    Attributes:
        missing: Names of every required value that was not provided.
    """

    def __init__(
        self,
        message: str,
        missing: Sequence[str] = (),
        exit_code: int = EXIT_FAILURE,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.missing = tuple(missing)
        self.exit_code = exit_code


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


# =============================================================================
# GitHub API Errors
# =============================================================================


class APIError(PublisherError):
    """
    Exception raised for GitHub API errors.

    Attributes:
        endpoint: The API endpoint that was accessed.
        status_code: The HTTP status code returned, if any.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class APIResponseError(APIError):
    """Non-200 status or a payload that does not look like a release list."""

    exit_code = EXIT_UNEXPECTED_RESPONSE


class APIRequestError(APIError):
    """The request itself failed (connection, DNS, timeout)."""

    exit_code = EXIT_FAILURE


# =============================================================================
# Publishing Errors
# =============================================================================


class AssetDownloadError(PublisherError):
    """
    Exception raised when a release asset cannot be fetched from GitHub.

    Only the affected asset is skipped; the run continues.
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


class StorageError(PublisherError):
    """
    Exception raised when an object storage request fails.

    Attributes:
        key: Object key that was being written or listed.
    """

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.key = key


class LatestReleaseError(PublisherError):
    """No release is left to designate as latest."""

    exit_code = EXIT_SUCCESS


class NotificationError(PublisherError):
    """Email notification could not be sent. Never escalated."""

    exit_code = EXIT_SUCCESS
