"""Custom exception hierarchy for gh-uploader."""

from __future__ import annotations


class UploaderError(Exception):
    """Base exception for all gh-uploader errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(UploaderError):
    """Raised when configuration is invalid or missing."""
    pass


class UsageError(UploaderError):
    """Raised when command line arguments are missing or invalid."""
    pass


class LocalFileError(UploaderError):
    """Raised when the local file cannot be stat'd or opened."""
    pass


class UploadError(UploaderError):
    """Base class for errors raised while sending the upload request."""
    pass


class RequestBuildError(UploadError):
    """Raised when the POST request cannot be constructed."""
    pass


class UploadTransportError(UploadError):
    """Raised when the request fails before a response arrives."""
    pass
