"""Custom exceptions for the Lead Intake service."""

from enum import Enum


class ErrorKind(str, Enum):
    """Reasons an upload or a batch of uploads can fail."""

    BACKEND_UNAVAILABLE = "backend_unavailable"  # Quota read failed
    OPEN_ERROR = "open_error"  # Local content stream could not be opened
    BACKEND_ERROR = "backend_error"  # Remote create/delete failed
    QUOTA_EXCEEDED = "quota_exceeded"  # Running usage reached the limit
    PARTIAL_FAILURE = "partial_failure"  # A worker failed for another reason


class LeadIntakeException(Exception):
    """Base exception for the Lead Intake service."""
    pass


class StorageError(LeadIntakeException):
    """Exception raised when a storage backend operation fails."""
    pass


class BackendUnavailable(StorageError):
    """Exception raised when the storage quota cannot be read."""
    pass


class UploadBatchError(LeadIntakeException):
    """Exception raised when a batch of uploads was aborted and rolled back."""

    def __init__(self, kind: ErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(message or f"Upload batch aborted: {kind.value}")

    @property
    def quota_exceeded(self) -> bool:
        return self.kind is ErrorKind.QUOTA_EXCEEDED

