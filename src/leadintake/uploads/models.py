"""Data models for attachment upload batches."""

from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Dict, Optional, Union

from leadintake.exceptions import ErrorKind


@dataclass(frozen=True)
class QuotaSnapshot:
    """Storage usage and limit captured once at the start of a batch."""

    limit: Optional[int]  # None = unlimited
    used: int

    def is_exhausted_by(self, projected_usage: int) -> bool:
        """Whether a projected usage reaches the limit.

        Reaching the limit exactly counts as exhausted.
        """
        if self.limit is None:
            return False
        return projected_usage >= self.limit


@dataclass(frozen=True)
class UploadTags:
    """Lead metadata attached to every uploaded object."""

    lead: str
    email: str
    first_name: str
    last_name: str
    mobile: str = ""

    def as_metadata(self) -> Dict[str, str]:
        """Key/value pairs as stored on the remote object."""
        return {
            "lead": self.lead,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "mobile": self.mobile,
        }


@dataclass(frozen=True)
class FileSubmission:
    """One attachment of an enquiry, in its original list position."""

    index: int
    name: str
    size: int
    opener: Callable[[], BinaryIO] = field(repr=False, compare=False)
    content_type: str = "application/octet-stream"

    def open(self) -> BinaryIO:
        """Open the attachment content stream."""
        return self.opener()


@dataclass(frozen=True)
class Uploaded:
    """Outcome of a successful upload."""

    index: int
    id: str
    download_link: str


@dataclass(frozen=True)
class Failed:
    """Outcome of a failed upload."""

    index: int
    reason: ErrorKind


UploadOutcome = Union[Uploaded, Failed]


@dataclass
class BatchResult:
    """Outcomes collected by the orchestrator for one batch."""

    succeeded: list[Uploaded] = field(default_factory=list)
    failed: list[Failed] = field(default_factory=list)
    aborted: bool = False
    error_kind: Optional[ErrorKind] = None

    def record(self, outcome: UploadOutcome) -> None:
        if isinstance(outcome, Uploaded):
            self.succeeded.append(outcome)
        else:
            self.failed.append(outcome)

    @property
    def links(self) -> list[str]:
        """Download links in input order."""
        return [upload.download_link for upload in sorted(self.succeeded, key=lambda u: u.index)]
