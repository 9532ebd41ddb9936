"""
Attachment uploads

Uploads the files of one enquiry concurrently against a storage quota and
rolls the whole batch back when any file cannot be stored.
"""

from leadintake.uploads.enquiry import merge
from leadintake.uploads.models import (
    BatchResult,
    Failed,
    FileSubmission,
    QuotaSnapshot,
    Uploaded,
    UploadTags,
)
from leadintake.uploads.orchestrator import UploadOrchestrator
from leadintake.uploads.quota import QuotaTracker
from leadintake.uploads.worker import UploadWorker

__all__ = [
    "BatchResult",
    "Failed",
    "FileSubmission",
    "QuotaSnapshot",
    "QuotaTracker",
    "Uploaded",
    "UploadOrchestrator",
    "UploadTags",
    "UploadWorker",
    "merge",
]
