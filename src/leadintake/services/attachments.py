"""Attachment processing for incoming enquiries."""

import logging
from dataclasses import dataclass, field
from typing import Sequence

from leadintake.models.lead import LeadSubmission
from leadintake.storage.base import StorageBackend
from leadintake.uploads.enquiry import merge
from leadintake.uploads.models import FileSubmission
from leadintake.uploads.orchestrator import UploadOrchestrator
from leadintake.uploads.quota import QuotaTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedEnquiry:
    """Final enquiry text and the links that were merged into it."""

    text: str
    links: list[str] = field(default_factory=list)


class AttachmentService:
    """Uploads an enquiry's attachments and folds their links into its text."""

    def __init__(self, backend: StorageBackend, orchestrator: UploadOrchestrator | None = None):
        self.backend = backend
        self.quota_tracker = QuotaTracker(backend)
        self.orchestrator = orchestrator or UploadOrchestrator(backend)

    async def process(
        self, lead: LeadSubmission, submissions: Sequence[FileSubmission]
    ) -> ProcessedEnquiry:
        """Process attachments for this enquiry.

        Raises:
            BackendUnavailable: If the quota cannot be read; nothing is uploaded
            UploadBatchError: If the batch was aborted and rolled back
        """
        if not submissions:
            return ProcessedEnquiry(text=lead.enquiry)

        quota = await self.quota_tracker.fetch()
        links = await self.orchestrator.run(submissions, quota, lead.upload_tags())

        logger.info(
            "Attachments processed",
            extra={"lead": lead.lead_id, "attachments": len(links)},
        )
        return ProcessedEnquiry(text=merge(lead.enquiry, links), links=links)

    async def aclose(self) -> None:
        await self.orchestrator.drain()
