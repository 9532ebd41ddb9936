"""Lead capture API routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Request, UploadFile
from pydantic import ValidationError

from leadintake.api.rate_limit import limiter
from leadintake.core.config import settings
from leadintake.exceptions import BackendUnavailable, UploadBatchError
from leadintake.models.lead import LeadResponse, LeadSubmission, format_validation_errors
from leadintake.services.attachments import AttachmentService
from leadintake.services.notifier import send_lead_notification
from leadintake.storage.factory import get_storage_backend
from leadintake.uploads.models import FileSubmission
from leadintake.uploads.orchestrator import UploadOrchestrator

router = APIRouter(tags=["lead"])
logger = logging.getLogger(__name__)


def get_attachment_service(request: Request) -> AttachmentService:
    """Return the app-wide attachment service, creating it on first use."""
    service = getattr(request.app.state, "attachment_service", None)
    if service is None:
        try:
            backend = get_storage_backend()
        except ValueError as e:
            logger.error(f"Storage backend configuration error: {e}")
            raise HTTPException(status_code=500, detail="Storage configuration error")

        service = AttachmentService(
            backend,
            UploadOrchestrator(backend, timeout=settings.UPLOAD_TIMEOUT_SECONDS),
        )
        request.app.state.attachment_service = service
    return service


def _measure(upload: UploadFile) -> int:
    upload.file.seek(0, 2)  # Seek to end
    size_bytes = upload.file.tell()
    upload.file.seek(0)
    return size_bytes


def _to_submission(index: int, upload: UploadFile, size_bytes: int) -> FileSubmission:
    def opener():
        upload.file.seek(0)
        return upload.file

    return FileSubmission(
        index=index,
        name=upload.filename or "unnamed",
        size=size_bytes,
        content_type=upload.content_type or "application/octet-stream",
        opener=opener,
    )


@router.post("/lead", response_model=LeadResponse)
@limiter.limit(settings.RATE_LIMIT)
async def create_lead(
    request: Request,
    background_tasks: BackgroundTasks,
    email: str = Form(""),
    mobile: str = Form(""),
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    enquiry: str = Form(""),
    files: Optional[List[UploadFile]] = File(None),
    service: AttachmentService = Depends(get_attachment_service),
) -> LeadResponse:
    """Accept a lead, upload its attachments and queue the notification."""
    try:
        lead = LeadSubmission(
            email=email,
            mobile=mobile,
            firstName=first_name,
            lastName=last_name,
            enquiry=enquiry,
        )
    except ValidationError as e:
        logger.warning("Invalid lead submission", extra={"email": email, "errors": e.error_count()})
        raise HTTPException(status_code=400, detail=format_validation_errors(e))

    logger.debug("Lead received", extra={"lead": lead.lead_id, "email": lead.email})

    submissions = []
    for upload in files or []:
        # Browsers send an empty part when no file was picked
        if not upload.filename:
            continue
        size_bytes = _measure(upload)
        if size_bytes > settings.max_upload_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File {upload.filename} exceeds maximum allowed size of {settings.MAX_UPLOAD_MB}MB",
            )
        submissions.append(_to_submission(len(submissions), upload, size_bytes))

    try:
        processed = await service.process(lead, submissions)
    except BackendUnavailable as e:
        logger.error(f"Storage quota unavailable: {e}", extra={"lead": lead.lead_id})
        raise HTTPException(status_code=500, detail="Storage backend unavailable")
    except UploadBatchError as e:
        if e.quota_exceeded:
            raise HTTPException(status_code=507, detail="Storage quota reached")
        raise HTTPException(status_code=500, detail="Failed to upload")

    logger.info(
        "Lead processed",
        extra={"lead": lead.lead_id, "attachments": len(processed.links)},
    )

    background_tasks.add_task(send_lead_notification, lead, processed.text)

    return LeadResponse(
        lead_id=lead.lead_id,
        enquiry=processed.text,
        attachments=processed.links,
    )
