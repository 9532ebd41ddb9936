"""Postmark e-mail notification for accepted leads."""

import logging
from typing import Any, Dict

import httpx

from leadintake.core.config import settings
from leadintake.models.lead import LeadSubmission

logger = logging.getLogger(__name__)


def build_template_model(lead: LeadSubmission, enquiry: str) -> Dict[str, Any]:
    """Variables exposed to the Postmark template."""
    return {
        "lead": lead.lead_id,
        "email": lead.email,
        "mobile": lead.mobile,
        "firstName": lead.first_name,
        "lastName": lead.last_name,
        "enquiry": enquiry,
    }


async def send_lead_notification(lead: LeadSubmission, enquiry: str) -> None:
    """
    Send the templated lead e-mail (fire-and-forget).

    Runs as a background task after the response is sent. Errors are
    logged but don't propagate to the caller.

    Args:
        lead: Validated lead
        enquiry: Final enquiry text including attachment links
    """
    if not settings.notifications_enabled:
        logger.debug("Postmark not configured, skipping notification", extra={"lead": lead.lead_id})
        return

    payload = {
        "TemplateId": settings.POSTMARK_TEMPLATE_ID,
        "From": settings.POSTMARK_FROM,
        "To": lead.email,
        "TrackOpens": True,
        "TemplateModel": build_template_model(lead, enquiry),
    }
    headers = {
        "Accept": "application/json",
        "X-Postmark-Server-Token": settings.POSTMARK_SERVER_TOKEN,
    }

    try:
        async with httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT) as client:
            response = await client.post(
                f"{settings.POSTMARK_API_URL}/email/withTemplate",
                json=payload,
                headers=headers,
            )
            response.raise_for_status()
            result = response.json()

        logger.info(
            "Lead notification sent",
            extra={
                "lead": lead.lead_id,
                "message_id": result.get("MessageID"),
                "to": result.get("To"),
                "submitted_at": result.get("SubmittedAt"),
            },
        )

    except httpx.TimeoutException:
        logger.warning(
            "Lead notification timeout",
            extra={"lead": lead.lead_id, "timeout": settings.NOTIFY_TIMEOUT},
        )

    except httpx.HTTPError as e:
        logger.error(
            "Lead notification failed",
            extra={
                "lead": lead.lead_id,
                "error": str(e),
                "status_code": getattr(e.response, "status_code", None) if hasattr(e, "response") else None,
            },
        )
