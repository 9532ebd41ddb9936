"""Tests for the Postmark lead notification."""

import json
from unittest.mock import patch

import httpx
import pytest

from leadintake.models.lead import LeadSubmission
from leadintake.services.notifier import send_lead_notification

REAL_ASYNC_CLIENT = httpx.AsyncClient


@pytest.fixture
def lead():
    return LeadSubmission(
        email="jane@example.com",
        mobile="+61400000000",
        firstName="Jane",
        lastName="Doe",
        enquiry="Hello",
    )


@pytest.fixture
def postmark_settings(monkeypatch):
    from leadintake.core.config import settings

    monkeypatch.setattr(settings, "POSTMARK_SERVER_TOKEN", "server-token")
    monkeypatch.setattr(settings, "POSTMARK_TEMPLATE_ID", 1234)
    monkeypatch.setattr(settings, "POSTMARK_API_URL", "https://postmark.test")


def _mock_client(handler):
    def factory(**kwargs):
        return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler), **kwargs)

    return patch("leadintake.services.notifier.httpx.AsyncClient", side_effect=factory)


@pytest.mark.asyncio
async def test_sends_templated_email(lead, postmark_settings):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"MessageID": "m-1", "To": "jane@example.com"})

    with _mock_client(handler):
        await send_lead_notification(lead, "Hello\nAttached files:\n- http://a")

    assert len(requests) == 1
    request = requests[0]
    assert request.url == "https://postmark.test/email/withTemplate"
    assert request.headers["X-Postmark-Server-Token"] == "server-token"
    body = json.loads(request.content)
    assert body["TemplateId"] == 1234
    assert body["To"] == "jane@example.com"
    assert body["TemplateModel"]["lead"] == lead.lead_id
    assert body["TemplateModel"]["enquiry"].endswith("- http://a")


@pytest.mark.asyncio
async def test_postmark_errors_are_not_raised(lead, postmark_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"ErrorCode": 300, "Message": "Invalid email"})

    with _mock_client(handler):
        await send_lead_notification(lead, "Hello")


@pytest.mark.asyncio
async def test_skipped_when_not_configured(lead, monkeypatch):
    from leadintake.core.config import settings

    monkeypatch.setattr(settings, "POSTMARK_SERVER_TOKEN", "")

    with patch("leadintake.services.notifier.httpx.AsyncClient") as mock_client:
        await send_lead_notification(lead, "Hello")

    mock_client.assert_not_called()
