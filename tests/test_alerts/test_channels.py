"""Tests for notification channels."""

import json

import httpx
import pytest
import respx

from src.alerts.channels import DeliveryError, LogChannel, WebhookChannel
from src.alerts.schemas import AlertPayload

WEBHOOK_URL = "https://support.example.com/alerts"


@pytest.fixture
def payload() -> AlertPayload:
    return AlertPayload(
        alert_id="alert-001",
        alert_type="API Failure",
        severity="critical",
        message="API call failed: /api/cases (Status: 503) - upstream down",
        details={"url": "https://app.example.com/cases"},
    )


class TestWebhookChannel:
    @respx.mock
    async def test_successful_send(self, payload):
        route = respx.post(WEBHOOK_URL).mock(
            return_value=httpx.Response(200, json={"success": True})
        )
        channel = WebhookChannel(WEBHOOK_URL, headers={"X-Source": "docket"})

        assert await channel.send(payload) is True

        request = route.calls.last.request
        assert request.headers["X-Source"] == "docket"
        body = json.loads(request.content)
        assert body["alert_id"] == "alert-001"
        assert body["severity"] == "critical"
        assert body["details"]["url"] == "https://app.example.com/cases"

    @respx.mock
    async def test_empty_body_counts_as_success(self, payload):
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(204))
        assert await WebhookChannel(WEBHOOK_URL).send(payload) is True

    @respx.mock
    async def test_server_error_returns_false(self, payload):
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(500))
        assert await WebhookChannel(WEBHOOK_URL).send(payload) is False

    @respx.mock
    async def test_timeout_returns_false(self, payload):
        respx.post(WEBHOOK_URL).mock(side_effect=httpx.ReadTimeout("timed out"))
        assert await WebhookChannel(WEBHOOK_URL, timeout=1.0).send(payload) is False

    @respx.mock
    async def test_connection_error_returns_false(self, payload):
        respx.post(WEBHOOK_URL).mock(side_effect=httpx.ConnectError("refused"))
        assert await WebhookChannel(WEBHOOK_URL).send(payload) is False

    @respx.mock
    async def test_reported_failure_raises_with_reason(self, payload):
        respx.post(WEBHOOK_URL).mock(
            return_value=httpx.Response(200, json={"success": False, "error": "Rate limit exceeded"})
        )
        with pytest.raises(DeliveryError, match="Rate limit exceeded"):
            await WebhookChannel(WEBHOOK_URL).send(payload)

    @respx.mock
    async def test_reported_failure_without_reason(self, payload):
        respx.post(WEBHOOK_URL).mock(
            return_value=httpx.Response(200, json={"success": False})
        )
        with pytest.raises(DeliveryError, match="Unknown notification service error"):
            await WebhookChannel(WEBHOOK_URL).send(payload)

    def test_name(self):
        assert WebhookChannel(WEBHOOK_URL).name == "webhook"


class TestLogChannel:
    async def test_logs_and_succeeds(self, payload, caplog):
        channel = LogChannel()
        with caplog.at_level("ERROR"):
            assert await channel.send(payload) is True
        assert "SYSTEM ALERT [critical] API Failure" in caplog.text
        assert channel.name == "log"
