"""Notification channel implementations for alert delivery.

Provides an ABC for notification channels plus a webhook implementation
that POSTs the alert payload to a support endpoint, and a log-only channel
for deployments without a configured endpoint.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from src.alerts.schemas import AlertPayload

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised by a channel when the endpoint rejects a payload."""


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'webhook')."""

    @abstractmethod
    async def send(self, payload: AlertPayload) -> bool:
        """Deliver an alert payload through this channel.

        Args:
            payload: Payload to deliver.

        Returns:
            True if delivery succeeded, False otherwise.

        Raises:
            DeliveryError: When the endpoint reports a failure with a reason.
        """


class WebhookChannel(NotificationChannel):
    """Delivers alert payloads as JSON POST to an HTTP endpoint.

    The endpoint is expected to answer ``{"success": true}``; a 2xx reply
    with ``success: false`` is reported as a ``DeliveryError`` carrying the
    endpoint's error text.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "webhook"

    async def send(self, payload: AlertPayload) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._url,
                    json=payload.to_dict(),
                    headers=self._headers,
                )
        except httpx.TimeoutException:
            logger.warning(
                "Webhook %s timed out for alert %s",
                self._url, payload.alert_id,
            )
            return False
        except httpx.HTTPError as e:
            logger.warning(
                "Webhook %s failed for alert %s: %s",
                self._url, payload.alert_id, e,
            )
            return False

        if not resp.is_success:
            logger.warning(
                "Webhook %s returned %d for alert %s",
                self._url, resp.status_code, payload.alert_id,
            )
            return False

        try:
            body = resp.json()
        except ValueError:
            return True
        if isinstance(body, dict) and body.get("success") is False:
            raise DeliveryError(body.get("error") or "Unknown notification service error")
        return True


class LogChannel(NotificationChannel):
    """Writes alert payloads to the log instead of a remote endpoint."""

    @property
    def name(self) -> str:
        return "log"

    async def send(self, payload: AlertPayload) -> bool:
        logger.error(
            "SYSTEM ALERT [%s] %s: %s",
            payload.severity, payload.alert_type, payload.message,
        )
        return True
