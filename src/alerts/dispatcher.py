"""Notification dispatcher serializing alert delivery to the support channel.

Outbound payloads go through an in-memory queue drained by a single
consumer task with a fixed delay between items (downstream rate limits).
Payloads that cannot be delivered land in the bounded ``failedAlerts``
collection, which a periodic sweep retries. Delivery failures never
propagate to whoever enqueued the alert (graceful degradation).

Pattern: Orchestrator over a stateless NotificationChannel.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.alerts.channels import NotificationChannel
from src.alerts.schemas import Alert, AlertPayload, FailedDispatch
from src.observability.metrics import get_metrics
from src.storage.durable_store import (
    FAILED_ALERTS_KEY,
    DurableStore,
    QuotaExceededError,
)

logger = logging.getLogger(__name__)


class NotificationConfig(BaseSettings):
    """Configuration for notification dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    inter_item_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause after each delivery attempt while draining the queue",
    )
    failed_dispatch_cap: int = Field(
        default=50,
        ge=1,
        description="Most recent failed dispatches kept for retry",
    )
    retry_limit: int = Field(
        default=10,
        ge=1,
        description="Default number of failed dispatches attempted per sweep",
    )


class AlertDispatcher:
    """Queues and delivers alert payloads through one notification channel.

    Owns the write path of the ``failedAlerts`` collection.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        store: DurableStore,
        config: NotificationConfig | None = None,
    ) -> None:
        self._channel = channel
        self._store = store
        self._config = config or NotificationConfig()
        self._queue: deque[AlertPayload] = deque()
        self._processing = False
        self._task: asyncio.Task | None = None

    @property
    def queue_size(self) -> int:
        """Payloads waiting for delivery."""
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        return self._processing

    async def send_alert(self, alert: Alert | AlertPayload) -> bool:
        """Queue an alert for delivery and start draining if idle.

        Returns True once the payload is queued; delivery happens in a
        background task.
        """
        payload = alert.to_payload() if isinstance(alert, Alert) else alert
        self._queue.append(payload)

        if not self._processing and (self._task is None or self._task.done()):
            self._task = asyncio.create_task(
                self.process_queue(), name="alert-dispatch-queue",
            )
        return True

    async def drain(self) -> None:
        """Wait for the current queue consumer, if any, to finish."""
        if self._task is not None and not self._task.done():
            await self._task

    async def process_queue(self) -> int:
        """Deliver queued payloads one at a time until the queue is empty.

        Non-reentrant: returns immediately if another consumer is running.

        Returns:
            Number of payloads delivered successfully.
        """
        if self._processing or not self._queue:
            return 0

        self._processing = True
        delivered = 0
        try:
            while self._queue:
                payload = self._queue.popleft()
                ok, reason = await self._deliver(payload)
                if ok:
                    delivered += 1
                    logger.info("Alert %s delivered", payload.alert_id)
                else:
                    await self._store_failed(payload, reason or "unknown")
                await asyncio.sleep(self._config.inter_item_delay_seconds)
        finally:
            self._processing = False
        return delivered

    async def retry_failed_alerts(self, limit: int | None = None) -> int:
        """Re-attempt delivery of stored failed dispatches.

        At most ``limit`` entries are attempted, in stored order. Entries
        that succeed are removed; the rest keep their relative order.

        Args:
            limit: Maximum entries to attempt (defaults to config.retry_limit).

        Returns:
            Number of entries successfully resent.
        """
        limit = self._config.retry_limit if limit is None else limit
        entries = await self.get_failed_alerts()
        if not entries:
            return 0

        succeeded: set[str] = set()
        still_failing: dict[str, FailedDispatch] = {}
        for entry in entries[:limit]:
            ok, reason = await self._deliver(entry.payload, source="retry")
            if ok:
                succeeded.add(entry.dispatch_id)
            else:
                still_failing[entry.dispatch_id] = FailedDispatch(
                    payload=entry.payload,
                    failure_reason=reason or entry.failure_reason,
                    dispatch_id=entry.dispatch_id,
                )

        # Re-read under the lock so failures recorded during the sweep survive
        async with self._store.lock(FAILED_ALERTS_KEY):
            current = await self.get_failed_alerts()
            remaining = [
                still_failing.get(e.dispatch_id, e)
                for e in current
                if e.dispatch_id not in succeeded
            ]
            await self._write_failed(remaining)

        if succeeded:
            logger.info(
                "Resent %d of %d failed alerts (%d remaining)",
                len(succeeded), min(limit, len(entries)), len(remaining),
            )
        return len(succeeded)

    async def get_failed_alerts(self) -> list[FailedDispatch]:
        """Read the failed dispatch collection, skipping corrupt entries."""
        raw = await self._store.read(FAILED_ALERTS_KEY) or []
        if not isinstance(raw, list):
            logger.error("%s is not a list; corrupted data will be ignored", FAILED_ALERTS_KEY)
            return []

        entries = []
        for item in raw:
            try:
                entries.append(FailedDispatch.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error("Skipping corrupt entry in %s: %s", FAILED_ALERTS_KEY, e)
        return entries

    async def clear_failed_alerts(self) -> None:
        async with self._store.lock(FAILED_ALERTS_KEY):
            await self._store.delete(FAILED_ALERTS_KEY)
        get_metrics().failed_dispatch_size.set(0)

    async def _deliver(
        self,
        payload: AlertPayload,
        source: str = "queue",
    ) -> tuple[bool, str | None]:
        """Attempt one delivery; never raises."""
        try:
            ok = await self._channel.send(payload)
        except Exception as e:
            logger.warning(
                "Channel %s send error for alert %s: %s",
                self._channel.name, payload.alert_id, e,
            )
            get_metrics().record_delivery("failure", source)
            return False, str(e) or type(e).__name__

        get_metrics().record_delivery("success" if ok else "failure", source)
        if not ok:
            return False, f"{self._channel.name} channel rejected delivery"
        return True, None

    async def _store_failed(self, payload: AlertPayload, reason: str) -> None:
        """Append a failed payload, keeping only the most recent entries."""
        entry = FailedDispatch(
            payload=payload,
            failure_reason=reason,
            failure_time=datetime.now(timezone.utc),
        )
        try:
            async with self._store.lock(FAILED_ALERTS_KEY):
                entries = await self.get_failed_alerts()
                entries.append(entry)
                cap = self._config.failed_dispatch_cap
                if len(entries) > cap:
                    entries = entries[-cap:]
                await self._write_failed(entries)
        except Exception as e:
            logger.error("Failed to store failed alert %s: %s", payload.alert_id, e)

    async def _write_failed(self, entries: list[FailedDispatch]) -> None:
        data: list[dict[str, Any]] = [e.to_dict() for e in entries]
        try:
            await self._store.write(FAILED_ALERTS_KEY, data)
        except QuotaExceededError as e:
            get_metrics().record_write_failure(FAILED_ALERTS_KEY)
            logger.warning("Dropping failed-dispatch write: %s", e)
            return
        get_metrics().failed_dispatch_size.set(len(entries))
