"""Runtime event capture feeding the alert store.

Turns errors, slow operations and failed API calls observed by the host
application into ``Alert`` records. Capture never raises: the monitoring
path must not become a new source of failures.
"""

import logging
import traceback
from typing import Any

from src.alerts.repository import AlertStore
from src.alerts.schemas import Alert

logger = logging.getLogger(__name__)


class MonitoringService:
    """Builds alerts from runtime events and enqueues them.

    Args:
        alert_store: Destination collection.
        context: Static details merged into every alert (e.g. url, user_agent).
    """

    def __init__(
        self,
        alert_store: AlertStore,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._alert_store = alert_store
        self._context = dict(context or {})

    async def capture(
        self,
        alert_type: str,
        message: str,
        severity: str,
        stack_trace: str | None = None,
        user_id: str | None = None,
        **details: Any,
    ) -> Alert | None:
        """Enqueue one alert built from an observed event."""
        merged = {**self._context, **details}
        if stack_trace is not None:
            merged["stack_trace"] = stack_trace
        if user_id is not None:
            merged["user_id"] = user_id

        try:
            alert = Alert(
                type=alert_type,
                severity=severity,
                title=alert_type,
                message=message,
                details=merged,
            )
            return await self._alert_store.enqueue_alert(alert)
        except Exception as e:
            logger.error("Monitoring capture failed for %s: %s", alert_type, e)
            return None

    async def track_error(
        self,
        error: BaseException,
        context: str | None = None,
        user_id: str | None = None,
    ) -> Alert | None:
        prefix = f"[{context}] " if context else ""
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return await self.capture(
            "Application Error",
            f"{prefix}{error}",
            "high",
            stack_trace=stack,
            user_id=user_id,
        )

    async def track_performance(
        self,
        metric: str,
        value: float,
        threshold: float,
        user_id: str | None = None,
    ) -> Alert | None:
        """Alert when ``value`` (ms) exceeds ``threshold``; high above 2x."""
        if value <= threshold:
            return None
        severity = "high" if value > threshold * 2 else "medium"
        return await self.capture(
            "Performance Issue",
            f"{metric} exceeded threshold: {value}ms (threshold: {threshold}ms)",
            severity,
            user_id=user_id,
        )

    async def track_api_failure(
        self,
        endpoint: str,
        status: int,
        message: str,
        user_id: str | None = None,
    ) -> Alert | None:
        severity = "critical" if status >= 500 else "high"
        return await self.capture(
            "API Failure",
            f"API call failed: {endpoint} (Status: {status}) - {message}",
            severity,
            user_id=user_id,
        )
