"""Alert store for the ``system_alerts`` collection.

The collection is one JSON list rewritten as a whole. Writes are
serialized through the durable store's per-key lock; storage quota
exhaustion is handled locally with a single prune-and-retry, so callers
never see a storage exception.
"""

import asyncio
import logging
from typing import Any

from src.alerts.schemas import AIReview, Alert
from src.observability.metrics import get_metrics
from src.storage.durable_store import ALERTS_KEY, DurableStore, QuotaExceededError

logger = logging.getLogger(__name__)


class AlertStore:
    """Repository for the alert collection.

    Provides enqueue, whole-collection read/write, and the merge used by
    the reviewer to write back a batch of reviewed alerts.
    """

    def __init__(
        self,
        store: DurableStore,
        dispatcher: Any | None = None,
        max_stored_alerts: int = 100,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._max_stored_alerts = max_stored_alerts
        self._dispatch_tasks: set[asyncio.Task] = set()

    async def enqueue_alert(self, alert: Alert) -> Alert:
        """Append an alert to the collection and hand it to the dispatcher.

        Never rejects: persistence problems are logged, and delivery runs in
        a background task.

        Args:
            alert: Alert to capture.

        Returns:
            The captured alert.
        """
        async with self._store.lock(ALERTS_KEY):
            alerts = await self.read_alerts()
            alerts.append(alert)
            if len(alerts) > self._max_stored_alerts:
                alerts = alerts[-self._max_stored_alerts:]
            await self.write_alerts(alerts)

        get_metrics().record_enqueue(alert.severity)

        if self._dispatcher is not None:
            task = asyncio.create_task(
                self._dispatch(alert), name=f"dispatch-{alert.id}",
            )
            self._dispatch_tasks.add(task)
            task.add_done_callback(self._dispatch_tasks.discard)
        return alert

    async def _dispatch(self, alert: Alert) -> None:
        try:
            await self._dispatcher.send_alert(alert)
        except Exception as e:
            logger.error("Failed to queue alert %s for delivery: %s", alert.id, e)

    async def read_alerts(self) -> list[Alert]:
        """Read the full collection.

        A record that fails to parse is logged and skipped so the rest of
        the collection survives; only a collection that is not a list reads
        as empty.
        """
        raw = await self._store.read(ALERTS_KEY) or []
        if not isinstance(raw, list):
            logger.error("Stored alerts are not a list (%s), ignoring", type(raw).__name__)
            return []

        alerts = []
        for item in raw:
            try:
                alerts.append(Alert.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error("Skipping unreadable stored alert %r: %s", _record_id(item), e)
        return alerts

    async def get_by_id(self, alert_id: str) -> Alert | None:
        for alert in await self.read_alerts():
            if alert.id == alert_id:
                return alert
        return None

    async def write_alerts(self, alerts: list[Alert]) -> bool:
        """Persist the full collection.

        On quota exhaustion, drops the single oldest alert (by
        ``created_at``) and retries exactly once. A second failure abandons
        the write.

        Args:
            alerts: Complete collection to persist.

        Returns:
            True if the collection (possibly pruned) was written.
        """
        try:
            await self._store.write(ALERTS_KEY, [a.to_dict() for a in alerts])
            return True
        except QuotaExceededError as e:
            logger.warning("Alert write exceeded storage quota, pruning oldest: %s", e)

        pruned = sorted(alerts, key=lambda a: a.created_at)[1:]
        try:
            await self._store.write(ALERTS_KEY, [a.to_dict() for a in pruned])
            return True
        except QuotaExceededError as e:
            get_metrics().record_write_failure(ALERTS_KEY)
            logger.error(
                "Alert write abandoned after pruning (%d alerts): %s",
                len(pruned), e,
            )
            return False

    async def apply_review_updates(self, reviewed: list[Alert]) -> bool:
        """Merge reviewed alerts into the current collection in one write.

        Re-reads under the collection lock so alerts captured while the
        review was in flight are kept. Alerts removed meanwhile are
        skipped, and an already-completed review is never replaced.

        Args:
            reviewed: Alerts whose ``ai_review``/notes were updated.

        Returns:
            True if the merged collection was written.
        """
        if not reviewed:
            return True

        by_id = {a.id: a for a in reviewed}
        async with self._store.lock(ALERTS_KEY):
            current = await self.read_alerts()
            for stored in current:
                update = by_id.get(stored.id)
                if update is None:
                    continue
                if stored.ai_review is not None and stored.ai_review.is_completed:
                    continue
                _merge_review(stored, update)
            return await self.write_alerts(current)


def _merge_review(stored: Alert, update: Alert) -> None:
    """Copy reviewer-owned fields from ``update`` onto ``stored``."""
    stored.ai_review = (
        AIReview.from_dict(update.ai_review.to_dict()) if update.ai_review else None
    )
    known = {(n.text, n.timestamp) for n in stored.notes}
    for note in update.notes:
        if (note.text, note.timestamp) not in known:
            stored.notes.append(note)
    if update.updated_at > stored.updated_at:
        stored.updated_at = update.updated_at


def _record_id(item: Any) -> Any:
    return item.get("id") if isinstance(item, dict) else item
