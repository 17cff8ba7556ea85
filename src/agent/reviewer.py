"""Bounded-batch AI review of stored alerts.

Each cycle reads the alert collection, picks the alerts whose review is
missing or due for a retry, asks the configured AI provider for a
diagnosis, and writes the outcomes back in a single merge. Only one cycle
runs at a time; an overlapping call is skipped, not queued.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from src.agent.backoff import DEFAULT_RETRY_WINDOW, RetryWindow
from src.agent.prompts import REVIEW_SYSTEM_PROMPT, REVIEW_USER_PROMPT
from src.ai.completion import ChatMessage, CompletionClient
from src.alerts.config import AgentConfig
from src.alerts.repository import AlertStore
from src.alerts.schemas import AIReview, Alert
from src.observability.logging import bound_context
from src.observability.metrics import get_metrics

if TYPE_CHECKING:
    from src.memory.service import AgentMemoryService

logger = logging.getLogger(__name__)

AGENT_USER_IDENTIFIER = "ai-background-agent"


def should_retry_review(
    review: AIReview | None,
    now: datetime | None = None,
    window: RetryWindow = DEFAULT_RETRY_WINDOW,
) -> bool:
    """Decide whether an alert is eligible for a (re)review.

    Completed reviews are terminal. Pending or failed reviews become
    eligible again once the retry window has elapsed since the last
    attempt; a review without a recorded attempt is eligible immediately.
    """
    if review is None:
        return True
    if review.is_completed:
        return False
    if review.last_attempt is None:
        return True
    now = now or datetime.now(timezone.utc)
    return now - review.last_attempt > window.for_attempts(review.attempts)


def build_review_messages(alert: Alert) -> list[ChatMessage]:
    """Build the fixed diagnostic request for one alert."""
    details = alert.details
    return [
        ChatMessage(role="system", content=REVIEW_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=REVIEW_USER_PROMPT.format(
                title=alert.title,
                severity=alert.severity,
                message=alert.message,
                url=details.get("url") or "unknown",
                user_agent=details.get("user_agent") or "unknown",
                stack_trace=details.get("stack_trace") or "none",
            ),
        ),
    ]


@dataclass
class ReviewCycleResult:
    """Summary of one review cycle."""

    skipped: bool = False
    eligible: int = 0
    completed: int = 0
    failed: int = 0
    persisted: bool = False

    @property
    def reviewed(self) -> int:
        return self.completed + self.failed


class AlertReviewer:
    """Runs AI review cycles over the alert collection.

    Owns the ``ai_review`` field of every alert. When a memory service is
    supplied, review responses also pass through learnings extraction and
    only the cleaned text is stored.
    """

    def __init__(
        self,
        alert_store: AlertStore,
        completion: CompletionClient,
        config: AgentConfig | None = None,
        memory: "AgentMemoryService | None" = None,
    ) -> None:
        self._alert_store = alert_store
        self._completion = completion
        self._config = config or AgentConfig()
        self._memory = memory
        self._guard = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._guard.locked()

    async def review_alerts(self, config: AgentConfig | None = None) -> ReviewCycleResult:
        """Run one review cycle unless another is already in progress."""
        if self._guard.locked():
            logger.info("Review cycle already in progress; skipping")
            get_metrics().review_cycles_skipped.inc()
            return ReviewCycleResult(skipped=True)

        config = config or self._config
        async with self._guard:
            with bound_context(cycle_id=uuid.uuid4().hex[:8], provider=config.ai_provider):
                return await self._run_cycle(config)

    async def _run_cycle(self, config: AgentConfig) -> ReviewCycleResult:
        window = RetryWindow.from_minutes(
            config.review_retry_window_minutes,
            multiplier=config.review_retry_multiplier,
            max_minutes=config.review_retry_max_minutes,
        )
        now = datetime.now(timezone.utc)

        alerts = await self._alert_store.read_alerts()
        eligible = [a for a in alerts if should_retry_review(a.ai_review, now, window)]
        result = ReviewCycleResult(eligible=len(eligible))
        if not eligible:
            return result

        eligible.sort(key=lambda a: a.created_at)
        batch = eligible[: config.max_alerts_per_review]

        for alert in batch:
            with bound_context(alert_id=alert.id):
                ok = await self._review_one(alert, config.ai_provider)
            if ok:
                result.completed += 1
            else:
                result.failed += 1

        result.persisted = await self._alert_store.apply_review_updates(batch)
        logger.info(
            "Review cycle finished: %d eligible, %d completed, %d failed",
            result.eligible, result.completed, result.failed,
        )
        return result

    async def _review_one(self, alert: Alert, provider: str) -> bool:
        """Review a single alert in place. Returns True on success."""
        attempts = (alert.ai_review.attempts if alert.ai_review else 0) + 1
        alert.ai_review = AIReview(
            status="pending",
            last_attempt=datetime.now(timezone.utc),
            attempts=attempts,
        )

        try:
            response = await self._completion.complete(
                provider, build_review_messages(alert), AGENT_USER_IDENTIFIER,
            )
        except Exception as e:
            logger.warning("AI review of alert %s raised: %s", alert.id, e)
            alert.ai_review = AIReview(
                status="failed",
                last_attempt=datetime.now(timezone.utc),
                error=str(e) or type(e).__name__,
                attempts=attempts,
            )
            get_metrics().record_review("failed")
            return False

        if not response.ok:
            logger.warning(
                "AI review of alert %s failed: %s", alert.id, response.error_kind,
            )
            alert.ai_review = AIReview(
                status="failed",
                provider=response.provider_label,
                last_attempt=datetime.now(timezone.utc),
                error=response.error_message or response.error_kind,
                attempts=attempts,
            )
            get_metrics().record_review("failed")
            return False

        summary = response.text
        if self._memory is not None:
            summary, _ = await self._memory.absorb_response(response.text)

        alert.ai_review = AIReview(
            status="completed",
            provider=response.provider_label,
            summary=summary,
            last_attempt=datetime.now(timezone.utc),
            attempts=attempts,
        )
        alert.add_note(f"[AI Review] {summary}", author=AGENT_USER_IDENTIFIER)
        get_metrics().record_review("completed")
        return True
