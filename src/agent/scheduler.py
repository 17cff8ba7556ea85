"""Periodic scheduling of review cycles and failed-dispatch retry sweeps.

Two independent timers run as asyncio tasks. Every tick spawns the actual
work as a separate task, so ``stop()`` only prevents future cycles: work
already in flight runs to completion. Overlapping review cycles are
prevented by the reviewer's own guard.

Lifecycle:
    1. ``start(config)``: run one review and one sweep now, arm both timers
    2. ``stop()``: cancel both timers (idempotent, safe before start)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from src.agent.reviewer import AlertReviewer
from src.alerts.config import AgentConfig
from src.alerts.dispatcher import AlertDispatcher
from src.observability.logging import bound_context

logger = logging.getLogger(__name__)


class AgentScheduler:
    """Owns the review and retry timers for one agent runtime."""

    def __init__(
        self,
        reviewer: AlertReviewer,
        dispatcher: AlertDispatcher,
        config: AgentConfig | None = None,
    ) -> None:
        self._reviewer = reviewer
        self._dispatcher = dispatcher
        self._config = config or AgentConfig()
        self._review_timer: asyncio.Task | None = None
        self._retry_timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._review_timer is not None or self._retry_timer is not None

    @property
    def inflight(self) -> int:
        """Review cycles and sweeps currently executing."""
        return len(self._inflight)

    def start(self, config: AgentConfig | None = None) -> Callable[[], None]:
        """Start both timers; a no-op if already running.

        Must be called from inside a running event loop.

        Args:
            config: Overrides the scheduler's configuration for this run.

        Returns:
            The ``stop`` callable.
        """
        if self.is_running:
            logger.debug("Agent scheduler already running")
            return self.stop

        config = config or self._config
        self._config = config

        self._spawn(self._review_cycle(config), "agent-review")
        self._spawn(self._retry_sweep(config), "agent-retry")

        self._review_timer = asyncio.create_task(
            self._every(config.review_interval_seconds, lambda: self._review_cycle(config), "agent-review"),
            name="agent-review-timer",
        )
        self._retry_timer = asyncio.create_task(
            self._every(config.retry_interval_seconds, lambda: self._retry_sweep(config), "agent-retry"),
            name="agent-retry-timer",
        )
        logger.info(
            "Agent scheduler started (review every %.0fs, retry every %.0fs, provider=%s)",
            config.review_interval_seconds,
            config.retry_interval_seconds,
            config.ai_provider,
        )
        return self.stop

    def stop(self) -> None:
        """Cancel both timers. In-flight cycles are left to finish."""
        stopped = False
        if self._review_timer is not None:
            self._review_timer.cancel()
            self._review_timer = None
            stopped = True
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None
            stopped = True
        if stopped:
            logger.info("Agent scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for all in-flight cycles and sweeps to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _every(
        self,
        interval: float,
        factory: Callable[[], Awaitable[None]],
        name: str,
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(factory(), name)

    def _spawn(self, coro: Awaitable[None], name: str) -> None:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _review_cycle(self, config: AgentConfig) -> None:
        with bound_context(job="review"):
            try:
                await self._reviewer.review_alerts(config)
            except Exception:
                logger.exception("Background review cycle failed")

    async def _retry_sweep(self, config: AgentConfig) -> None:
        with bound_context(job="retry"):
            try:
                await self._dispatcher.retry_failed_alerts(config.retry_sweep_limit)
            except Exception:
                logger.exception("Failed-dispatch retry sweep failed")
