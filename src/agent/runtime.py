"""Agent runtime wiring every component around one durable store.

The host application builds one ``AgentRuntime`` and passes it to whatever
needs the agent; there are no module-level singletons, so tests can run
isolated runtimes side by side.

Usage:
    runtime = await AgentRuntime.create(channel=WebhookChannel(url))
    stop = runtime.start()
    ...
    await runtime.monitoring.track_api_failure("/api/cases", 503, "upstream down")
    ...
    stop()
    await runtime.close()
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from src.agent.reviewer import AlertReviewer
from src.agent.scheduler import AgentScheduler
from src.ai.completion import CompletionClient, LLMCompletionClient
from src.alerts.channels import LogChannel, NotificationChannel, WebhookChannel
from src.alerts.config import AgentConfig
from src.alerts.dispatcher import AlertDispatcher, NotificationConfig
from src.alerts.monitoring import MonitoringService
from src.alerts.repository import AlertStore
from src.config.settings import Settings, get_settings
from src.memory.agent import LearningAgent
from src.memory.schemas import AgentMemory
from src.memory.service import AgentMemoryService, MemoryConfig
from src.storage.durable_store import DurableStore, create_store

logger = logging.getLogger(__name__)


def default_channel(settings: Settings | None = None) -> NotificationChannel:
    """Webhook channel when an endpoint is configured, else log-only."""
    settings = settings or get_settings()
    if settings.webhook_configured:
        return WebhookChannel(
            settings.alert_webhook_url,
            timeout=settings.alert_webhook_timeout,
        )
    logger.warning("No alert webhook configured; alerts will only be logged")
    return LogChannel()


@dataclass
class AgentRuntime:
    """All agent components sharing one store and one configuration."""

    config: AgentConfig
    store: DurableStore
    completion: CompletionClient
    dispatcher: AlertDispatcher
    alerts: AlertStore
    memory: AgentMemoryService
    reviewer: AlertReviewer
    scheduler: AgentScheduler
    monitoring: MonitoringService
    agent: LearningAgent

    @classmethod
    async def create(
        cls,
        config: AgentConfig | None = None,
        store: DurableStore | None = None,
        channel: NotificationChannel | None = None,
        completion: CompletionClient | None = None,
        notification_config: NotificationConfig | None = None,
        memory_config: MemoryConfig | None = None,
        learn_from_reviews: bool = True,
    ) -> "AgentRuntime":
        """Build a runtime and load persisted memory.

        Args:
            config: Agent configuration (defaults from ``AGENT_*`` env vars).
            store: Durable store (defaults to the backend in settings).
            channel: Notification channel for alert delivery.
            completion: AI completion client.
            notification_config: Dispatcher tuning.
            memory_config: Preference learning tuning.
            learn_from_reviews: Feed review replies through learnings extraction.
        """
        config = config or AgentConfig()
        store = store or create_store()
        completion = completion or LLMCompletionClient()
        channel = channel or default_channel()

        dispatcher = AlertDispatcher(channel, store, notification_config)
        alerts = AlertStore(
            store,
            dispatcher=dispatcher,
            max_stored_alerts=config.max_stored_alerts,
        )
        memory = AgentMemoryService(store, memory_config)
        await memory.load()
        reviewer = AlertReviewer(
            alerts,
            completion,
            config,
            memory=memory if learn_from_reviews else None,
        )
        scheduler = AgentScheduler(reviewer, dispatcher, config)

        return cls(
            config=config,
            store=store,
            completion=completion,
            dispatcher=dispatcher,
            alerts=alerts,
            memory=memory,
            reviewer=reviewer,
            scheduler=scheduler,
            monitoring=MonitoringService(alerts),
            agent=LearningAgent(completion, memory),
        )

    def start(self, config: AgentConfig | None = None) -> Callable[[], None]:
        """Start background review and retry cycles; returns ``stop``."""
        return self.scheduler.start(config or self.config)

    def stop(self) -> None:
        self.scheduler.stop()

    def get_memory(self) -> AgentMemory:
        return self.memory.get_memory()

    async def reset_memory(self) -> AgentMemory:
        return await self.memory.reset()

    async def update_consents(self, **consents: bool) -> AgentMemory:
        return await self.memory.update_consents(**consents)

    async def close(self) -> None:
        """Stop timers, wait for in-flight work, and release clients."""
        self.scheduler.stop()
        await self.scheduler.wait_idle()
        await self.dispatcher.drain()
        await self.completion.close()
        await self.store.close()
