"""Alert capture, storage and delivery for the background agent.

Components:
- Alert / AIReview / AlertNote: Dataclasses for the alert collection
- AlertPayload / FailedDispatch: Delivery payloads and failed deliveries
- AgentConfig: Pydantic settings for cadences, batching and retry windows
- AlertStore: Whole-collection persistence with quota-aware pruning
- AlertDispatcher / NotificationConfig: Serialized delivery and retry sweeps
- NotificationChannel / WebhookChannel / LogChannel: Delivery channels
- MonitoringService: Builds alerts from runtime events
"""

from src.alerts.channels import (
    DeliveryError,
    LogChannel,
    NotificationChannel,
    WebhookChannel,
)
from src.alerts.config import AgentConfig, AIProvider
from src.alerts.dispatcher import AlertDispatcher, NotificationConfig
from src.alerts.monitoring import MonitoringService
from src.alerts.repository import AlertStore
from src.alerts.schemas import (
    VALID_SEVERITIES,
    VALID_STATUSES,
    AIReview,
    Alert,
    AlertNote,
    AlertPayload,
    AlertSeverity,
    FailedDispatch,
)

__all__ = [
    "AIProvider",
    "AIReview",
    "AgentConfig",
    "Alert",
    "AlertDispatcher",
    "AlertNote",
    "AlertPayload",
    "AlertSeverity",
    "AlertStore",
    "DeliveryError",
    "FailedDispatch",
    "LogChannel",
    "MonitoringService",
    "NotificationChannel",
    "NotificationConfig",
    "VALID_SEVERITIES",
    "VALID_STATUSES",
    "WebhookChannel",
]
