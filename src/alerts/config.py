"""Background agent configuration.

Controls review and retry cadences, review batch size, the AI backend used
for diagnostics, and the retry window for failed reviews. All settings can
be overridden via ``AGENT_*`` environment variables.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

AIProvider = Literal["openai", "anthropic"]


class AgentConfig(BaseSettings):
    """Configuration for the alert-triage agent."""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Scheduler cadences
    alert_review_interval_ms: int = Field(
        default=5 * 60 * 1000,
        ge=1,
        description="Milliseconds between AI review cycles",
    )
    failed_alert_retry_interval_ms: int = Field(
        default=60 * 1000,
        ge=1,
        description="Milliseconds between failed-dispatch retry sweeps",
    )

    # Review batching
    max_alerts_per_review: int = Field(
        default=3,
        ge=1,
        description="Maximum alerts reviewed in a single cycle",
    )
    ai_provider: AIProvider = Field(
        default="openai",
        description="AI backend used for diagnostic reviews",
    )

    # Review retry window
    review_retry_window_minutes: float = Field(
        default=10.0,
        gt=0.0,
        description="Minutes a pending/failed review waits before it is eligible again",
    )
    review_retry_multiplier: float = Field(
        default=1.0,
        ge=1.0,
        description="Window growth per prior attempt (1.0 = flat window)",
    )
    review_retry_max_minutes: float = Field(
        default=240.0,
        gt=0.0,
        description="Upper bound on the grown retry window",
    )

    # Retry sweep
    retry_sweep_limit: int = Field(
        default=10,
        ge=1,
        description="Failed dispatches attempted per retry sweep",
    )

    # Alert collection
    max_stored_alerts: int = Field(
        default=100,
        ge=1,
        description="Most recent alerts kept in the alert collection",
    )

    @property
    def review_interval_seconds(self) -> float:
        return self.alert_review_interval_ms / 1000.0

    @property
    def retry_interval_seconds(self) -> float:
        return self.failed_alert_retry_interval_ms / 1000.0
