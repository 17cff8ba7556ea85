"""Background alert-triage agent.

Components:
- AlertReviewer: Bounded-batch AI review with an overlap guard
- should_retry_review / RetryWindow: Review retry eligibility
- AgentScheduler: Review and retry timers with idempotent start/stop
- AgentRuntime: Explicit wiring of store, dispatcher, reviewer and memory
"""

from src.agent.backoff import RetryWindow
from src.agent.reviewer import (
    AGENT_USER_IDENTIFIER,
    AlertReviewer,
    ReviewCycleResult,
    build_review_messages,
    should_retry_review,
)
from src.agent.runtime import AgentRuntime, default_channel
from src.agent.scheduler import AgentScheduler

__all__ = [
    "AGENT_USER_IDENTIFIER",
    "AgentRuntime",
    "AgentScheduler",
    "AlertReviewer",
    "RetryWindow",
    "ReviewCycleResult",
    "build_review_messages",
    "default_channel",
    "should_retry_review",
]
