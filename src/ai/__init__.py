"""AI completion layer shared by the reviewer and the memory-aware agent.

Components:
- CompletionClient: Interface for chat completions
- LLMCompletionClient: OpenAI/Anthropic implementation with circuit breakers
- CompletionResult / ChatMessage / ServiceStatus: Request and result models
- CompletionConfig: Pydantic settings for keys, models and timeouts
- CircuitBreaker / CircuitOpenError: Per-provider failure isolation
"""

from src.ai.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState
from src.ai.completion import (
    PROVIDER_LABELS,
    ChatMessage,
    CompletionClient,
    CompletionResult,
    ErrorKind,
    LLMCompletionClient,
    ServiceStatus,
    classify_error,
)
from src.ai.config import CompletionConfig

__all__ = [
    "PROVIDER_LABELS",
    "ChatMessage",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CompletionClient",
    "CompletionConfig",
    "CompletionResult",
    "ErrorKind",
    "LLMCompletionClient",
    "ServiceStatus",
    "classify_error",
]
