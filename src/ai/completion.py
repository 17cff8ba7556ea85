"""Chat completion abstraction over interchangeable AI providers.

The agent only depends on ``CompletionClient.complete``. The bundled
``LLMCompletionClient`` talks to OpenAI and Anthropic with lazy SDK
initialization and a circuit breaker per provider. Provider failures are
reported in the result (``error_kind``) instead of raised, so callers can
record them without exception handling around every call.

SDK imports are deferred to method calls (lazy loading) to avoid import-time
failures when API keys are not configured.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel

from src.ai.circuit_breaker import CircuitBreaker, CircuitOpenError
from src.ai.config import CompletionConfig

logger = logging.getLogger(__name__)

ErrorKind = Literal["rate_limited", "unavailable", "unknown"]

PROVIDER_LABELS: dict[str, str] = {
    "openai": "GPT-4",
    "anthropic": "Claude",
}

FALLBACK_MESSAGES: dict[str, str] = {
    "rate_limited": (
        "The AI assistant is temporarily handling a high volume of requests. "
        "Please wait a moment and try again."
    ),
    "unavailable": "The AI service did not respond in time. Please retry in a few moments.",
    "unknown": "The AI service is having difficulties responding right now. Please try again shortly.",
}


class ChatMessage(BaseModel):
    """One message of a chat-style completion request."""

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class CompletionResult:
    """Outcome of one completion call.

    On failure ``text`` holds a user-presentable fallback message and
    ``error_kind``/``error_message`` describe the failure.
    """

    text: str
    provider_label: str
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


@dataclass
class ServiceStatus:
    """Availability snapshot from the most recent completion call."""

    available: bool = True
    provider: str = PROVIDER_LABELS["openai"]
    message: str = "Status pending - service not queried yet"
    last_checked: datetime | None = field(default=None)


def classify_error(error: BaseException) -> ErrorKind:
    """Map a provider exception onto the coarse error taxonomy."""
    if isinstance(error, CircuitOpenError):
        return "unavailable"
    text = str(error).lower()
    name = type(error).__name__.lower()
    if "rate limit" in text or "429" in text or "ratelimit" in name:
        return "rate_limited"
    if "timeout" in text or "timed out" in text or "timeout" in name:
        return "unavailable"
    return "unknown"


class CompletionClient(ABC):
    """Interface for chat completions used by the agent."""

    @abstractmethod
    async def complete(
        self,
        provider: str,
        messages: list[ChatMessage],
        user_identifier: str | None = None,
    ) -> CompletionResult:
        """Run one completion. Implementations should not raise for provider errors."""

    async def close(self) -> None:
        """Release SDK clients."""


class LLMCompletionClient(CompletionClient):
    """Completion client for OpenAI and Anthropic.

    Features:
    - Lazy SDK initialization (import on first use)
    - Per-provider circuit breakers
    - Error classification into rate_limited / unavailable / unknown
    - Last-call availability snapshot via ``status``

    Args:
        config: Completion configuration with API keys and model names.
    """

    def __init__(self, config: CompletionConfig | None = None) -> None:
        self._config = config or CompletionConfig()
        self._openai_client: Any = None
        self._anthropic_client: Any = None
        self._breakers = {
            name: CircuitBreaker(
                failure_threshold=self._config.circuit_failure_threshold,
                recovery_timeout=self._config.circuit_recovery_timeout,
                name=name,
            )
            for name in PROVIDER_LABELS
        }
        self._status = ServiceStatus()

    @property
    def status(self) -> ServiceStatus:
        return self._status

    def breaker(self, provider: str) -> CircuitBreaker:
        return self._breakers[provider]

    def _get_openai_client(self) -> Any:
        """Lazy-initialize OpenAI async client."""
        if self._openai_client is None:
            import openai

            api_key = self._config.openai_api_key
            key_str = api_key.get_secret_value() if api_key else None
            self._openai_client = openai.AsyncOpenAI(
                api_key=key_str,
                timeout=self._config.llm_timeout,
            )
        return self._openai_client

    def _get_anthropic_client(self) -> Any:
        """Lazy-initialize Anthropic async client."""
        if self._anthropic_client is None:
            import anthropic

            api_key = self._config.anthropic_api_key
            key_str = api_key.get_secret_value() if api_key else None
            self._anthropic_client = anthropic.AsyncAnthropic(
                api_key=key_str,
                timeout=self._config.llm_timeout,
            )
        return self._anthropic_client

    async def complete(
        self,
        provider: str,
        messages: list[ChatMessage],
        user_identifier: str | None = None,
    ) -> CompletionResult:
        label = PROVIDER_LABELS.get(provider, provider)
        try:
            if provider == "openai":
                text = await self._breakers[provider].call(
                    self._call_openai, messages, user_identifier,
                )
            elif provider == "anthropic":
                text = await self._breakers[provider].call(
                    self._call_anthropic, messages, user_identifier,
                )
            else:
                raise ValueError(f"Unknown AI provider {provider!r}")
        except Exception as e:
            kind = classify_error(e)
            logger.error("Completion via %s failed (%s): %s", provider, kind, e)
            self._status = ServiceStatus(
                available=False,
                provider=label,
                message=(
                    "Temporarily rate limited"
                    if kind == "rate_limited"
                    else "Service interruption detected"
                ),
                last_checked=datetime.now(timezone.utc),
            )
            return CompletionResult(
                text=FALLBACK_MESSAGES[kind],
                provider_label=label,
                error_kind=kind,
                error_message=str(e) or type(e).__name__,
            )

        self._status = ServiceStatus(
            available=True,
            provider=label,
            message="Operational",
            last_checked=datetime.now(timezone.utc),
        )
        return CompletionResult(text=text, provider_label=label)

    async def _call_openai(
        self,
        messages: list[ChatMessage],
        user_identifier: str | None,
    ) -> str:
        client = self._get_openai_client()
        kwargs: dict[str, Any] = {}
        if user_identifier:
            kwargs["user"] = user_identifier
        response = await client.chat.completions.create(
            model=self._config.openai_model,
            messages=[m.model_dump() for m in messages],
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def _call_anthropic(
        self,
        messages: list[ChatMessage],
        user_identifier: str | None,
    ) -> str:
        client = self._get_anthropic_client()
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        kwargs: dict[str, Any] = {}
        if system:
            kwargs["system"] = system
        if user_identifier:
            kwargs["metadata"] = {"user_id": user_identifier}
        response = await client.messages.create(
            model=self._config.anthropic_model,
            max_tokens=self._config.max_tokens,
            messages=[m.model_dump() for m in messages if m.role != "system"],
            **kwargs,
        )
        return "".join(
            block.text for block in response.content if block.type == "text"
        )

    async def close(self) -> None:
        """Clean up SDK clients."""
        if self._openai_client is not None:
            await self._openai_client.close()
            self._openai_client = None
        if self._anthropic_client is not None:
            await self._anthropic_client.close()
            self._anthropic_client = None
