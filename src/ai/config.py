"""Configuration for the AI completion client.

Provides Pydantic settings for provider API keys, model selection, request
timeouts and circuit breaker tuning. All settings can be overridden via
AI_* environment variables.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class CompletionConfig(BaseSettings):
    """Configuration for chat completions used by the agent.

    Example:
        AI_OPENAI_API_KEY=sk-...
        AI_ANTHROPIC_API_KEY=sk-ant-...
        AI_LLM_TIMEOUT=20
    """

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        description="Anthropic API key",
    )

    openai_model: str = Field(default="gpt-4o")
    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    max_tokens: int = Field(
        default=1024,
        ge=64,
        description="Completion length cap (Anthropic requires one)",
    )

    circuit_failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures before opening circuit",
    )
    circuit_recovery_timeout: float = Field(
        default=60.0,
        ge=5.0,
        description="Seconds before attempting recovery probe",
    )

    llm_timeout: float = Field(
        default=30.0,
        ge=5.0,
        le=120.0,
        description="Timeout in seconds for completion calls",
    )
