"""Data models for the agent's preference memory.

``AgentMemory`` is the durable, consent-gated state persisted under the
``agent_memory`` key. ``LearningsCandidate`` is the structured block the
model appends to a reply; it is validated here and never stored as-is.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Tone = Literal["concise", "verbose", "balanced"]

HISTORY_DIGEST_LIMIT = 10


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class Persona(BaseModel):
    """How the agent talks to this user."""

    model_config = ConfigDict(validate_assignment=True)

    tone: Tone = "balanced"
    prefers_no_filler: bool = False
    confirmation_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class Shortcut(BaseModel):
    """A named, repeatable task template.

    ``trigger_phrases`` has set semantics: duplicates are dropped while
    first-seen order is kept.
    """

    name: str
    trigger_phrases: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)

    @field_validator("trigger_phrases")
    @classmethod
    def _unique_phrases(cls, v: list[str]) -> list[str]:
        return _dedupe(v)

    def merge(self, other: "Shortcut") -> None:
        """Adopt ``other``'s steps and union its trigger phrases."""
        self.trigger_phrases = _dedupe(self.trigger_phrases + other.trigger_phrases)
        self.steps = list(other.steps)


class Consents(BaseModel):
    """User opt-ins. Extra boolean consents are kept as-is."""

    model_config = ConfigDict(extra="allow")

    remember_preferences: bool = True
    store_emails: bool = False


class AgentMemory(BaseModel):
    """Cross-session preference state for one user scope."""

    persona: Persona = Field(default_factory=Persona)
    defaults: dict[str, str] = Field(default_factory=lambda: {"export_format": "PDF"})
    shortcuts: list[Shortcut] = Field(default_factory=list)
    avoid: list[str] = Field(default_factory=list)
    blacklist: list[str] = Field(default_factory=list)
    consents: Consents = Field(default_factory=Consents)
    history_digest: list[str] = Field(default_factory=list)
    last_updated_iso: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def find_shortcut(self, name: str) -> Shortcut | None:
        for shortcut in self.shortcuts:
            if shortcut.name == name:
                return shortcut
        return None


def default_memory() -> AgentMemory:
    """The documented default memory value."""
    return AgentMemory()


class ObservedPreference(BaseModel):
    """A preference signal keyed by ``<namespace>.<name>``."""

    key: str
    value: str | bool | int | float
    durability_days: float = Field(default=0, ge=0)


class LearningsCandidate(BaseModel):
    """Structured learnings extracted from one AI reply."""

    observed_preferences: list[ObservedPreference] = Field(default_factory=list)
    corrections: list[str] = Field(default_factory=list)
    repeated_tasks: list[Shortcut] = Field(default_factory=list)
    failures_and_fixes: list[str] = Field(default_factory=list)
    suggestions_to_lock_in: list[str] = Field(default_factory=list)
    redact_notes: list[str] = Field(default_factory=list)

    @field_validator(
        "observed_preferences",
        "corrections",
        "repeated_tasks",
        "failures_and_fixes",
        "suggestions_to_lock_in",
        "redact_notes",
        mode="before",
    )
    @classmethod
    def _null_as_empty(cls, v):
        return [] if v is None else v

    @property
    def is_empty(self) -> bool:
        return not (
            self.observed_preferences
            or self.corrections
            or self.repeated_tasks
        )
