"""Persistent, consent-gated agent memory.

``AgentMemoryService`` owns every write to the ``agent_memory`` key. It
merges learnings extracted from AI replies under two filters: nothing is
stored while ``consents.remember_preferences`` is off, and observed
preferences must claim a durability of at least ``durability_threshold_days``.
Turning consent off wipes the learned state immediately.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.memory.extractor import clean_response, extract_learnings
from src.memory.schemas import (
    HISTORY_DIGEST_LIMIT,
    AgentMemory,
    Consents,
    LearningsCandidate,
    Persona,
    default_memory,
)
from src.observability.metrics import get_metrics
from src.storage.durable_store import MEMORY_KEY, DurableStore, QuotaExceededError

logger = logging.getLogger(__name__)


class MemoryConfig(BaseSettings):
    """Configuration for preference learning. Overridable via ``MEMORY_*``."""

    model_config = SettingsConfigDict(
        env_prefix="MEMORY_",
        case_sensitive=False,
        extra="ignore",
    )

    durability_threshold_days: float = Field(
        default=30.0,
        ge=0.0,
        description="Minimum claimed durability before a preference is stored",
    )
    history_digest_limit: int = Field(
        default=HISTORY_DIGEST_LIMIT,
        ge=1,
        description="Most recent correction digests kept",
    )


def _as_default_value(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


class AgentMemoryService:
    """Loads, merges and persists ``AgentMemory``.

    Usage:
        memory = AgentMemoryService(store)
        await memory.load()
        text, learnings = await memory.absorb_response(reply_text)
    """

    def __init__(
        self,
        store: DurableStore,
        config: MemoryConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or MemoryConfig()
        self._memory = default_memory()

    async def load(self) -> AgentMemory:
        """Load persisted memory, falling back to defaults on absent or bad data."""
        try:
            raw = await self._store.read(MEMORY_KEY)
        except Exception as e:
            logger.error("Failed to load agent memory: %s", e)
            raw = None

        if isinstance(raw, dict):
            merged = {**default_memory().model_dump(), **raw}
            try:
                self._memory = AgentMemory.model_validate(merged)
            except ValidationError as e:
                logger.error("Stored agent memory is invalid, using defaults: %s", e)
                self._memory = default_memory()
        return self.get_memory()

    def get_memory(self) -> AgentMemory:
        """Read-only snapshot of the current memory."""
        return self._memory.model_copy(deep=True)

    def format_memory_for_prompt(self) -> str:
        """Render memory for injection into a system prompt."""
        return f"MEMORY = {self._memory.model_dump_json(indent=2)}"

    async def update_from_learnings(self, learnings: LearningsCandidate) -> bool:
        """Merge accepted signals into memory and persist.

        Returns:
            False if memory consent is off (nothing changed), else True.
        """
        async with self._store.lock(MEMORY_KEY):
            if not self._memory.consents.remember_preferences:
                get_metrics().memory_merges.labels(outcome="consent_denied").inc()
                return False

            self._apply_preferences(learnings)
            self._apply_repeated_tasks(learnings)

            if learnings.corrections:
                today = datetime.now(timezone.utc).date().isoformat()
                self._memory.history_digest.append(
                    f"{today}: {'; '.join(learnings.corrections)}"
                )
            limit = self._config.history_digest_limit
            if len(self._memory.history_digest) > limit:
                self._memory.history_digest = self._memory.history_digest[-limit:]

            await self._save()

        get_metrics().memory_merges.labels(outcome="applied").inc()
        return True

    def _apply_preferences(self, learnings: LearningsCandidate) -> None:
        for pref in learnings.observed_preferences:
            if pref.durability_days < self._config.durability_threshold_days:
                continue

            # Only the first dot splits; "defaults.a.b" stores "a.b"
            namespace, _, name = pref.key.partition(".")
            if not name:
                continue
            if namespace == "defaults":
                self._memory.defaults[name] = _as_default_value(pref.value)
            elif namespace == "persona":
                if name not in Persona.model_fields:
                    continue
                try:
                    setattr(self._memory.persona, name, pref.value)
                except ValidationError:
                    logger.warning("Ignoring invalid persona value for %s", name)

    def _apply_repeated_tasks(self, learnings: LearningsCandidate) -> None:
        for task in learnings.repeated_tasks:
            existing = self._memory.find_shortcut(task.name)
            if existing is None:
                self._memory.shortcuts.append(task.model_copy(deep=True))
            else:
                existing.merge(task)

    async def update_consents(self, **consents: bool) -> AgentMemory:
        """Merge consent flags; opting out of memory wipes learned state."""
        async with self._store.lock(MEMORY_KEY):
            merged = Consents.model_validate(
                {**self._memory.consents.model_dump(), **consents}
            )
            if not merged.remember_preferences:
                logger.info("Memory consent withdrawn; resetting agent memory")
                self._memory = default_memory()
            self._memory.consents = merged
            await self._save()
        return self.get_memory()

    async def reset(self) -> AgentMemory:
        """Restore the default memory. Current consent choices are kept."""
        async with self._store.lock(MEMORY_KEY):
            consents = self._memory.consents
            self._memory = default_memory()
            self._memory.consents = consents
            await self._save()
        return self.get_memory()

    async def absorb_response(
        self,
        response: str,
    ) -> tuple[str, LearningsCandidate | None]:
        """Merge any learnings in an AI reply and return the display text.

        A failed merge is logged; the cleaned text is returned regardless.
        """
        learnings = extract_learnings(response)
        if learnings is not None:
            try:
                await self.update_from_learnings(learnings)
            except Exception:
                logger.exception("Failed to merge learnings into agent memory")
        return clean_response(response), learnings

    async def _save(self) -> bool:
        self._memory.last_updated_iso = datetime.now(timezone.utc).isoformat()
        try:
            await self._store.write(MEMORY_KEY, self._memory.model_dump(mode="json"))
            return True
        except QuotaExceededError as e:
            get_metrics().record_write_failure(MEMORY_KEY)
            logger.error("Failed to save agent memory: %s", e)
            return False
