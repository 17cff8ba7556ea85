"""Preference memory for the in-app agent.

Components:
- AgentMemory / Persona / Shortcut / Consents: Persisted memory models
- LearningsCandidate / ObservedPreference: Per-reply learnings block
- extract_learnings / clean_response: Trailing-block parsing and stripping
- AgentMemoryService / MemoryConfig: Consent-gated merge and persistence
- LearningAgent / AgentReply: Memory-aware conversation turn
"""

from src.memory.agent import AgentReply, LearningAgent
from src.memory.extractor import LEARNINGS_MARKER, clean_response, extract_learnings
from src.memory.schemas import (
    AgentMemory,
    Consents,
    LearningsCandidate,
    ObservedPreference,
    Persona,
    Shortcut,
    default_memory,
)
from src.memory.service import AgentMemoryService, MemoryConfig

__all__ = [
    "LEARNINGS_MARKER",
    "AgentMemory",
    "AgentMemoryService",
    "AgentReply",
    "Consents",
    "LearningAgent",
    "LearningsCandidate",
    "MemoryConfig",
    "ObservedPreference",
    "Persona",
    "Shortcut",
    "clean_response",
    "default_memory",
    "extract_learnings",
]
