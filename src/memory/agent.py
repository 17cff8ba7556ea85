"""Memory-aware conversational agent.

Wraps a completion call with the agent system prompt and the current
memory, merges whatever the model learned, and returns only the cleaned
reply text to the caller.
"""

import logging
from dataclasses import dataclass

from src.ai.completion import ChatMessage, CompletionClient, ErrorKind
from src.memory.prompts import AGENT_SYSTEM_PROMPT
from src.memory.schemas import LearningsCandidate
from src.memory.service import AgentMemoryService

logger = logging.getLogger(__name__)


@dataclass
class AgentReply:
    """Reply shown to the user, plus what was learned from it."""

    response: str
    provider: str
    error_kind: ErrorKind | None = None
    learnings: LearningsCandidate | None = None


class LearningAgent:
    """Foreground agent conversation that feeds the preference memory."""

    def __init__(
        self,
        completion: CompletionClient,
        memory: AgentMemoryService,
    ) -> None:
        self._completion = completion
        self._memory = memory

    def _system_message(self, user_identifier: str) -> ChatMessage:
        return ChatMessage(
            role="system",
            content=(
                f"{AGENT_SYSTEM_PROMPT}\n\n"
                f"{self._memory.format_memory_for_prompt()}\n\n"
                f"User: {user_identifier}"
            ),
        )

    async def send_message(
        self,
        history: list[ChatMessage],
        provider: str = "openai",
        user_identifier: str = "anonymous",
    ) -> AgentReply:
        """Send a conversation turn and learn from the reply.

        Args:
            history: Conversation so far, oldest first, without a system prompt.
            provider: AI backend to use.
            user_identifier: Opaque user id forwarded to the provider.

        Returns:
            AgentReply with the learnings block stripped from ``response``.
        """
        messages = [self._system_message(user_identifier), *history]
        result = await self._completion.complete(provider, messages, user_identifier)

        if not result.ok:
            return AgentReply(
                response=result.text,
                provider=result.provider_label,
                error_kind=result.error_kind,
            )

        text, learnings = await self._memory.absorb_response(result.text)
        if learnings is not None:
            logger.debug(
                "Learnings from %s: %d preferences, %d corrections, %d tasks",
                result.provider_label,
                len(learnings.observed_preferences),
                len(learnings.corrections),
                len(learnings.repeated_tasks),
            )
        return AgentReply(
            response=text,
            provider=result.provider_label,
            learnings=learnings,
        )
