"""Circuit breaker guarding calls to an AI provider.

After ``failure_threshold`` consecutive provider errors the breaker opens
and rejects calls without touching the network until ``recovery_timeout``
has elapsed; one probe call is then let through.

Usage:
    breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60.0, name="openai")
    try:
        text = await breaker.call(client.complete, messages)
    except CircuitOpenError:
        # provider considered unavailable
"""

import enum
import logging
import time
from typing import Any, Callable, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(enum.Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""


class CircuitBreaker:
    """Wraps async provider calls with CLOSED → OPEN → HALF_OPEN → CLOSED.

    Args:
        failure_threshold: Consecutive failures before opening circuit.
        recovery_timeout: Seconds before attempting a recovery probe.
        name: Provider name for logging.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        name: str = "provider",
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._name = name
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: float = 0.0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0

    async def call(
        self,
        fn: Callable[..., Coroutine[Any, Any, T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run ``fn`` unless the circuit is open.

        Raises:
            CircuitOpenError: If the circuit is open and the recovery
                timeout has not elapsed.
        """
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._opened_at < self._recovery_timeout:
                raise CircuitOpenError(f"Circuit breaker {self._name} is OPEN")
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker %s: OPEN → HALF_OPEN", self._name)

        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        if self._state == CircuitState.HALF_OPEN:
            logger.info("Circuit breaker %s: HALF_OPEN → CLOSED", self._name)
        self.reset()
        return result

    def _on_failure(self) -> None:
        self._consecutive_failures += 1

        if self._state == CircuitState.HALF_OPEN:
            self._trip()
            logger.warning("Circuit breaker %s: probe failed, reopening", self._name)
        elif self._consecutive_failures >= self._failure_threshold:
            self._trip()
            logger.warning(
                "Circuit breaker %s: opened after %d failures",
                self._name, self._consecutive_failures,
            )

    def _trip(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = time.monotonic()
