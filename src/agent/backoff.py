"""
Retry window for alert reviews that are pending or failed.

The window is flat by default (10 minutes between attempts). A multiplier
above 1.0 grows it per prior attempt, capped at ``max_window``:

    window = min(base * multiplier^(attempts - 1), max_window)
"""

from datetime import timedelta


class RetryWindow:
    """
    Minimum elapsed time before a review may be attempted again.

    Usage:
        window = RetryWindow(base=timedelta(minutes=10))
        if now - last_attempt > window.for_attempts(review.attempts):
            ...
    """

    def __init__(
        self,
        base: timedelta = timedelta(minutes=10),
        multiplier: float = 1.0,
        max_window: timedelta = timedelta(hours=4),
    ):
        self.base = base
        self.multiplier = multiplier
        self.max_window = max(max_window, base)

    @classmethod
    def from_minutes(
        cls,
        base_minutes: float,
        multiplier: float = 1.0,
        max_minutes: float = 240.0,
    ) -> "RetryWindow":
        return cls(
            base=timedelta(minutes=base_minutes),
            multiplier=multiplier,
            max_window=timedelta(minutes=max_minutes),
        )

    def for_attempts(self, attempts: int) -> timedelta:
        """Window that applies after ``attempts`` prior attempts."""
        if self.multiplier == 1.0 or attempts <= 1:
            return self.base
        grown = self.base * (self.multiplier ** (attempts - 1))
        return min(grown, self.max_window)


DEFAULT_RETRY_WINDOW = RetryWindow()
