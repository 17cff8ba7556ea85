"""Tests for the review retry window."""

from datetime import timedelta

from src.agent.backoff import DEFAULT_RETRY_WINDOW, RetryWindow


class TestRetryWindow:
    def test_default_is_flat_ten_minutes(self):
        for attempts in (0, 1, 2, 10):
            assert DEFAULT_RETRY_WINDOW.for_attempts(attempts) == timedelta(minutes=10)

    def test_multiplier_grows_window(self):
        window = RetryWindow.from_minutes(10, multiplier=2.0)
        assert window.for_attempts(1) == timedelta(minutes=10)
        assert window.for_attempts(2) == timedelta(minutes=20)
        assert window.for_attempts(3) == timedelta(minutes=40)

    def test_grown_window_is_capped(self):
        window = RetryWindow.from_minutes(10, multiplier=3.0, max_minutes=60)
        assert window.for_attempts(5) == timedelta(minutes=60)

    def test_cap_never_below_base(self):
        window = RetryWindow.from_minutes(30, multiplier=2.0, max_minutes=5)
        assert window.for_attempts(4) == timedelta(minutes=30)
