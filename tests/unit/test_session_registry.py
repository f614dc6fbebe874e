"""
Unit tests for the live session registry.

Run: pytest tests/unit/test_session_registry.py -v
"""

from spacing.api.session_registry import SessionRegistry
from spacing.engine.models import SessionPlan
from spacing.engine.session import SessionScheduler


class FakeClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


class TestSessionRegistry:
    """Test create/get/close and idle expiry."""

    def test_create_and_get(self):
        registry = SessionRegistry()
        scheduler = SessionScheduler(SessionPlan())

        session_id = registry.create(scheduler, "deck-1")

        assert registry.get(session_id) is scheduler
        assert len(registry) == 1

    def test_handles_are_unique(self):
        registry = SessionRegistry()
        first = registry.create(SessionScheduler(SessionPlan()), "deck-1")
        second = registry.create(SessionScheduler(SessionPlan()), "deck-1")
        assert first != second

    def test_close(self):
        registry = SessionRegistry()
        session_id = registry.create(SessionScheduler(SessionPlan()), "deck-1")

        assert registry.close(session_id) is True
        assert registry.close(session_id) is False
        assert registry.get(session_id) is None

    def test_idle_sessions_expire(self):
        clock = FakeClock()
        registry = SessionRegistry(ttl_seconds=60, clock=clock)
        session_id = registry.create(SessionScheduler(SessionPlan()), "deck-1")

        clock.value += 61
        assert registry.get(session_id) is None
        assert len(registry) == 0

    def test_get_keeps_session_alive(self):
        clock = FakeClock()
        registry = SessionRegistry(ttl_seconds=60, clock=clock)
        session_id = registry.create(SessionScheduler(SessionPlan()), "deck-1")

        clock.value += 50
        assert registry.get(session_id) is not None
        clock.value += 50
        assert registry.get(session_id) is not None
