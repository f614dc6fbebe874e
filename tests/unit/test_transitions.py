"""
Unit tests for score / due-date transitions.

Run: pytest tests/unit/test_transitions.py -v
"""

from datetime import timedelta

import pytest

from spacing.engine import transitions
from spacing.engine.errors import InvalidDecisionError
from spacing.engine.models import AssociationState, Decision


class TestBackoff:
    """Test the exponential backoff law."""

    @pytest.mark.parametrize("score", range(0, 12))
    def test_right_due_after_base_pow_new_score(self, score, now):
        """A card moving to score s+1 is due 5**(s+1) seconds later."""
        state = transitions.right(score, now)
        assert state.score == score + 1
        assert state.due_at == now + timedelta(seconds=5 ** (score + 1))
        assert state.first_time is False

    def test_right_on_unseen_card(self, now):
        """Unset counts as -1, so the first RIGHT lands on score 0."""
        state = transitions.right(None, now)
        assert state == AssociationState(score=0, due_at=now + timedelta(seconds=1), first_time=False)

    def test_custom_base(self, now):
        state = transitions.right(1, now, base=2)
        assert state.due_at == now + timedelta(seconds=4)

    def test_huge_score_saturates(self, now):
        state = transitions.right(60, now)
        assert state.score == 61
        assert state.due_at == transitions.MAX_DUE

    def test_negative_score_never_goes_below_zero(self, now):
        assert transitions.right(-5, now).score == 0


class TestDecisions:
    """Test WRONG, SKIP and the dispatcher."""

    @pytest.mark.parametrize("score", [None, 0, 3, 9])
    def test_wrong_resets(self, score, now):
        state = transitions.transition(Decision.WRONG, score, now)
        assert state == AssociationState(score=0, due_at=now + timedelta(seconds=1), first_time=False)

    @pytest.mark.parametrize("score", [None, 0, 4])
    def test_skip_returns_to_unseen(self, score, now):
        assert transitions.transition(Decision.SKIP, score, now) == AssociationState()

    def test_skip_is_idempotent(self, now):
        once = transitions.transition("SKIP", 2, now)
        twice = transitions.transition("SKIP", once.score, now)
        assert once == twice

    def test_decision_parsing_is_case_insensitive(self, now):
        assert transitions.transition("right", 1, now).score == 2

    def test_invalid_decision(self, now):
        with pytest.raises(InvalidDecisionError):
            transitions.transition("MAYBE", 1, now)

    def test_invalid_decision_is_value_error(self, now):
        with pytest.raises(ValueError):
            transitions.transition("", 1, now)

    def test_effective_score(self):
        assert transitions.effective_score(None) == -1
        assert transitions.effective_score(3) == 3
