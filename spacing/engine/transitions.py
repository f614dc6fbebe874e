"""
Score / due-date / first-time transitions.

Shared by the in-memory SessionScheduler and the single-decision
mark/apply bridge so both produce identical state for the same input.

Backoff: a card at score s is due again base**s seconds after grading.
With the default base of 5 that is 1s, 5s, 25s, 125s, ...
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from loguru import logger

from .models import AssociationState, Decision

BACKOFF_BASE = 5
UNSET_SCORE = -1

# Latest representable due date; very high scores saturate here.
MAX_DUE = datetime.max.replace(tzinfo=timezone.utc)


def effective_score(score: int | None) -> int:
    """Score with unset mapped to -1."""
    return UNSET_SCORE if score is None else score


def next_due_from_score(score: int, now: datetime, base: int = BACKOFF_BASE) -> datetime:
    """Due date for a card that just reached `score`."""
    try:
        return now + timedelta(seconds=base ** max(0, score))
    except OverflowError:
        return MAX_DUE


def right(score: int | None, now: datetime, base: int = BACKOFF_BASE) -> AssociationState:
    """Correct answer: score + 1 (unset counts as -1), backoff grows."""
    new_score = max(0, effective_score(score) + 1)
    return AssociationState(
        score=new_score,
        due_at=next_due_from_score(new_score, now, base),
        first_time=False,
    )


def wrong(now: datetime, base: int = BACKOFF_BASE) -> AssociationState:
    """Wrong answer: back to score 0, due again almost immediately."""
    return AssociationState(
        score=0,
        due_at=next_due_from_score(0, now, base),
        first_time=False,
    )


def skip() -> AssociationState:
    """Skip: the card returns to the unseen state."""
    return AssociationState(score=None, due_at=None, first_time=True)


def transition(
    decision: Decision | str,
    score: int | None,
    now: datetime,
    base: int = BACKOFF_BASE,
) -> AssociationState:
    """Apply one grading decision to a score."""
    decision = Decision.parse(decision)
    if decision is Decision.RIGHT:
        state = right(score, now, base)
    elif decision is Decision.WRONG:
        state = wrong(now, base)
    else:
        state = skip()

    logger.debug(
        f"{decision.value}: score {score} -> {state.score}, due_at={state.due_at}"
    )
    return state
