"""
Mark/apply bridge: single grading decisions applied straight to storage.

Used by stateless callers (an HTTP endpoint, the CLI) that commit one
RIGHT/WRONG/SKIP at a time instead of running an in-memory session.
The arithmetic is the same `transitions` module the SessionScheduler uses.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger

from . import transitions
from .models import (
    AssociationState,
    AssociationStore,
    Decision,
    SessionCard,
    as_utc,
    utcnow,
)
from .session import SessionScheduler
from .transitions import BACKOFF_BASE


def apply_decision(
    store: AssociationStore,
    association_id: str,
    decision: Decision | str,
    now: datetime | None = None,
    backoff_base: int = BACKOFF_BASE,
) -> str | None:
    """
    Grade one association directly against the store.

    Args:
        store: Association store
        association_id: Association to grade
        decision: RIGHT, WRONG or SKIP
        now: Reference time (defaults to current UTC time)
        backoff_base: Base of the exponential review delay

    Returns:
        Owning deck id, or None if the association no longer exists
    """
    decision = Decision.parse(decision)
    now = as_utc(now) or utcnow()

    current = store.get_association(association_id)
    if current is None:
        logger.info(f"Association {association_id} not found, nothing to mark")
        return None

    state = transitions.transition(decision, current.score, now, backoff_base)
    deck_id = store.update_association(association_id, state)

    if deck_id is not None:
        logger.debug(f"Marked {association_id} {decision.value} in deck {deck_id}")
    return deck_id


def parse_due_at(value: datetime | str | None) -> datetime | None:
    """Parse a snapshot due date; malformed strings become None."""
    if value is None or isinstance(value, datetime):
        return as_utc(value)
    text = value.strip()
    if not text:
        return None
    try:
        # fromisoformat rejects the trailing Z before Python 3.11
        return as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        logger.warning(f"Malformed due date {value!r} in snapshot, treating as unscheduled")
        return None


def restore_association(
    store: AssociationStore,
    association_id: str,
    score: int | None,
    due_at: datetime | str | None,
    first_time: bool,
) -> str | None:
    """
    Undo: write a previously captured snapshot back onto an association.

    This is a plain write-through; no scheduling is computed.

    Returns:
        Owning deck id, or None if the association no longer exists
    """
    if score is not None and score < 0:
        score = None

    state = AssociationState(score=score, due_at=parse_due_at(due_at), first_time=first_time)
    deck_id = store.update_association(association_id, state)

    if deck_id is None:
        logger.info(f"Association {association_id} not found, nothing to restore")
    else:
        logger.debug(f"Restored {association_id} to {state}")
    return deck_id


def grade_in_session(
    scheduler: SessionScheduler,
    card_id: str,
    decision: Decision | str,
    store: AssociationStore | None = None,
    now: datetime | None = None,
) -> SessionCard | None:
    """
    Grade a card of a live session, optionally persisting it first.

    When a store is given the write happens before the in-memory card is
    touched, so a failed write leaves the session unchanged. If the
    association was deleted meanwhile the card is dropped from the session.

    Returns:
        The updated card, or None if the card is unknown or gone
    """
    decision = Decision.parse(decision)
    now = as_utc(now) or utcnow()

    card = scheduler.card(card_id)
    if card is None:
        return None

    if store is not None:
        state = transitions.transition(decision, card.score, now, scheduler.backoff_base)
        if store.update_association(card_id, state) is None:
            logger.info(f"Association {card_id} vanished mid-session, dropping card")
            scheduler.forget(card_id)
            return None

    return scheduler.grade(card_id, decision, now)
