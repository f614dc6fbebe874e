"""
Session scheduler: serves a SessionPlan one card at a time.

Cards are served due-first: the head of the due queue is taken when its
due time has passed (or it was never scheduled), otherwise the next pool
card is served. Graded cards are re-inserted into the due queue at their
new due time, so a wrong answer comes back about a second later.

The scheduler only mutates its own detached copies of the cards. Persisting
the results is the caller's job (see spacing.engine.marking).
"""

from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime

from loguru import logger

from . import transitions
from .models import (
    AssociationState,
    Decision,
    SessionCard,
    SessionPlan,
    SessionProgress,
    as_utc,
    utcnow,
)
from .transitions import BACKOFF_BASE


def _due_key(card: SessionCard) -> float:
    """Unscheduled cards sort as most overdue."""
    due_at = as_utc(card.due_at)
    return float("-inf") if due_at is None else due_at.timestamp()


class SessionScheduler:
    """
    Stateful, single-consumer iterator over a SessionPlan.

    Args:
        plan: Plan produced by the SelectionPlanner
        review_bias: Optional probability of serving an eligible due card
            ahead of the pool. None (default) always serves due cards first.
        seed: Seed for the review-bias draw
        rng: Explicit random source (overrides seed)
        backoff_base: Base of the exponential review delay
    """

    def __init__(
        self,
        plan: SessionPlan,
        review_bias: float | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
        backoff_base: int = BACKOFF_BASE,
    ):
        due_cards = [replace(card) for card in plan.due]
        pool_cards = [replace(card) for card in plan.pool]

        self._due: list[SessionCard] = sorted(due_cards, key=_due_key)
        self._pool: list[SessionCard] = pool_cards
        self._cards: dict[str, SessionCard] = {c.id: c for c in pool_cards + due_cards}

        self.review_bias = review_bias
        self.backoff_base = backoff_base
        self._rng = rng or random.Random(seed)

        self._seen = 0
        self._total = len(self._due) + len(self._pool)

    # =========================================================================
    # Serving
    # =========================================================================

    def next(self, now: datetime | None = None) -> SessionCard | None:
        """
        Return the next card to present, or None when the session is done.

        Cards with a blank response are skipped silently and not counted.
        """
        now = as_utc(now) or utcnow()

        while True:
            card = self._take(now)
            if card is None:
                return None

            if card.is_blank:
                logger.debug(f"Skipping blank card {card.id}")
                self.association_skip(card)
                continue

            self._seen += 1
            return card

    def _take(self, now: datetime) -> SessionCard | None:
        head_ready = bool(self._due) and _due_key(self._due[0]) <= now.timestamp()

        if head_ready and self._pool and self.review_bias is not None:
            if self._rng.random() >= self.review_bias:
                return self._pop_pool()

        if head_ready:
            card = self._due.pop(0)
            self._remove_from_pool(card.id)
            return card

        if self._pool:
            return self._pop_pool()

        return None

    def _pop_pool(self) -> SessionCard:
        card = self._pool.pop(0)
        self._drop_scheduled(card.id)
        return card

    # =========================================================================
    # Grading
    # =========================================================================

    def association_right(self, card: SessionCard, now: datetime | None = None) -> SessionCard:
        now = as_utc(now) or utcnow()
        state = transitions.right(card.score, now, self.backoff_base)
        self._reschedule(card, state)
        return card

    def association_wrong(self, card: SessionCard, now: datetime | None = None) -> SessionCard:
        now = as_utc(now) or utcnow()
        state = transitions.wrong(now, self.backoff_base)
        self._reschedule(card, state)
        return card

    def association_skip(self, card: SessionCard) -> SessionCard:
        """Return the card to the unseen state; it is not re-queued."""
        self._drop_scheduled(card.id)
        self._remove_from_pool(card.id)
        card.apply(transitions.skip())
        return card

    def grade(
        self,
        card_id: str,
        decision: Decision | str,
        now: datetime | None = None,
    ) -> SessionCard | None:
        """
        Grade a session card by id.

        Returns:
            The updated card, or None if the id is not part of this session
        """
        card = self._cards.get(card_id)
        if card is None:
            logger.debug(f"Card {card_id} is not in this session")
            return None

        decision = Decision.parse(decision)
        if decision is Decision.RIGHT:
            return self.association_right(card, now)
        if decision is Decision.WRONG:
            return self.association_wrong(card, now)
        return self.association_skip(card)

    def _reschedule(self, card: SessionCard, state: AssociationState) -> None:
        self._drop_scheduled(card.id)
        self._remove_from_pool(card.id)
        card.apply(state)
        self._cards.setdefault(card.id, card)
        self._insert_scheduled(card)

    # =========================================================================
    # Queue maintenance
    # =========================================================================

    def _insert_scheduled(self, card: SessionCard) -> None:
        # Linear scan; per-session queues are small
        target = _due_key(card)
        index = 0
        while index < len(self._due) and target >= _due_key(self._due[index]):
            index += 1
        self._due.insert(index, card)

    def _drop_scheduled(self, card_id: str) -> None:
        self._due = [c for c in self._due if c.id != card_id]

    def _remove_from_pool(self, card_id: str) -> None:
        self._pool = [c for c in self._pool if c.id != card_id]

    def forget(self, card_id: str) -> None:
        """Remove a card from the session entirely (e.g. deleted upstream)."""
        self._drop_scheduled(card_id)
        self._remove_from_pool(card_id)
        self._cards.pop(card_id, None)

    # =========================================================================
    # Introspection
    # =========================================================================

    def card(self, card_id: str) -> SessionCard | None:
        return self._cards.get(card_id)

    def remaining(self) -> int:
        return len(self._due) + len(self._pool)

    def progress(self) -> SessionProgress:
        return SessionProgress(seen=self._seen, total=self._total)

    @property
    def due_ids(self) -> list[str]:
        return [c.id for c in self._due]

    @property
    def pool_ids(self) -> list[str]:
        return [c.id for c in self._pool]
