"""
Selection planner.

Builds a SessionPlan for a deck:
- Due cards (dueAt passed) come first, earliest first
- Not-yet-due and unscheduled cards form the pool, ordered by a weight
  centered on m_value so the session leans toward new material (m near 0)
  or well-known material (m high)

Planning is deterministic: no random source is consumed here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from .models import (
    AssociationRow,
    AssociationStore,
    Direction,
    SessionCard,
    SessionPlan,
    as_utc,
    utcnow,
)
from .transitions import effective_score

# =============================================================================
# Weighting
# =============================================================================


@dataclass
class PlannerConfig:
    """Configuration for pool weighting."""

    sigma: float = 1.2  # Width of the bell curve around m_value
    unseen_weight: float = 0.60  # Never-studied cards
    direction: Direction = Direction.AB  # Scheduling is per pair, one direction


def gaussian_weight(score: float, m_value: float, sigma: float) -> float:
    d = score - m_value
    return math.exp(-(d * d) / (2 * sigma * sigma))


def pool_weight(score: int | None, m_value: float, config: PlannerConfig | None = None) -> float:
    """Sampling weight of a pool card."""
    config = config or PlannerConfig()
    if score is None:
        return config.unseen_weight
    return gaussian_weight(score, m_value, config.sigma)


# =============================================================================
# Planner
# =============================================================================


class SelectionPlanner:
    """
    Partitions a deck's associations into a due list and a weighted pool.

    Usage:
        planner = SelectionPlanner(store)
        plan = planner.plan_session("deck-1", count=20)
    """

    def __init__(self, store: AssociationStore, config: PlannerConfig | None = None):
        self.store = store
        self.config = config or PlannerConfig()

    def plan_session(
        self,
        deck_id: str,
        count: int,
        minimum_score: float = -1,
        m_value: float = 0.0,
        now: datetime | None = None,
    ) -> SessionPlan:
        """
        Plan a session for one deck.

        Args:
            deck_id: Deck to study (caller is already authorized for it)
            count: Cards wanted; values below 1 are clamped to 1
            minimum_score: Lowest score admitted (negative admits unseen cards)
            m_value: Score the pool weighting is centered on
            now: Reference time (defaults to current UTC time)

        Returns:
            SessionPlan with due and pool kept separate

        Raises:
            StoreUnavailableError: if the store read fails
        """
        rows = self.store.fetch_associations(deck_id, direction=self.config.direction)
        plan = build_plan(rows, count, minimum_score, m_value, now=now, config=self.config)

        logger.info(
            f"Planned deck {deck_id}: {len(plan.due)} due + {len(plan.pool)} pool "
            f"(available={plan.available}, requested={plan.requested})"
        )
        return plan


def build_plan(
    rows: list[AssociationRow],
    count: int,
    minimum_score: float = -1,
    m_value: float = 0.0,
    now: datetime | None = None,
    config: PlannerConfig | None = None,
) -> SessionPlan:
    """Plan from an already-fetched list of associations."""
    config = config or PlannerConfig()
    now = as_utc(now) or utcnow()

    if count < 1:
        logger.warning(f"Session count {count} clamped to 1")
        count = 1

    due: list[AssociationRow] = []
    candidates: list[AssociationRow] = []

    for row in rows:
        if effective_score(row.score) < minimum_score:
            continue
        due_at = as_utc(row.due_at)
        if due_at is not None and due_at <= now:
            due.append(row)
        else:
            candidates.append(row)

    # sorted() is stable, so ties keep input order
    due = sorted(due, key=lambda r: as_utc(r.due_at))
    weighted = sorted(
        candidates,
        key=lambda r: pool_weight(r.score, m_value, config),
        reverse=True,
    )

    selected_ids = {r.id for r in due}
    pool: list[AssociationRow] = []
    for row in weighted:
        if len(due) + len(pool) >= count:
            break
        if row.id in selected_ids:
            continue
        selected_ids.add(row.id)
        pool.append(row)

    return SessionPlan(
        due=[SessionCard.from_row(r) for r in due],
        pool=[SessionCard.from_row(r) for r in pool],
        available=len(due) + len(candidates),
        requested=count,
    )
