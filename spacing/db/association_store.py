"""
SQLAlchemy-backed association store.

Implements the engine's AssociationStore contract:
- fetch all associations of one deck (optionally one direction)
- read / update the score, due_at and first_time of one association

Any SQLAlchemy failure is re-raised as StoreUnavailableError; retries are
left to the caller.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timezone

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, sessionmaker

from spacing.db.database import get_session_factory
from spacing.db.models import Association, Pair
from spacing.engine.errors import StoreUnavailableError
from spacing.engine.models import AssociationRow, AssociationState, Direction, as_utc


@dataclass(frozen=True)
class CreatedPair:
    """Ids created by add_pair."""

    pair_id: str
    ab_id: str
    ba_id: str


def _to_row(assoc: Association) -> AssociationRow:
    score = assoc.score
    if score is not None and score < 0:
        score = None  # legacy -1 sentinel
    return AssociationRow(
        id=assoc.id,
        pair_id=assoc.pair_id,
        deck_id=assoc.pair.deck_id,
        direction=Direction(assoc.direction),
        question=assoc.pair.question,
        answer=assoc.pair.answer,
        score=score,
        due_at=as_utc(assoc.due_at),
        first_time=bool(assoc.first_time),
    )


class SqlAssociationStore:
    """
    Association store over the `pairs` / `associations` tables.

    Args:
        session_factory: sessionmaker to use (defaults to the configured database)
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._factory = session_factory

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        factory = self._factory or get_session_factory()
        session = factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Association store failure: {e}")
            raise StoreUnavailableError(str(e)) from e
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    # =========================================================================
    # Engine contract
    # =========================================================================

    def fetch_associations(
        self, deck_id: str, direction: Direction | None = None
    ) -> list[AssociationRow]:
        """
        Get all associations of enabled pairs in a deck.

        Args:
            deck_id: Deck to read
            direction: Restrict to one direction (None for both)

        Returns:
            AssociationRows in pair creation order
        """
        stmt = (
            select(Association)
            .join(Association.pair)
            .options(contains_eager(Association.pair))
            .where(Pair.deck_id == deck_id, Pair.disabled.is_(False))
            .order_by(Pair.created_at, Pair.id, Association.direction)
        )
        if direction is not None:
            stmt = stmt.where(Association.direction == Direction(direction).value)

        with self._session() as session:
            rows = [_to_row(a) for a in session.scalars(stmt)]

        logger.debug(f"Fetched {len(rows)} associations for deck {deck_id}")
        return rows

    def get_association(self, association_id: str) -> AssociationRow | None:
        with self._session() as session:
            assoc = session.get(Association, association_id)
            return _to_row(assoc) if assoc is not None else None

    def update_association(self, association_id: str, state: AssociationState) -> str | None:
        """
        Write score, due_at and first_time for one association.

        Returns:
            Owning deck id, or None if the association does not exist
        """
        due_at = state.due_at
        if due_at is not None:
            due_at = as_utc(due_at).astimezone(timezone.utc)

        with self._session() as session:
            assoc = session.get(Association, association_id)
            if assoc is None:
                return None
            assoc.score = state.score
            assoc.due_at = due_at
            assoc.first_time = state.first_time
            deck_id = assoc.pair.deck_id

        logger.debug(
            f"Updated association {association_id}: score={state.score}, "
            f"due_at={due_at}, first_time={state.first_time}"
        )
        return deck_id

    # =========================================================================
    # Pair management (used by seeding, the CLI and tests)
    # =========================================================================

    def snapshot(self, association_id: str) -> AssociationState | None:
        """Capture the current scheduling fields for a later undo."""
        row = self.get_association(association_id)
        return row.state if row is not None else None

    def add_pair(
        self,
        deck_id: str,
        question: str,
        answer: str,
        disabled: bool = False,
    ) -> CreatedPair:
        """Create a pair with both of its (unseen) associations."""
        with self._session() as session:
            pair = Pair(deck_id=deck_id, question=question, answer=answer, disabled=disabled)
            ab = Association(direction=Direction.AB.value, score=None, due_at=None, first_time=True)
            ba = Association(direction=Direction.BA.value, score=None, due_at=None, first_time=True)
            pair.associations = [ab, ba]
            session.add(pair)
            session.flush()
            created = CreatedPair(pair_id=pair.id, ab_id=ab.id, ba_id=ba.id)

        logger.debug(f"Added pair {created.pair_id} to deck {deck_id}")
        return created

    def delete_pair(self, pair_id: str) -> bool:
        """Delete a pair and its associations. Returns False if not found."""
        with self._session() as session:
            pair = session.get(Pair, pair_id)
            if pair is None:
                return False
            session.delete(pair)
        return True
