"""
Core data types for the spacing engine.

Plain dataclasses and enums shared by the planner, the session scheduler,
the mark/apply bridge and the store adapters. Nothing here touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from .errors import InvalidDecisionError

# =============================================================================
# Enums
# =============================================================================


class Direction(str, Enum):
    """Which side of a pair is shown as the cue."""

    AB = "AB"  # question -> answer
    BA = "BA"  # answer -> question


class Decision(str, Enum):
    """Grading outcome for one card."""

    RIGHT = "RIGHT"
    WRONG = "WRONG"
    SKIP = "SKIP"

    @classmethod
    def parse(cls, value: Decision | str) -> Decision:
        """Parse a decision case-insensitively."""
        if isinstance(value, Decision):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as e:
            raise InvalidDecisionError(f"Unknown decision: {value!r}") from e


class MatchingMode(str, Enum):
    """How a typed answer is compared against the expected one."""

    EXACT = "exact"
    CASE = "case"
    FUZZY = "fuzzy"


# =============================================================================
# Time helpers
# =============================================================================


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def association_sides(direction: Direction | str, question: str, answer: str) -> tuple[str, str]:
    """Return (cue, response) for a pair oriented by direction."""
    if Direction(direction) is Direction.AB:
        return question, answer
    return answer, question


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class AssociationState:
    """The mutable scheduling fields of an association."""

    score: int | None = None
    due_at: datetime | None = None
    first_time: bool = True


@dataclass(frozen=True)
class AssociationRow:
    """One association as read from the store, with its pair's text."""

    id: str
    pair_id: str
    deck_id: str
    direction: Direction
    question: str
    answer: str
    score: int | None = None
    due_at: datetime | None = None
    first_time: bool = True

    @property
    def state(self) -> AssociationState:
        return AssociationState(score=self.score, due_at=self.due_at, first_time=self.first_time)


@dataclass
class SessionCard:
    """
    Detached snapshot of an association used for one study session.

    Carries its own score/due_at/first_time; the scheduler mutates these
    in place and callers decide whether to persist them.
    """

    id: str
    pair_id: str
    direction: Direction
    cue: str
    response: str
    score: int | None = None
    due_at: datetime | None = None
    first_time: bool = True
    deck_id: str | None = None

    @classmethod
    def from_row(cls, row: AssociationRow) -> SessionCard:
        cue, response = association_sides(row.direction, row.question, row.answer)
        return cls(
            id=row.id,
            pair_id=row.pair_id,
            direction=row.direction,
            cue=cue,
            response=response,
            score=row.score,
            due_at=as_utc(row.due_at),
            first_time=row.first_time,
            deck_id=row.deck_id,
        )

    @property
    def state(self) -> AssociationState:
        return AssociationState(score=self.score, due_at=self.due_at, first_time=self.first_time)

    def apply(self, state: AssociationState) -> None:
        """Overwrite the scheduling fields."""
        self.score = state.score
        self.due_at = state.due_at
        self.first_time = state.first_time

    @property
    def is_blank(self) -> bool:
        """True when there is nothing to answer."""
        return not self.response.strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pair_id": self.pair_id,
            "deck_id": self.deck_id,
            "direction": self.direction.value,
            "cue": self.cue,
            "response": self.response,
            "score": self.score,
            "due_at": self.due_at.isoformat() if self.due_at else None,
            "first_time": self.first_time,
        }


@dataclass
class SessionPlan:
    """Output of the selection planner."""

    due: list[SessionCard] = field(default_factory=list)
    pool: list[SessionCard] = field(default_factory=list)
    available: int = 0
    requested: int = 0

    @property
    def total_cards(self) -> int:
        return len(self.due) + len(self.pool)


@dataclass(frozen=True)
class SessionProgress:
    """Cards served so far against the session's starting size."""

    seen: int
    total: int


# =============================================================================
# Store contract
# =============================================================================


class AssociationStore(Protocol):
    """Read/write contract the engine needs from persistent storage."""

    def fetch_associations(
        self, deck_id: str, direction: Direction | None = None
    ) -> list[AssociationRow]:
        """All enabled associations of a deck, optionally one direction."""
        ...

    def get_association(self, association_id: str) -> AssociationRow | None:
        ...

    def update_association(self, association_id: str, state: AssociationState) -> str | None:
        """Write the scheduling fields; return the owning deck id or None if gone."""
        ...
