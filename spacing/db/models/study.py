"""
Study tables: question/answer pairs and their directional associations.

Each Pair owns exactly two Associations (AB and BA). Deleting a pair deletes
its associations.
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spacing.engine.models import utcnow

from .base import Base


def _uuid() -> str:
    return str(uuid4())


class Pair(Base):
    """A question/answer pair belonging to a deck."""

    __tablename__ = "pairs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    deck_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False, default="")
    answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    associations: Mapped[list[Association]] = relationship(
        back_populates="pair", cascade="all, delete-orphan"
    )


class Association(Base):
    """One study direction of a pair with its scheduling state."""

    __tablename__ = "associations"
    __table_args__ = (UniqueConstraint("pair_id", "direction", name="uq_association_direction"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    pair_id: Mapped[str] = mapped_column(
        ForeignKey("pairs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    direction: Mapped[str] = mapped_column(String(2), nullable=False)  # "AB" | "BA"
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # NULL = never studied
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    first_time: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    pair: Mapped[Pair] = relationship(back_populates="associations")
