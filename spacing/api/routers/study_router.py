"""
Study router.

Endpoints for planning sessions, grading answers and committing decisions:
- /select, /mark, /undo, /grade: stateless calls
- /sessions/...: live sessions backed by a SessionScheduler
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from config import Settings
from spacing.api.dependencies import get_app_settings, get_registry, get_store
from spacing.api.session_registry import SessionRegistry
from spacing.engine import marking
from spacing.engine.errors import StoreUnavailableError
from spacing.engine.models import AssociationStore, Decision, SessionCard, SessionPlan
from spacing.engine.planner import PlannerConfig, SelectionPlanner
from spacing.engine.session import SessionScheduler
from spacing.engine.similarity import compute_correctness, is_exact_like, normalize_answer_display

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class CardModel(BaseModel):
    """A session card as seen by clients."""

    id: str
    pair_id: str
    deck_id: str | None = None
    direction: str
    cue: str
    response: str
    score: int | None
    due_at: datetime | None
    first_time: bool

    @classmethod
    def from_card(cls, card: SessionCard) -> CardModel:
        return cls(**card.to_dict())


class PlanResponse(BaseModel):
    due: list[CardModel]
    pool: list[CardModel]
    available: int
    requested: int


class MarkRequest(BaseModel):
    association_id: str
    decision: Decision

    @field_validator("decision", mode="before")
    @classmethod
    def parse_decision(cls, value: Any) -> Decision:
        return Decision.parse(value)


class UndoRequest(BaseModel):
    """Snapshot captured before a mark, written back verbatim."""

    association_id: str
    score: int | None = None
    due_at: str | None = None
    first_time: bool = True


class DeckResponse(BaseModel):
    ok: bool
    deck_id: str


class GradeRequest(BaseModel):
    expected: str
    received: str
    mode: str | None = None


class GradeResponse(BaseModel):
    correctness: float
    exact_like: bool
    display: str


class OpenSessionRequest(BaseModel):
    deck_id: str
    count: int | None = None
    minimum_score: float | None = Field(default=None, alias="min")
    m_value: float | None = Field(default=None, alias="m")

    model_config = {"populate_by_name": True}


class OpenSessionResponse(PlanResponse):
    session_id: str
    total: int


class ProgressModel(BaseModel):
    seen: int
    total: int


class SessionCardResponse(BaseModel):
    card: CardModel | None
    progress: ProgressModel
    remaining: int


class SessionGradeRequest(BaseModel):
    card_id: str
    decision: Decision
    persist: bool = True

    @field_validator("decision", mode="before")
    @classmethod
    def parse_decision(cls, value: Any) -> Decision:
        return Decision.parse(value)


# ========================================
# Helpers
# ========================================


def _plan(
    store: AssociationStore,
    settings: Settings,
    deck_id: str,
    count: int | None,
    minimum_score: float | None,
    m_value: float | None,
) -> SessionPlan:
    planner = SelectionPlanner(
        store,
        PlannerConfig(sigma=settings.weight_sigma, unseen_weight=settings.unseen_weight),
    )
    try:
        return planner.plan_session(
            deck_id,
            count=count if count is not None else settings.session_count,
            minimum_score=minimum_score if minimum_score is not None else settings.minimum_score,
            m_value=m_value if m_value is not None else settings.m_value,
        )
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Association store unavailable: {e}") from e


def _plan_response(plan: SessionPlan) -> dict[str, Any]:
    return {
        "due": [CardModel.from_card(c) for c in plan.due],
        "pool": [CardModel.from_card(c) for c in plan.pool],
        "available": plan.available,
        "requested": plan.requested,
    }


def _session_or_404(registry: SessionRegistry, session_id: str) -> SessionScheduler:
    scheduler = registry.get(session_id)
    if scheduler is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return scheduler


def _card_response(scheduler: SessionScheduler, card: SessionCard | None) -> SessionCardResponse:
    progress = scheduler.progress()
    return SessionCardResponse(
        card=CardModel.from_card(card) if card is not None else None,
        progress=ProgressModel(seen=progress.seen, total=progress.total),
        remaining=scheduler.remaining(),
    )


# ========================================
# Stateless Endpoints
# ========================================


@router.get("/select", response_model=PlanResponse, summary="Plan a study session")
def select(
    deck_id: str = Query(..., description="Deck to plan"),
    count: int | None = Query(default=None),
    minimum_score: float | None = Query(default=None, alias="min"),
    m_value: float | None = Query(default=None, alias="m"),
    store: AssociationStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """
    Partition a deck into due cards and a weighted pool.

    - min: lowest score admitted (negative includes unseen cards)
    - m: score the pool weighting is centered on
    """
    plan = _plan(store, settings, deck_id, count, minimum_score, m_value)
    return _plan_response(plan)


@router.post("/mark", response_model=DeckResponse, summary="Commit one grading decision")
def mark(
    request: MarkRequest,
    store: AssociationStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> DeckResponse:
    try:
        deck_id = marking.apply_decision(
            store,
            request.association_id,
            request.decision,
            backoff_base=settings.backoff_base,
        )
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Association store unavailable: {e}") from e

    if deck_id is None:
        raise HTTPException(status_code=404, detail=f"Association not found: {request.association_id}")
    return DeckResponse(ok=True, deck_id=deck_id)


@router.post("/undo", response_model=DeckResponse, summary="Restore a captured snapshot")
def undo(
    request: UndoRequest,
    store: AssociationStore = Depends(get_store),
) -> DeckResponse:
    try:
        deck_id = marking.restore_association(
            store,
            request.association_id,
            score=request.score,
            due_at=request.due_at,
            first_time=request.first_time,
        )
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Association store unavailable: {e}") from e

    if deck_id is None:
        raise HTTPException(status_code=404, detail=f"Association not found: {request.association_id}")
    return DeckResponse(ok=True, deck_id=deck_id)


@router.post("/grade", response_model=GradeResponse, summary="Score a typed answer")
def grade(
    request: GradeRequest,
    settings: Settings = Depends(get_app_settings),
) -> GradeResponse:
    mode = request.mode or settings.matching_mode
    return GradeResponse(
        correctness=compute_correctness(request.expected, request.received, mode),
        exact_like=is_exact_like(request.expected, request.received),
        display=normalize_answer_display(request.received),
    )


# ========================================
# Live Session Endpoints
# ========================================


@router.post("/sessions", response_model=OpenSessionResponse, summary="Open a live session")
def open_session(
    request: OpenSessionRequest,
    store: AssociationStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    plan = _plan(store, settings, request.deck_id, request.count, request.minimum_score, request.m_value)
    scheduler = SessionScheduler(
        plan,
        review_bias=settings.review_bias,
        seed=settings.random_seed,
        backoff_base=settings.backoff_base,
    )
    session_id = registry.create(scheduler, request.deck_id)
    logger.info(f"Session {session_id} opened with {plan.total_cards} cards")

    return {
        "session_id": session_id,
        "total": scheduler.progress().total,
        **_plan_response(plan),
    }


@router.get("/sessions/{session_id}/next", response_model=SessionCardResponse, summary="Next card")
def next_card(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionCardResponse:
    scheduler = _session_or_404(registry, session_id)
    return _card_response(scheduler, scheduler.next())


@router.post(
    "/sessions/{session_id}/grade", response_model=SessionCardResponse, summary="Grade a session card"
)
def grade_session_card(
    session_id: str,
    request: SessionGradeRequest,
    store: AssociationStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionCardResponse:
    """
    Grade one card of a live session.

    With persist=true the decision is written to the store before the
    in-memory card changes. A card deleted upstream comes back as null.
    """
    scheduler = _session_or_404(registry, session_id)
    try:
        card = marking.grade_in_session(
            scheduler,
            request.card_id,
            request.decision,
            store=store if request.persist else None,
        )
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Association store unavailable: {e}") from e

    return _card_response(scheduler, card)


@router.delete("/sessions/{session_id}", summary="Close a live session")
def close_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> dict[str, bool]:
    if not registry.close(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return {"ok": True}
