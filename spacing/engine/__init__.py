"""
Spacing engine: selection and scheduling core.

Components:
- similarity: answer grading (exact / case / trigram cosine)
- SelectionPlanner: due list + weighted pool per deck
- SessionScheduler: due-first serving and exponential backoff
- apply_decision / restore_association: single-decision store path
"""

from .errors import InvalidDecisionError, SpacingError, StoreUnavailableError
from .marking import apply_decision, grade_in_session, restore_association
from .models import (
    AssociationRow,
    AssociationState,
    AssociationStore,
    Decision,
    Direction,
    MatchingMode,
    SessionCard,
    SessionPlan,
    SessionProgress,
    association_sides,
)
from .planner import PlannerConfig, SelectionPlanner, build_plan, pool_weight
from .session import SessionScheduler
from .similarity import compute_correctness, is_exact_like, normalize_answer_display

__all__ = [
    # Types
    "AssociationRow",
    "AssociationState",
    "AssociationStore",
    "Decision",
    "Direction",
    "MatchingMode",
    "SessionCard",
    "SessionPlan",
    "SessionProgress",
    "association_sides",
    # Errors
    "SpacingError",
    "StoreUnavailableError",
    "InvalidDecisionError",
    # Planning
    "PlannerConfig",
    "SelectionPlanner",
    "build_plan",
    "pool_weight",
    # Scheduling
    "SessionScheduler",
    "apply_decision",
    "grade_in_session",
    "restore_association",
    # Grading
    "compute_correctness",
    "is_exact_like",
    "normalize_answer_display",
]
