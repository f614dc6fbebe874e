"""
Answer grading: textual correctness between an expected and a typed answer.

Modes:
- exact: byte-for-byte equality
- case:  equality after Unicode case folding
- fuzzy: character-trigram cosine similarity (default)

All functions are pure and return a score in [0, 1].
"""

from __future__ import annotations

import math
import re
from collections import Counter

from loguru import logger

from .models import MatchingMode

EMPTY_DISPLAY = "—"

_NON_WORD = re.compile(r"[^\w\s]|_", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def default_matching_mode() -> MatchingMode:
    return MatchingMode.FUZZY


def parse_matching_mode(mode: MatchingMode | str | None) -> MatchingMode:
    """Resolve a mode, falling back to fuzzy for anything unrecognised."""
    if mode is None:
        return default_matching_mode()
    if isinstance(mode, MatchingMode):
        return mode
    try:
        return MatchingMode(str(mode).strip().lower())
    except ValueError:
        logger.warning(f"Unknown matching mode {mode!r}, using fuzzy")
        return default_matching_mode()


# =============================================================================
# Normalization
# =============================================================================


def normalize_for_exact(text: str) -> str:
    """Lower-case, turn punctuation into spaces, collapse whitespace."""
    lowered = text.lower()
    spaced = _NON_WORD.sub(" ", lowered)
    return _WHITESPACE.sub(" ", spaced).strip()


def is_exact_like(a: str, b: str) -> bool:
    """
    True if two answers are equal ignoring case, spacing and punctuation.

    Diacritics are kept: "Niño" and "nino" differ.
    """
    if a == b:
        return True
    return normalize_for_exact(a) == normalize_for_exact(b)


def normalize_answer_display(text: str) -> str:
    normalized = normalize_for_exact(text)
    return normalized if normalized else EMPTY_DISPLAY


# =============================================================================
# Trigram cosine
# =============================================================================


def trigrams(text: str) -> Counter[str]:
    """Overlapping 3-character windows of the padded, lower-cased text."""
    padded = f"  {text.lower()} "
    return Counter(padded[i : i + 3] for i in range(len(padded) - 2))


def trigram_cosine(a: str, b: str) -> float:
    grams_a = trigrams(a)
    grams_b = trigrams(b)

    norm_a = sum(v * v for v in grams_a.values())
    norm_b = sum(v * v for v in grams_b.values())
    if not norm_a or not norm_b:
        return 1.0 if a.strip() == b.strip() else 0.0

    dot = sum(count * grams_b[gram] for gram, count in grams_a.items() if gram in grams_b)
    return _clamp(dot / math.sqrt(norm_a * norm_b))


def _clamp(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


# =============================================================================
# Entry point
# =============================================================================


def compute_correctness(
    expected: str,
    received: str,
    mode: MatchingMode | str | None = MatchingMode.FUZZY,
) -> float:
    """
    Score how correct a received answer is.

    Args:
        expected: The answer on the card
        received: What the learner typed
        mode: Matching mode (unknown values fall back to fuzzy)

    Returns:
        Correctness in [0, 1]
    """
    if not expected.strip() and not received.strip():
        return 1.0

    resolved = parse_matching_mode(mode)

    if resolved is MatchingMode.EXACT:
        return 1.0 if expected == received else 0.0

    if resolved is MatchingMode.CASE:
        return 1.0 if expected.casefold() == received.casefold() else 0.0

    return trigram_cosine(expected, received)
