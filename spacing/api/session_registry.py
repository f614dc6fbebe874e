"""
In-memory registry of live study sessions.

Maps an opaque handle to the SessionScheduler that owns a session. Entries
expire after `ttl_seconds` without use. The registry is created per app and
injected into the routes, so tests can swap in their own.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from loguru import logger

from spacing.engine.session import SessionScheduler


@dataclass
class _Entry:
    scheduler: SessionScheduler
    deck_id: str
    touched_at: float


class SessionRegistry:
    """Handle -> SessionScheduler map with idle expiry."""

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def create(self, scheduler: SessionScheduler, deck_id: str) -> str:
        session_id = uuid4().hex
        with self._lock:
            self._purge()
            self._entries[session_id] = _Entry(scheduler, deck_id, self._clock())
        logger.debug(f"Opened session {session_id} for deck {deck_id}")
        return session_id

    def get(self, session_id: str) -> SessionScheduler | None:
        with self._lock:
            self._purge()
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            entry.touched_at = self._clock()
            return entry.scheduler

    def close(self, session_id: str) -> bool:
        with self._lock:
            return self._entries.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._entries)

    def _purge(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        expired = [sid for sid, e in self._entries.items() if e.touched_at < cutoff]
        for sid in expired:
            del self._entries[sid]
        if expired:
            logger.debug(f"Expired {len(expired)} idle sessions")
