"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from spacing.engine.errors import StoreUnavailableError
from spacing.engine.models import AssociationRow, AssociationState, Direction


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory SQLite)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeStore:
    """In-memory AssociationStore keeping rows in insertion order."""

    def __init__(self, rows=None):
        self.rows = {row.id: row for row in rows or []}
        self.writes = []
        self.fail = False
        self.fetch_calls = []

    def fetch_associations(self, deck_id, direction=None):
        self.fetch_calls.append((deck_id, direction))
        if self.fail:
            raise StoreUnavailableError("store is down")
        return [
            r
            for r in self.rows.values()
            if r.deck_id == deck_id and (direction is None or r.direction == direction)
        ]

    def get_association(self, association_id):
        if self.fail:
            raise StoreUnavailableError("store is down")
        return self.rows.get(association_id)

    def update_association(self, association_id, state: AssociationState):
        if self.fail:
            raise StoreUnavailableError("store is down")
        row = self.rows.get(association_id)
        if row is None:
            return None
        self.writes.append((association_id, state))
        self.rows[association_id] = AssociationRow(
            id=row.id,
            pair_id=row.pair_id,
            deck_id=row.deck_id,
            direction=row.direction,
            question=row.question,
            answer=row.answer,
            score=state.score,
            due_at=state.due_at,
            first_time=state.first_time,
        )
        return row.deck_id


def make_row(
    assoc_id,
    score=None,
    due_at=None,
    first_time=None,
    direction=Direction.AB,
    question=None,
    answer=None,
    deck_id="deck-1",
):
    """Build an AssociationRow with readable defaults."""
    return AssociationRow(
        id=assoc_id,
        pair_id=f"pair-{assoc_id}",
        deck_id=deck_id,
        direction=direction,
        question=question if question is not None else f"Question {assoc_id}",
        answer=answer if answer is not None else f"Answer {assoc_id}",
        score=score,
        due_at=due_at,
        first_time=(score is None) if first_time is None else first_time,
    )


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed reference time."""
    return NOW


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with tables created."""
    from spacing.db.database import create_db_engine, init_db

    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(db_engine):
    from spacing.db.association_store import SqlAssociationStore
    from spacing.db.database import create_session_factory

    return SqlAssociationStore(create_session_factory(db_engine))


@pytest.fixture
def settings():
    """Settings that ignore any local .env file."""
    from config import Settings

    return Settings(_env_file=None, database_url="sqlite://")
