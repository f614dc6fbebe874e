"""
Integration tests for the study API.

Runs the FastAPI app in-process (TestClient) over an in-memory SQLite store.

Run: pytest tests/integration/test_study_api.py -v
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import FakeStore
from spacing.api.main import create_app
from spacing.engine.models import AssociationState, utcnow


@pytest.fixture
def client(sql_store, settings):
    return TestClient(create_app(store=sql_store, settings=settings))


@pytest.fixture
def deck(sql_store):
    """Two fresh pairs in deck-1."""
    return [
        sql_store.add_pair("deck-1", "casa", "house"),
        sql_store.add_pair("deck-1", "perro", "dog"),
    ]


class TestHealth:
    def test_health_with_external_store(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"] == "external"
        assert data["components"]["live_sessions"] == 0


class TestSelect:
    """Test GET /select."""

    def test_plan_fresh_deck(self, client, deck):
        response = client.get("/select", params={"deck_id": "deck-1", "count": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["due"] == []
        assert {c["id"] for c in data["pool"]} == {p.ab_id for p in deck}
        assert data["available"] == 2
        assert data["requested"] == 5
        assert {c["cue"] for c in data["pool"]} == {"casa", "perro"}

    def test_min_alias(self, client, deck):
        response = client.get("/select", params={"deck_id": "deck-1", "min": 0})
        assert response.json()["pool"] == []

    def test_count_clamped(self, client, deck):
        response = client.get("/select", params={"deck_id": "deck-1", "count": 0})
        data = response.json()
        assert data["requested"] == 1
        assert len(data["pool"]) == 1

    def test_deck_required(self, client):
        assert client.get("/select").status_code == 422

    def test_store_unavailable(self, settings):
        store = FakeStore()
        store.fail = True
        client = TestClient(create_app(store=store, settings=settings))

        response = client.get("/select", params={"deck_id": "deck-1"})
        assert response.status_code == 503


class TestMarkAndUndo:
    """Test POST /mark and POST /undo."""

    def test_mark_right(self, client, sql_store, deck):
        response = client.post("/mark", json={"association_id": deck[0].ab_id, "decision": "RIGHT"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "deck_id": "deck-1"}
        assert sql_store.snapshot(deck[0].ab_id).score == 0

    def test_mark_lowercase_decision(self, client, sql_store, deck):
        response = client.post("/mark", json={"association_id": deck[0].ab_id, "decision": "wrong"})
        assert response.status_code == 200
        assert sql_store.snapshot(deck[0].ab_id).first_time is False

    def test_mark_unknown_association(self, client):
        response = client.post("/mark", json={"association_id": "ghost", "decision": "RIGHT"})
        assert response.status_code == 404

    def test_mark_invalid_decision(self, client, deck):
        response = client.post("/mark", json={"association_id": deck[0].ab_id, "decision": "MAYBE"})
        assert response.status_code == 422

    def test_undo_restores_snapshot(self, client, sql_store, deck):
        assoc_id = deck[0].ab_id
        due_at = utcnow().replace(microsecond=0) + timedelta(hours=2)
        sql_store.update_association(assoc_id, AssociationState(score=4, due_at=due_at, first_time=False))
        before = sql_store.snapshot(assoc_id)

        client.post("/mark", json={"association_id": assoc_id, "decision": "WRONG"})
        response = client.post(
            "/undo",
            json={
                "association_id": assoc_id,
                "score": before.score,
                "due_at": before.due_at.isoformat(),
                "first_time": before.first_time,
            },
        )

        assert response.status_code == 200
        assert sql_store.snapshot(assoc_id) == before

    def test_undo_to_unseen(self, client, sql_store, deck):
        assoc_id = deck[0].ab_id
        client.post("/mark", json={"association_id": assoc_id, "decision": "RIGHT"})

        client.post("/undo", json={"association_id": assoc_id, "score": -1, "due_at": None})

        assert sql_store.snapshot(assoc_id) == AssociationState()

    def test_undo_unknown_association(self, client):
        assert client.post("/undo", json={"association_id": "ghost"}).status_code == 404


class TestGrade:
    """Test POST /grade."""

    def test_fuzzy_default(self, client):
        response = client.post("/grade", json={"expected": "the house", "received": "house the"})

        data = response.json()
        assert data["correctness"] == pytest.approx(0.8)
        assert data["exact_like"] is False
        assert data["display"] == "house the"

    def test_exact_mode(self, client):
        response = client.post("/grade", json={"expected": "House", "received": "house", "mode": "exact"})
        data = response.json()
        assert data["correctness"] == 0.0
        assert data["exact_like"] is True

    def test_blank_display(self, client):
        response = client.post("/grade", json={"expected": "", "received": "  "})
        data = response.json()
        assert data["correctness"] == 1.0
        assert data["display"] == "—"


class TestLiveSessions:
    """Test the /sessions endpoints."""

    def _open(self, client, **body):
        response = client.post("/sessions", json={"deck_id": "deck-1", "count": 5, **body})
        assert response.status_code == 200
        return response.json()

    def test_full_session(self, client, sql_store, deck):
        known, fresh = deck
        sql_store.update_association(
            known.ab_id,
            AssociationState(score=3, due_at=utcnow() + timedelta(hours=1), first_time=False),
        )

        opened = self._open(client)
        session_id = opened["session_id"]
        assert opened["total"] == 2

        # unseen (0.60) outweighs score 3 at m=0
        first = client.get(f"/sessions/{session_id}/next").json()
        assert first["card"]["id"] == fresh.ab_id
        assert first["progress"] == {"seen": 1, "total": 2}

        skipped = client.post(
            f"/sessions/{session_id}/grade", json={"card_id": fresh.ab_id, "decision": "SKIP"}
        ).json()
        assert skipped["card"]["score"] is None

        second = client.get(f"/sessions/{session_id}/next").json()
        assert second["card"]["id"] == known.ab_id

        graded = client.post(
            f"/sessions/{session_id}/grade", json={"card_id": known.ab_id, "decision": "right"}
        ).json()
        assert graded["card"]["score"] == 4
        assert sql_store.snapshot(known.ab_id).score == 4

        done = client.get(f"/sessions/{session_id}/next").json()
        assert done["card"] is None
        assert done["remaining"] == 1

    def test_grade_without_persist(self, client, sql_store, deck):
        session_id = self._open(client)["session_id"]
        card_id = client.get(f"/sessions/{session_id}/next").json()["card"]["id"]

        response = client.post(
            f"/sessions/{session_id}/grade",
            json={"card_id": card_id, "decision": "RIGHT", "persist": False},
        )

        assert response.json()["card"]["score"] == 0
        assert sql_store.snapshot(card_id).score is None

    def test_grade_after_upstream_delete(self, client, sql_store, deck):
        session_id = self._open(client)["session_id"]
        sql_store.delete_pair(deck[0].pair_id)

        response = client.post(
            f"/sessions/{session_id}/grade", json={"card_id": deck[0].ab_id, "decision": "RIGHT"}
        )

        assert response.status_code == 200
        assert response.json()["card"] is None
        assert response.json()["remaining"] == 1

    def test_open_with_min_alias(self, client, deck):
        assert self._open(client, min=0)["total"] == 0

    def test_close_session(self, client, deck):
        session_id = self._open(client)["session_id"]

        assert client.delete(f"/sessions/{session_id}").json() == {"ok": True}
        assert client.delete(f"/sessions/{session_id}").status_code == 404
        assert client.get(f"/sessions/{session_id}/next").status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/sessions/nope/next").status_code == 404

    def test_live_sessions_in_health(self, client, deck):
        self._open(client)
        assert client.get("/health").json()["components"]["live_sessions"] == 1
