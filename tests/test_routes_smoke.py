"""Smoke tests for API routes."""

import json
import random
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from nihongo_srs.catalog import load_achievements, load_all_characters
from nihongo_srs.config import Settings
from nihongo_srs.main import create_app
from nihongo_srs.session.manager import SessionManager
from nihongo_srs.storage.repository import StudyRepository
from nihongo_srs.storage.store import InMemoryStore

CATALOG_DIR = Path(__file__).resolve().parent.parent / "config"


@pytest.fixture
def manager():
    mgr = SessionManager(
        StudyRepository(InMemoryStore()),
        characters=load_all_characters(CATALOG_DIR),
        achievements=load_achievements(CATALOG_DIR),
        rng=random.Random(0),
    )
    mgr.initialize()
    return mgr


@pytest.fixture
def client(manager):
    app = create_app(settings=Settings(storage_backend="memory"), manager=manager)
    with TestClient(app) as c:
        yield c


def answer_current_question(client, correct=True):
    question = client.get("/api/sessions/question").json()
    answer = question["correctAnswer"] if correct else "wrong"
    return client.post(
        "/api/sessions/answer",
        json={"question": question, "userAnswer": answer, "responseTimeMs": 1200},
    )


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestProfile:
    def test_get_profile(self, client):
        data = client.get("/api/profile").json()
        assert data["name"] == "Student"
        assert data["totalXP"] == 0
        assert data["preferences"]["dailyGoal"] == 100

    def test_update_profile(self, client):
        response = client.patch(
            "/api/profile", json={"name": "Hana", "preferences": {"daily_goal": 200}}
        )
        assert response.status_code == 200
        assert response.json()["profile"]["name"] == "Hana"
        assert response.json()["profile"]["preferences"]["dailyGoal"] == 200
        assert response.json()["persisted"]

    def test_invalid_preference_rejected(self, client):
        response = client.patch("/api/profile", json={"preferences": {"theme": "neon"}})
        assert response.status_code == 422


class TestSessionFlow:
    def test_full_session(self, client):
        response = client.post("/api/sessions", json={"mode": "recognition", "writingSystem": "hiragana"})
        assert response.status_code == 201
        session_id = response.json()["session"]["id"]
        assert response.json()["persisted"]
        assert client.get("/api/sessions/current").json()["id"] == session_id

        result = answer_current_question(client).json()
        assert result["isCorrect"]
        assert result["xpAwarded"] == 15
        assert result["comboCount"] == 1
        assert result["progress"]["timesReviewed"] == 1
        assert result["persisted"]

        assert not answer_current_question(client, correct=False).json()["isCorrect"]

        summary = client.post("/api/sessions/end").json()
        assert summary["session"]["questionsAnswered"] == 2
        assert summary["session"]["correctAnswers"] == 1
        assert summary["dailyStats"]["accuracy"] == 50
        assert "ach_001" in summary["unlockedAchievements"]

        sessions = client.get("/api/sessions").json()
        assert [s["id"] for s in sessions] == [session_id]

    def test_second_session_conflicts(self, client):
        body = {"mode": "production", "writing_system": "katakana"}
        assert client.post("/api/sessions", json=body).status_code == 201
        assert client.post("/api/sessions", json=body).status_code == 409

    def test_production_question_has_options(self, client):
        client.post("/api/sessions", json={"mode": "production", "writingSystem": "katakana"})
        question = client.get("/api/sessions/question").json()
        assert question["correctAnswer"] in question["options"]
        assert len(question["options"]) == 4

    def test_requires_active_session(self, client):
        assert client.get("/api/sessions/current").status_code == 404
        assert client.get("/api/sessions/question").status_code == 409
        assert client.post("/api/sessions/end").status_code == 409

    def test_answer_without_session_conflicts(self, client):
        client.post("/api/sessions", json={"mode": "recognition", "writingSystem": "hiragana"})
        question = client.get("/api/sessions/question").json()
        client.post("/api/sessions/end")
        response = client.post(
            "/api/sessions/answer",
            json={"question": question, "userAnswer": "a", "responseTimeMs": 900},
        )
        assert response.status_code == 409

    def test_invalid_mode_rejected(self, client):
        response = client.post("/api/sessions", json={"mode": "dreaming", "writingSystem": "hiragana"})
        assert response.status_code == 422


class TestReviewQueueAndStats:
    def test_review_queue_limit(self, client):
        queue = client.get("/api/review-queue", params={"writing_system": "hiragana", "limit": 5}).json()
        assert len(queue) == 5
        assert all(cid.startswith("hiragana_") for cid in queue)

    def test_review_queue_defaults_to_batch_size(self, client):
        queue = client.get("/api/review-queue", params={"writing_system": "katakana"}).json()
        assert len(queue) == 20

    def test_kanji_queue_by_level(self, client):
        queue = client.get(
            "/api/review-queue", params={"writing_system": "kanji", "jlpt_level": "N4"}
        ).json()
        assert queue == ["kanji_n4_kaku"]

    def test_stats(self, client):
        client.post("/api/sessions", json={"mode": "recognition", "writingSystem": "hiragana"})
        answer_current_question(client)
        client.post("/api/sessions/end")
        stats = client.get("/api/stats").json()
        assert stats["totalSessions"] == 1
        assert stats["totalCharacters"] == 1
        assert stats["totalAchievements"] == 15
        assert stats["unlockedAchievements"] >= 1
        assert stats["kanjiProgress"]["N5"] == 0.0


class TestDataManagement:
    def test_export_then_import(self, client):
        client.post("/api/sessions", json={"mode": "recognition", "writingSystem": "hiragana"})
        answer_current_question(client)
        client.post("/api/sessions/end")
        exported = client.get("/api/export")
        assert exported.headers["content-type"].startswith("application/json")
        document = exported.json()
        assert document["profile"]["totalXP"] > 0

        client.post("/api/reset")
        assert client.get("/api/profile").json()["totalXP"] == 0

        response = client.post("/api/import", content=json.dumps(document))
        assert response.status_code == 200
        assert client.get("/api/profile").json()["totalXP"] == document["profile"]["totalXP"]

    def test_import_malformed(self, client):
        response = client.post("/api/import", content="{broken")
        assert response.status_code == 400

    def test_import_rejected_during_session(self, client):
        client.post("/api/sessions", json={"mode": "recognition", "writingSystem": "hiragana"})
        response = client.post("/api/import", content=json.dumps({"achievements": ["ach_001"]}))
        assert response.status_code == 409
        assert client.get("/api/sessions/current").status_code == 200

    def test_import_utc_timestamps_then_review(self, client):
        document = {
            "progress": {
                "hiragana_a": {
                    "characterId": "hiragana_a",
                    "masteryLevel": 1,
                    "accuracy": 50,
                    "timesReviewed": 2,
                    "correctCount": 1,
                    "incorrectCount": 1,
                    "lastReviewedAt": "2020-01-01T09:00:00.000Z",
                    "nextReviewAt": "2020-01-02T09:00:00.000Z",
                    "failureHistory": ["2020-01-01T09:00:00.000Z"],
                }
            }
        }
        assert client.post("/api/import", content=json.dumps(document)).status_code == 200
        queue = client.get("/api/review-queue", params={"writing_system": "hiragana"})
        assert queue.status_code == 200
        assert "hiragana_a" in queue.json()

    def test_reset_reports_persisted(self, client):
        assert client.post("/api/reset").json() == {"status": "reset", "persisted": True}
