"""
Tests for LingoLearn FastAPI routes, served from in-memory stores.
"""

from __future__ import annotations

import datetime as dt

import pytest
from fastapi.testclient import TestClient

from lingolearn.api.deps import Stores, get_app_settings, get_now, get_registry, get_stores
from lingolearn.api.main import app
from lingolearn.config import Settings
from lingolearn.db.models import new_word
from lingolearn.skills.session_service import SessionRegistry
from lingolearn.store import InMemoryItemStore, InMemoryProgressStore


NOON = dt.datetime(2025, 1, 10, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def client():
    words = [
        new_word(english="abandon", chinese="放弃", word_id="w1"),
        new_word(english="ability", chinese="能力", word_id="w2"),
        new_word(english="absorb", chinese="吸收", word_id="w3", category="CET-6"),
        new_word(english="abstract", chinese="抽象的", word_id="w4", category="CET-6"),
    ]
    stores = Stores(items=InMemoryItemStore(words), progress=InMemoryProgressStore())
    settings = Settings(storage="memory")
    registry = SessionRegistry()

    async def _stores():
        yield stores

    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_stores] = _stores
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_now] = lambda: NOON
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "storage": "memory", "active_sessions": 0}


def test_list_words_with_filters(client):
    r = client.get("/api/words")
    assert r.status_code == 200
    assert len(r.json()) == 4

    r = client.get("/api/words", params={"category": "CET-6"})
    assert {w["id"] for w in r.json()} == {"w3", "w4"}

    r = client.get("/api/words", params={"search": "能力"})
    assert [w["english"] for w in r.json()] == ["ability"]


def test_create_and_get_word(client):
    r = client.post("/api/words", json={"english": " benefit ", "chinese": "好处"})
    assert r.status_code == 201
    created = r.json()
    assert created["english"] == "benefit"
    assert created["ease_factor"] == 2.5
    assert created["mastery_level"] == "new"
    assert created["next_review_at"] is None

    r = client.get(f"/api/words/{created['id']}")
    assert r.status_code == 200
    assert r.json()["chinese"] == "好处"


def test_get_missing_word_returns_404(client):
    r = client.get("/api/words/nope")
    assert r.status_code == 404
    assert r.json()["detail"] == "Word not found"


def test_toggle_word_favorite(client):
    r = client.post("/api/words/w2/favorite")
    assert r.status_code == 200
    assert r.json()["is_favorite"] is True

    r = client.get("/api/words", params={"favorites": True})
    assert [w["id"] for w in r.json()] == ["w2"]


def test_study_session_flow(client):
    r = client.post("/api/study/sessions/start", json={"mode": "learning", "limit": 2})
    assert r.status_code == 200
    started = r.json()
    session_id = started["session_id"]
    assert started["progress"] == {"current_index": 0, "total": 2, "completed": False}
    first_id = started["current_word"]["id"]

    r = client.post(
        f"/api/study/sessions/{session_id}/review",
        json={"word_id": first_id, "known": True},
    )
    assert r.status_code == 200
    reviewed = r.json()
    assert reviewed["success"] is True
    assert reviewed["interval_days"] == 1
    assert reviewed["repetitions"] == 1
    assert reviewed["mastery_level"] == "learning"
    second_id = reviewed["next_word"]["id"]

    r = client.post(
        f"/api/study/sessions/{session_id}/review",
        json={"word_id": second_id, "quality": 2},
    )
    assert r.status_code == 200
    assert r.json()["success"] is False
    assert r.json()["progress"]["completed"] is True

    r = client.post(f"/api/study/sessions/{session_id}/finish")
    assert r.status_code == 200
    finished = r.json()
    assert finished["stats"]["total_reviewed"] == 2
    assert finished["stats"]["accuracy"] == 0.5
    assert finished["current_streak"] == 1
    assert [a["id"] for a in finished["new_achievements"]] == ["first_word"]

    r = client.post(f"/api/study/sessions/{session_id}/finish")
    assert r.status_code == 404


def test_review_for_wrong_word_returns_400(client):
    r = client.post("/api/study/sessions/start", json={"mode": "mixed"})
    session_id = r.json()["session_id"]
    current = r.json()["current_word"]["id"]
    other = next(w for w in ("w1", "w2", "w3", "w4") if w != current)

    r = client.post(
        f"/api/study/sessions/{session_id}/review",
        json={"word_id": other, "known": True},
    )
    assert r.status_code == 400


def test_review_rejects_out_of_range_quality(client):
    r = client.post("/api/study/sessions/start", json={})
    session_id = r.json()["session_id"]

    r = client.post(
        f"/api/study/sessions/{session_id}/review",
        json={"word_id": "w1", "quality": 6},
    )
    assert r.status_code == 422


def test_review_unknown_session_returns_404(client):
    r = client.post("/api/study/sessions/missing/review", json={"word_id": "w1", "known": True})
    assert r.status_code == 404
    assert r.json()["detail"] == "Session not found"


def test_stats_progress_and_achievements(client):
    r = client.get("/api/study/stats")
    assert r.status_code == 200
    stats = r.json()
    assert [c["category"] for c in stats["categories"]] == ["CET-4", "CET-6"]
    assert stats["categories"][0]["total"] == 2
    assert stats["due_now"] == 0
    assert stats["daily_goal"] == 20

    r = client.get("/api/study/progress", params={"days": 3})
    assert r.status_code == 200
    history = r.json()
    assert len(history) == 3
    assert all(day["words_reviewed"] == 0 for day in history)

    r = client.get("/api/study/achievements")
    assert r.status_code == 200
    achievements = r.json()
    assert len(achievements) == 8
    assert not any(a["unlocked"] for a in achievements)


def test_practice_questions_and_results(client):
    r = client.post("/api/practice/questions", json={"mode": "multiple_choice", "count": 3})
    assert r.status_code == 200
    body = r.json()
    assert body["time_limit_seconds"] == 15
    questions = body["questions"]
    assert len(questions) == 3
    for q in questions:
        assert q["correct_answer"] in q["options"]
        assert len(q["options"]) == 4

    answers = [q["correct_answer"] for q in questions[:-1]] + [None]
    r = client.post(
        "/api/practice/results",
        json={
            "mode": "multiple_choice",
            "questions": questions,
            "answers": answers,
            "started_at": "2025-01-10T12:00:00Z",
        },
    )
    assert r.status_code == 200
    result = r.json()
    assert result["total"] == 3
    assert result["correct"] == 2
    assert len(result["wrong_answers"]) == 1
    assert result["wrong_answers"][0]["user_answer"] == ""

    r = client.get("/api/words/w1")
    assert r.json()["times_studied"] == 0


def test_finish_uses_injected_clock_for_time_of_day_achievements(client):
    app.dependency_overrides[get_now] = lambda: NOON.replace(hour=23)
    r = client.post("/api/study/sessions/start", json={"limit": 1})
    session_id = r.json()["session_id"]
    word_id = r.json()["current_word"]["id"]
    client.post(f"/api/study/sessions/{session_id}/review", json={"word_id": word_id, "known": True})

    r = client.post(f"/api/study/sessions/{session_id}/finish")

    assert [a["id"] for a in r.json()["new_achievements"]] == [
        "first_word",
        "perfect_session",
        "night_owl",
    ]


def test_list_words_sorted(client):
    r = client.get("/api/words", params={"sort": "alphabetical_reverse"})
    assert [w["english"] for w in r.json()] == ["abstract", "absorb", "ability", "abandon"]

    client.post("/api/words", json={"english": "Zeal", "chinese": "热情", "difficulty": 5})
    r = client.get("/api/words", params={"sort": "difficulty"})
    assert r.json()[0]["english"] == "Zeal"

    r = client.get("/api/words", params={"sort": "sideways"})
    assert r.status_code == 422


def test_stats_report_mastery_distribution(client):
    r = client.post("/api/study/sessions/start", json={"limit": 1})
    session_id = r.json()["session_id"]
    word_id = r.json()["current_word"]["id"]
    client.post(f"/api/study/sessions/{session_id}/review", json={"word_id": word_id, "known": True})

    r = client.get("/api/study/stats")

    assert r.json()["mastery_distribution"] == {
        "new": 3,
        "learning": 1,
        "reviewing": 0,
        "mastered": 0,
    }


def test_reset_progress_endpoint(client):
    r = client.post("/api/study/sessions/start", json={"limit": 1})
    session_id = r.json()["session_id"]
    word_id = r.json()["current_word"]["id"]
    client.post(f"/api/study/sessions/{session_id}/review", json={"word_id": word_id, "known": True})
    client.post(f"/api/study/sessions/{session_id}/finish")

    r = client.post("/api/study/reset")
    assert r.status_code == 200
    assert r.json() == {"ok": True}

    stats = client.get("/api/study/stats").json()
    assert stats["current_streak"] == 0
    assert stats["total_words_learned"] == 0
    assert stats["today_goal_completion"] == 0.0
    assert not any(a["unlocked"] for a in client.get("/api/study/achievements").json())
    assert client.get(f"/api/words/{word_id}").json()["repetitions"] == 1


def test_practice_results_grade_against_stored_words(client):
    questions = [
        {
            "word_id": "w1",
            "mode": "multiple_choice",
            "prompt": "abandon",
            "correct_answer": "wrong on purpose",
            "options": ["放弃", "能力", "吸收", "wrong on purpose"],
        },
        {"word_id": "w2", "mode": "fill_in_blank", "prompt": "能力"},
    ]
    r = client.post(
        "/api/practice/results",
        json={
            "mode": "multiple_choice",
            "questions": questions,
            "answers": ["wrong on purpose", " Ability "],
            "started_at": "2025-01-10T11:59:00Z",
        },
    )

    assert r.status_code == 200
    result = r.json()
    assert result["correct"] == 1
    assert result["wrong_answers"] == [
        {"word_id": "w1", "user_answer": "wrong on purpose", "correct_answer": "放弃"}
    ]


def test_practice_results_reject_unknown_word(client):
    r = client.post(
        "/api/practice/results",
        json={
            "mode": "listening",
            "questions": [{"word_id": "nope", "mode": "listening", "prompt": "x"}],
            "answers": ["x"],
            "started_at": "2025-01-10T11:59:00Z",
        },
    )
    assert r.status_code == 400
