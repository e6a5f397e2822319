"""Tests for the /ai routes."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from cogload.api.ai import get_tip_service
from cogload.db.models import Course, Deadline, Enrollment, User
from cogload.jobs.daily_load import resolve_today
from cogload.main import app
from cogload.services.tip_service import TipService

START = date(2025, 3, 10)


@pytest.fixture
def client(db_engine, session_factory, fake_generator):
    app.dependency_overrides[get_tip_service] = lambda: TipService(
        fake_generator, session_factory=session_factory, timeout_seconds=5
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def course(seed):
    today = resolve_today()
    seed(
        User(id="prof", name="Dr. Rao", role="professor"),
        User(id="s1", name="Asha", role="student"),
        User(id="s2", name="Ben", role="student"),
        Course(id="algo", name="Algorithms", professor_id="prof"),
    )
    seed(
        Enrollment(student_id="s1", course_id="algo"),
        Enrollment(student_id="s2", course_id="algo"),
        Deadline(id="mid", title="Midterm", course_id="algo", deadline_date=START, difficulty=5, type="exam"),
        Deadline(id="lab", title="Lab 3", course_id="algo", deadline_date=START, difficulty=2, type="assignment"),
        Deadline(id="hw", title="Homework", course_id="algo", deadline_date=today, difficulty=4, type="assignment"),
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_student_load(client, course):
    response = client.get("/ai/load/s1", params={"days": 3, "start": START.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [d["date"] for d in body["load_data"]] == ["2025-03-10", "2025-03-11", "2025-03-12"]

    first = body["load_data"][0]
    # exam 30*2*3 + lab 15*1*3 = 225, clamped
    assert first["load_score"] == 100
    assert first["risk_level"] == "danger"
    assert {d["title"] for d in first["deadlines"]} >= {"Midterm", "Lab 3"}
    assert body["peak_days"][0]["date"] == "2025-03-10"


def test_student_load_unknown_student(client, course):
    response = client.get("/ai/load/nobody")

    assert response.status_code == 404


def test_course_conflicts(client, course):
    response = client.get("/ai/conflicts/algo")

    assert response.status_code == 200
    conflicts = response.json()["conflicts"]
    march = [c for c in conflicts if c["date"] == "2025-03-10"]
    assert len(march) == 1
    assert march[0]["severity"] == "critical"
    assert march[0]["total_difficulty"] == 7
    assert len(march[0]["suggested_dates"]) == 3


def test_course_conflicts_unknown_course(client, db_engine):
    assert client.get("/ai/conflicts/missing").status_code == 404


def test_student_tip(client, course, fake_generator):
    response = client.post("/ai/student-tip", json={"student_id": "s1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["tip"] == fake_generator.text
    assert body["tip_id"]
    assert len(body["load_data"]) == 7

    tips = client.get("/ai/tips/s1").json()["tips"]
    assert [t["id"] for t in tips] == [body["tip_id"]]


def test_student_tip_generation_failure_returns_502(client, course, session_factory, generator_factory):
    failing = generator_factory(error=RuntimeError("provider down"))
    app.dependency_overrides[get_tip_service] = lambda: TipService(failing, session_factory=session_factory, timeout_seconds=5)

    response = client.post("/ai/student-tip", json={"student_id": "s1"})

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "tip generation failed"
    assert len(body["load_data"]) == 7
    assert client.get("/ai/tips/s1").json()["tips"] == []


def test_student_tip_unknown_student(client, db_engine):
    assert client.post("/ai/student-tip", json={"student_id": "ghost"}).status_code == 404


def test_professor_suggestion(client, course, fake_generator):
    response = client.post("/ai/professor-suggestion", json={"course_id": "algo"})

    assert response.status_code == 200
    body = response.json()
    assert body["suggestion"] == fake_generator.text
    assert body["priority"] == "high"
    assert len(body["class_load_data"]) == 14
    assert any(c["severity"] == "critical" for c in body["conflicts"])

    tips = client.get("/ai/tips/prof").json()["tips"]
    assert tips[0]["tip_type"] == "professor_suggestion"
    assert tips[0]["course_id"] == "algo"


def test_conflict_warning(client, course, fake_generator):
    response = client.post("/ai/conflict-warning", json={"course_id": "algo"})

    assert response.status_code == 200
    body = response.json()
    assert body["warning"] == fake_generator.text
    assert body["priority"] == "high"
    assert body["conflicts"][0]["date"] == "2025-03-10"

    prompt = fake_generator.calls[0]["prompt"]
    assert "Multiple deadlines on 2025-03-10" in prompt
    assert "Less crowded dates nearby" in prompt

    tips = client.get("/ai/tips/prof").json()["tips"]
    assert [(t["id"], t["tip_type"], t["affected_dates"]) for t in tips] == [
        (body["tip_id"], "conflict_warning", ["2025-03-10"])
    ]


def test_conflict_warning_without_conflicts(client, seed, fake_generator):
    seed(
        User(id="prof", name="Dr. Rao", role="professor"),
        Course(id="calm", name="Calm Course", professor_id="prof"),
        Deadline(id="solo", title="Solo", course_id="calm", deadline_date=START, difficulty=3, type="assignment"),
    )

    response = client.post("/ai/conflict-warning", json={"course_id": "calm"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "warning": None, "tip_id": None, "conflicts": []}
    assert fake_generator.calls == []


def test_conflict_warning_requires_professor(client, seed):
    seed(Course(id="orphan", name="Orphan Course"))

    assert client.post("/ai/conflict-warning", json={"course_id": "orphan"}).status_code == 404
    assert client.post("/ai/conflict-warning", json={"course_id": "missing"}).status_code == 404


def test_mark_tip_read(client, course):
    tip_id = client.post("/ai/student-tip", json={"student_id": "s1"}).json()["tip_id"]

    response = client.put(f"/ai/tips/{tip_id}/read")

    assert response.status_code == 200
    assert response.json()["tip"]["is_read"] is True
    assert client.put("/ai/tips/missing/read").status_code == 404


def test_tips_limit_validation(client, db_engine):
    assert client.get("/ai/tips/s1", params={"limit": 0}).status_code == 422
    assert client.get("/ai/tips/s1").json() == {"success": True, "tips": []}
