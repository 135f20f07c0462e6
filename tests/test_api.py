"""End-to-end tests for the /api endpoints via FastAPI's TestClient."""

import inspect

import pytest
from fastapi.testclient import TestClient

from journeyquest import engine, storage
from journeyquest.app import create_app
from journeyquest.routes.attempts import get_ledger

ADA = {"X-Learner-Id": "ada"}
GRACE = {"X-Learner-Id": "grace"}


@pytest.fixture
def client(ledger):
    app = create_app(storage.data_dir(), presets_dir=storage.presets_dir())
    app.dependency_overrides[get_ledger] = lambda: ledger
    return TestClient(app)


def _start(client, journey_id: str = "crossing-the-delaware", headers=ADA) -> dict:
    resp = client.post("/api/attempts", json={"journey_id": journey_id}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


# ── Health / settings ────────────────────────────────────


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_settings_roundtrip(client):
    resp = client.patch("/api/settings", json={"scoring": {"accuracy_bonus": 25}, "bogus": 1})
    assert resp.status_code == 200
    assert resp.json()["scoring"]["accuracy_bonus"] == 25
    assert "bogus" not in resp.json()
    assert client.get("/api/settings").json()["scoring"]["accuracy_bonus"] == 25


# ── Journeys ─────────────────────────────────────────────


def test_list_journeys_includes_preset(client, journey):
    ids = [j["id"] for j in client.get("/api/journeys").json()]
    assert "the-salt-march" in ids
    assert "crossing-the-delaware" in ids


def test_list_journeys_by_grade(client, journey):
    journeys = client.get("/api/journeys", params={"grade": "5"}).json()
    assert [j["id"] for j in journeys] == ["crossing-the-delaware"]
    assert journeys[0]["chapters"] == 3


def test_get_journey(client, journey):
    resp = client.get("/api/journeys/crossing-the-delaware")
    assert resp.status_code == 200
    assert resp.json()["chapters"][0]["title"] == "McConkey's Ferry"


def test_get_journey_missing(client):
    assert client.get("/api/journeys/nope").status_code == 404


def test_journey_stats_missing(client):
    resp = client.get("/api/journeys/nope/stats")
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


# ── Attempts ─────────────────────────────────────────────


def test_missing_learner_header(client, journey):
    resp = client.post("/api/attempts", json={"journey_id": journey.id})
    assert resp.status_code == 401


def test_start_unknown_journey(client):
    resp = client.post("/api/attempts", json={"journey_id": "nope"}, headers=ADA)
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


def test_start_and_resume(client, journey):
    attempt = _start(client)
    assert attempt["current_chapter"] == 1
    assert attempt["has_started"] is False
    resp = client.post(
        "/api/attempts", json={"journey_id": journey.id, "resume": True}, headers=ADA
    )
    assert resp.json()["id"] == attempt["id"]


def test_other_learner_forbidden(client, journey):
    attempt = _start(client)
    resp = client.get(f"/api/attempts/{attempt['id']}", headers=GRACE)
    assert resp.status_code == 403
    assert resp.json()["error"] == "NotAuthorized"
    resp = client.post(
        f"/api/attempts/{attempt['id']}/visit", json={"chapter_number": 1}, headers=GRACE
    )
    assert resp.status_code == 403


def test_unknown_attempt(client):
    assert client.get("/api/attempts/not-an-id", headers=ADA).status_code == 404


def test_error_codes(client, journey):
    attempt_id = _start(client)["id"]
    base = f"/api/attempts/{attempt_id}"

    resp = client.post(f"{base}/visit", json={"chapter_number": 99}, headers=ADA)
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidChapter"

    resp = client.post(f"{base}/visit", json={"chapter_number": 2}, headers=ADA)
    assert resp.status_code == 409
    assert resp.json()["error"] == "StaleOperation"

    resp = client.post(
        f"{base}/decision",
        json={"chapter_number": 1, "decision_index": 0, "option_index": 9},
        headers=ADA,
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidOption"

    resp = client.post(
        f"{base}/discovery", json={"chapter_number": 1, "discovery_index": 9}, headers=ADA
    )
    assert resp.json()["error"] == "InvalidDiscoveryIndex"

    resp = client.post(
        f"{base}/challenge",
        json={"chapter_number": 1, "challenge_index": 9, "submission": "x"},
        headers=ADA,
    )
    assert resp.json()["error"] == "InvalidChallengeIndex"


def test_request_validation(client, journey):
    attempt_id = _start(client)["id"]
    resp = client.post(
        f"/api/attempts/{attempt_id}/visit",
        json={"chapter_number": 1, "time_spent_seconds": -5},
        headers=ADA,
    )
    assert resp.status_code == 422


def test_full_journey_over_http(client, journey, ledger):
    attempt_id = _start(client)["id"]
    base = f"/api/attempts/{attempt_id}"

    client.post(f"{base}/visit", json={"chapter_number": 1, "time_spent_seconds": 120}, headers=ADA)
    disc = client.post(
        f"{base}/discovery", json={"chapter_number": 1, "discovery_index": 0}, headers=ADA
    ).json()
    assert disc["discovery"]["name"] == "Orders"
    assert disc["already_collected"] is False

    challenge = client.post(
        f"{base}/challenge",
        json={"chapter_number": 1, "challenge_index": 0, "submission": "liberty "},
        headers=ADA,
    ).json()
    assert challenge["success"] is True
    assert challenge["points_earned"] == 20

    decision = client.post(
        f"{base}/decision",
        json={"chapter_number": 1, "decision_index": 0, "option_index": 0},
        headers=ADA,
    ).json()
    assert decision["next_chapter"] == 2
    assert decision["points_awarded"] == 10

    client.post(f"{base}/visit", json={"chapter_number": 2, "time_spent_seconds": 200}, headers=ADA)
    client.post(f"{base}/discovery", json={"chapter_number": 2, "discovery_index": 0}, headers=ADA)
    client.post(
        f"{base}/challenge",
        json={"chapter_number": 2, "challenge_index": 0, "submission": 1},
        headers=ADA,
    )
    client.post(
        f"{base}/decision",
        json={"chapter_number": 2, "decision_index": 0, "option_index": 0},
        headers=ADA,
    )

    resp = client.post(f"{base}/complete", headers=ADA)
    assert resp.status_code == 200
    result = resp.json()
    assert result["rewards_pending"] is False
    assert result["attempt"]["status"] == "completed"
    assert result["attempt"]["total_points"] == 205
    assert result["attempt"]["engagement_score"] == 100
    assert result["attempt"]["gamification_rewards"]["level"] == 7
    assert ledger.calls == [("ada", 205)]

    resp = client.post(f"{base}/complete", headers=ADA)
    assert resp.status_code == 409
    assert resp.json()["error"] == "InvalidState"

    stats = client.get(f"/api/journeys/{journey.id}/stats").json()
    assert stats["times_completed"] == 1


def test_complete_with_ledger_down(client, journey, broken_ledger):
    client.app.dependency_overrides[get_ledger] = lambda: broken_ledger
    attempt_id = _start(client)["id"]
    resp = client.post(f"/api/attempts/{attempt_id}/complete", headers=ADA)
    assert resp.status_code == 200
    assert resp.json()["rewards_pending"] is True
    assert resp.json()["notice"] == "RewardLedgerUnavailable"
    assert storage.get_attempt(attempt_id).status == "completed"


def test_learner_history(client, journey):
    _start(client)
    _start(client, "the-salt-march")
    _start(client, headers=GRACE)
    resp = client.get("/api/learners/ada/attempts", headers=ADA)
    assert resp.status_code == 200
    assert {a["journey_id"] for a in resp.json()} == {"crossing-the-delaware", "the-salt-march"}
    assert client.get("/api/learners/ada/attempts", headers=GRACE).status_code == 403


def test_check_ledger_unreachable(client):
    resp = client.post("/api/check-ledger", json={"url": "http://127.0.0.1:9"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": False}


def test_progression_routes_run_in_threadpool(client):
    coroutine = {
        route.path: inspect.iscoroutinefunction(route.endpoint)
        for route in client.app.routes
        if route.path.startswith(("/api/attempts", "/api/learners"))
    }
    assert coroutine.pop("/api/attempts/{attempt_id}/complete") is True
    assert set(coroutine) == {
        "/api/attempts",
        "/api/attempts/{attempt_id}",
        "/api/attempts/{attempt_id}/visit",
        "/api/attempts/{attempt_id}/discovery",
        "/api/attempts/{attempt_id}/decision",
        "/api/attempts/{attempt_id}/challenge",
        "/api/learners/{learner_id}/attempts",
    }
    assert not any(coroutine.values())


def test_visit_unknown_attempt_leaves_no_lock(client):
    attempt_id = "e" * 32
    resp = client.post(f"/api/attempts/{attempt_id}/visit", json={"chapter_number": 1}, headers=ADA)
    assert resp.status_code == 404
    assert attempt_id not in engine._locks
