"""Tests for practice solve, review queue, draft and health endpoints."""

import time

import pytest

pytestmark = pytest.mark.integration

USER_HEADERS = {"X-User-Id": "user-api"}


def test_health(api_client):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_record_solve(api_client):
    response = api_client.post(
        "/api/reviews/solves",
        json={"question_id": "q1", "base_reward": 20, "hints_used": 1},
        headers=USER_HEADERS,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["first_solve"] is True
    assert data["xp_earned"] == 18
    assert data["multiplier"] == 0.9
    assert data["interval_days"] == 1
    assert data["current_streak"] == 1


def test_repeat_solve_earns_nothing(api_client):
    body = {"question_id": "q1", "base_reward": 20}
    api_client.post("/api/reviews/solves", json=body, headers=USER_HEADERS)

    data = api_client.post("/api/reviews/solves", json=body, headers=USER_HEADERS).json()

    assert data["first_solve"] is False
    assert data["xp_earned"] == 0
    assert data["total_xp"] == 20


def test_record_review(api_client):
    api_client.post("/api/reviews/solves", json={"question_id": "q1", "base_reward": 20}, headers=USER_HEADERS)

    response = api_client.post("/api/reviews/q1/review", json={"quality": 4}, headers=USER_HEADERS)

    assert response.status_code == 200
    assert response.json()["review_count"] == 1


def test_review_without_schedule_is_404(api_client):
    response = api_client.post("/api/reviews/q9/review", json={"quality": 4}, headers=USER_HEADERS)

    assert response.status_code == 404


def test_review_quality_out_of_range_is_422(api_client):
    response = api_client.post("/api/reviews/q1/review", json={"quality": 7}, headers=USER_HEADERS)

    assert response.status_code == 422


def test_review_queue(api_client, clock):
    api_client.post("/api/reviews/solves", json={"question_id": "q1", "base_reward": 20}, headers=USER_HEADERS)

    data = api_client.get("/api/reviews/due", headers=USER_HEADERS).json()
    assert data["due"] == []
    assert [r["question_id"] for r in data["upcoming"]] == ["q1"]

    clock.advance(86400)
    data = api_client.get("/api/reviews/due", headers=USER_HEADERS).json()
    assert [r["question_id"] for r in data["due"]] == ["q1"]
    assert data["upcoming"] == []


def test_draft_save_then_read(api_client):
    response = api_client.put(
        "/api/drafts/q1",
        json={"code": "print('draft')", "language": "python", "time_spent": 40},
        headers=USER_HEADERS,
    )
    assert response.status_code == 202

    # Reading flushes the pending save
    draft = api_client.get("/api/drafts/q1", headers=USER_HEADERS).json()

    assert draft["code"] == "print('draft')"
    assert draft["time_spent"] == 40


def test_latest_draft_wins(api_client):
    for version in range(3):
        api_client.put(
            "/api/drafts/q1",
            json={"code": f"v{version}", "language": "python"},
            headers=USER_HEADERS,
        )
    time.sleep(0.2)

    assert api_client.get("/api/drafts/q1", headers=USER_HEADERS).json()["code"] == "v2"


def test_missing_draft_is_404(api_client):
    assert api_client.get("/api/drafts/q404", headers=USER_HEADERS).status_code == 404
