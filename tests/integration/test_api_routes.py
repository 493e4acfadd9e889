"""
API integration tests using FastAPI TestClient with in-memory DB.
"""
import pytest
from fastapi.testclient import TestClient

from tests.sample_content import Q2_HALF, Q2_PERFECT, sample_path_definition


def register(client: TestClient, email: str, password: str = "securepass123") -> str:
    """Register (which also sets the auth cookie) and return the new user id."""
    response = client.post(
        "/auth/register",
        json={"email": email, "password": password, "confirm_password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()["user_id"]


def complete(client: TestClient, *video_ids: str) -> dict:
    body = {}
    for video_id in video_ids:
        response = client.post(f"/paths/path-1/videos/{video_id}/complete")
        assert response.status_code == 200, response.text
        body = response.json()
    return body


@pytest.mark.integration
class TestHealthRoutes:
    """Health and root endpoints (no auth)."""

    def test_root_returns_healthy(self, api_client: TestClient):
        response = api_client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Pathway is Healthy"}

    def test_request_id_echoed(self, api_client: TestClient):
        response = api_client.get("/", headers={"x-request-id": "abc123"})
        assert response.headers.get("x-request-id") == "abc123"


@pytest.mark.integration
class TestAuthRoutes:
    """Auth: register, login, logout, me."""

    def test_register_sets_cookie(self, api_client: TestClient):
        user_id = register(api_client, "newuser@example.com")
        me = api_client.get("/auth/me")
        assert me.status_code == 200
        assert me.json()["id"] == user_id
        assert me.json()["email"] == "newuser@example.com"

    def test_register_duplicate_fails(self, api_client: TestClient):
        register(api_client, "dup@example.com")
        response = api_client.post(
            "/auth/register",
            json={"email": "dup@example.com", "password": "otherpass1", "confirm_password": "otherpass1"},
        )
        assert response.status_code == 400

    def test_password_mismatch(self, api_client: TestClient):
        response = api_client.post(
            "/auth/register",
            json={"email": "x@example.com", "password": "securepass123", "confirm_password": "different123"},
        )
        assert response.status_code == 400

    def test_login_logout(self, api_client: TestClient):
        register(api_client, "login@example.com", "mypass1234")
        api_client.post("/auth/logout")
        assert api_client.get("/auth/me").status_code == 401

        bad = api_client.post("/auth/login", json={"email": "login@example.com", "password": "wrong-pass"})
        assert bad.status_code == 401

        ok = api_client.post("/auth/login", json={"email": "login@example.com", "password": "mypass1234"})
        assert ok.status_code == 200
        assert ok.json()["token_set"] is True
        assert api_client.get("/auth/me").status_code == 200

    def test_protected_routes_need_login(self, api_client: TestClient):
        assert api_client.get("/paths").status_code == 401
        assert api_client.get("/user/progress").status_code == 401


@pytest.mark.integration
class TestPathRoutes:
    def test_list_and_get(self, api_client: TestClient, seeded_store):
        register(api_client, "learner@example.com")
        listing = api_client.get("/paths")
        assert listing.status_code == 200
        assert [p["id"] for p in listing.json()["paths"]] == ["path-1"]
        assert listing.json()["paths"][0]["milestone_count"] == 3

        path = api_client.get("/paths/path-1").json()
        assert path["milestones"][1]["quiz_ref"]["quiz_id"] == "q2"
        assert api_client.get("/paths/missing").status_code == 404

    def test_create_path(self, api_client: TestClient):
        user_id = register(api_client, "author@example.com")
        definition = sample_path_definition(creator_id="ignored")
        definition.update(id="path-new", is_public=False)
        response = api_client.post("/paths", json=definition)
        assert response.status_code == 200, response.text
        assert response.json()["creator_id"] == user_id

        mine = api_client.get("/paths", params={"mine": True}).json()
        assert [p["id"] for p in mine["paths"]] == ["path-new"]

    def test_invalid_path_is_400(self, api_client: TestClient):
        register(api_client, "author@example.com")
        definition = sample_path_definition()
        definition["milestones"][2]["order"] = 9
        response = api_client.post("/paths", json=definition)
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_only_creator_may_replace(self, api_client: TestClient, seeded_store):
        register(api_client, "creator@example.com")  # user 1 owns path-1
        api_client.post("/auth/logout")
        register(api_client, "intruder@example.com")
        response = api_client.post("/paths", json=sample_path_definition())
        assert response.status_code == 403


@pytest.mark.integration
class TestProgressFlow:
    def test_unlock_and_quiz_flow(self, api_client: TestClient, seeded_store):
        register(api_client, "learner@example.com")

        progress = api_client.get("/paths/path-1/progress").json()
        assert progress["completed_milestones"] == []
        assert progress["current_milestone_id"] == "m1"

        unlock = api_client.get("/paths/path-1/milestones/m2/unlock").json()
        assert unlock["is_unlocked"] is False
        assert unlock["missing"]["previous_milestone"] == "m1"

        body = complete(api_client, "v1", "v2")
        assert body["path_progress"]["completed_milestones"] == ["m1"]
        assert body["video"]["completed"] is True
        assert api_client.get("/paths/path-1/milestones/m2/unlock").json()["is_unlocked"] is True

        locked = api_client.post("/paths/path-1/milestones/m2/quiz/attempts")
        assert locked.status_code == 403
        assert locked.json()["code"] == "quiz_locked"
        assert locked.json()["missing"]["videos"] == ["v3"]

        complete(api_client, "v3")
        quiz = api_client.get("/paths/path-1/milestones/m2/quiz").json()
        assert quiz["unlock"]["is_unlocked"] is True
        assert quiz["quiz"]["passing_score"] == 80
        assert quiz["question_count"] == 2

        started = api_client.post("/paths/path-1/milestones/m2/quiz/attempts")
        assert started.status_code == 200, started.text
        questions = started.json()["questions"]
        assert [q["id"] for q in questions] == ["q2-1", "q2-2"]
        assert all("correct_option_index" not in q and "correct_answer" not in q for q in questions)

        attempt_id = started.json()["attempt"]["id"]
        submitted = api_client.post(f"/quiz/attempts/{attempt_id}/submit", json={"answers": Q2_HALF})
        assert submitted.status_code == 200, submitted.text
        assert submitted.json()["attempt"]["score"] == 50
        assert submitted.json()["quiz_progress"]["is_completed"] is False

        again = api_client.post(f"/quiz/attempts/{attempt_id}/submit", json={"answers": Q2_PERFECT})
        assert again.status_code == 400

        second = api_client.post("/paths/path-1/milestones/m2/quiz/attempts").json()["attempt"]["id"]
        passed = api_client.post(f"/quiz/attempts/{second}/submit", json={"answers": Q2_PERFECT}).json()
        assert passed["quiz_progress"]["best_score"] == 100
        assert passed["path_progress"]["completed_milestones"] == ["m1", "m2"]
        assert passed["path_progress"]["current_milestone_id"] == "m3"

        exhausted = api_client.post("/paths/path-1/milestones/m2/quiz/attempts")
        assert exhausted.status_code == 409

        status = api_client.get("/paths/path-1/milestones/m2/status").json()
        assert status["is_completed"] is True

        stats = api_client.get("/quiz/q2/stats").json()
        assert stats["total_attempts"] == 2
        assert stats["best_score"] == 100

        analytics = api_client.get("/paths/path-1/analytics").json()
        assert analytics["completed_videos"] == 3
        assert analytics["completed_quizzes"] == 1

        unlocks = api_client.get("/paths/path-1/unlocks").json()["unlocks"]
        assert {k: v["is_unlocked"] for k, v in unlocks.items()} == {"m1": True, "m2": True, "m3": True}

        user_progress = api_client.get("/user/progress").json()
        assert [p["path_id"] for p in user_progress["paths"]] == ["path-1"]
        assert api_client.get("/user/streak").json()["current_streak"] == 1

    def test_video_position_and_refresh(self, api_client: TestClient, seeded_store):
        register(api_client, "watcher@example.com")
        response = api_client.post("/paths/path-1/videos/v1/progress", json={"position": 95.5, "watched_ms": 95_500})
        assert response.status_code == 200
        assert response.json()["last_position"] == 95.5
        assert response.json()["completed"] is False

        assert api_client.post("/paths/path-1/videos/nope/progress", json={"position": 1}).status_code == 404

        refreshed = api_client.post("/paths/path-1/progress/refresh").json()
        assert refreshed["completed_videos"] == []

    def test_submitting_someone_elses_attempt(self, api_client: TestClient, seeded_store):
        register(api_client, "first@example.com")
        complete(api_client, "v1", "v2", "v3")
        attempt_id = api_client.post("/paths/path-1/milestones/m2/quiz/attempts").json()["attempt"]["id"]
        api_client.post("/auth/logout")

        register(api_client, "second@example.com")
        response = api_client.post(f"/quiz/attempts/{attempt_id}/submit", json={"answers": Q2_PERFECT})
        assert response.status_code == 403


@pytest.mark.integration
class TestPrivatePathVisibility:
    def test_private_path_hidden_from_every_route(self, api_client: TestClient):
        register(api_client, "author@example.com")
        definition = sample_path_definition()
        definition.update(id="path-private", is_public=False)
        assert api_client.post("/paths", json=definition).status_code == 200
        assert api_client.get("/paths/path-private/progress").status_code == 200
        api_client.post("/auth/logout")

        register(api_client, "outsider@example.com")
        base = "/paths/path-private"
        for method, url in [
            ("get", base),
            ("get", f"{base}/progress"),
            ("post", f"{base}/progress/refresh"),
            ("get", f"{base}/analytics"),
            ("get", f"{base}/unlocks"),
            ("get", f"{base}/milestones/m1/unlock"),
            ("get", f"{base}/milestones/m1/status"),
            ("get", f"{base}/milestones/m2/quiz"),
            ("post", f"{base}/milestones/m2/quiz/attempts"),
            ("post", f"{base}/videos/v1/complete"),
        ]:
            response = getattr(api_client, method)(url)
            assert response.status_code == 404, (method, url, response.text)
        assert api_client.post(f"{base}/videos/v1/progress", json={"position": 3}).status_code == 404
