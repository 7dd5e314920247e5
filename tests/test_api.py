from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from exercise_tracker.domain.contracts import LogQuery, NewExercise
from exercise_tracker.domain.errors import DuplicateError, StoreError
from exercise_tracker.domain.records import Exercise, User
from exercise_tracker.domain.service import TrackerService
from exercise_tracker.main import create_app

FIXED_NOW = datetime(2024, 1, 1, 15, 30, tzinfo=timezone.utc)
TODAY = "Mon Jan 01 2024"


class FakeRecordStore:
    """In-memory store mimicking the MongoDB-backed behaviors."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.exercises: list[Exercise] = []
        self.fail_with: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def create_user(self, username: str) -> User:
        self._maybe_fail()
        if any(user.username == username for user in self.users.values()):
            raise DuplicateError("Username already exists")
        user = User(user_id=uuid.uuid4().hex, username=username)
        self.users[user.user_id] = user
        return user

    def list_users(self) -> list[User]:
        self._maybe_fail()
        return list(self.users.values())

    def find_user_by_id(self, user_id: str) -> User | None:
        self._maybe_fail()
        return self.users.get(user_id)

    def create_exercise(self, payload: NewExercise) -> Exercise:
        self._maybe_fail()
        exercise = Exercise(
            exercise_id=uuid.uuid4().hex,
            user_id=payload.user_id,
            description=payload.description,
            duration=payload.duration,
            date=payload.date,
        )
        self.exercises.append(exercise)
        return exercise

    def query_exercises(self, user_id: str, query: LogQuery) -> list[Exercise]:
        self._maybe_fail()
        results = [exercise for exercise in self.exercises if exercise.user_id == user_id]
        if query.date_from:
            results = [exercise for exercise in results if exercise.date >= query.date_from]
        if query.date_to:
            results = [exercise for exercise in results if exercise.date <= query.date_to]
        results.sort(key=lambda exercise: exercise.date)
        if query.limit:
            results = results[: query.limit]
        return results


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def api_client(store):
    """Provide a test client wired to an isolated in-memory store."""
    service = TrackerService(store, clock=lambda: FIXED_NOW)
    with TestClient(create_app(service)) as client:
        yield client


def _create_user(client: TestClient, username: str) -> str:
    response = client.post("/api/users", json={"username": username})
    assert response.status_code == 200
    return response.json()["id"]


def test_health_check(api_client):
    response = api_client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "OK"}


def test_create_user_returns_distinct_ids(api_client):
    first = api_client.post("/api/users", json={"username": "alice"}).json()
    second = api_client.post("/api/users", json={"username": "bob"}).json()

    assert first["username"] == "alice"
    assert second["username"] == "bob"
    assert first["id"] and second["id"]
    assert first["id"] != second["id"]


def test_create_user_rejects_duplicate_username(api_client):
    _create_user(api_client, "alice")

    response = api_client.post("/api/users", json={"username": "alice"})
    assert response.status_code == 400
    assert response.json() == {"error": "Username already exists"}


@pytest.mark.parametrize("body", [{}, {"username": ""}, {"username": "   "}])
def test_create_user_requires_username(api_client, body):
    response = api_client.post("/api/users", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Username is required"}


def test_create_user_accepts_form_body(api_client):
    response = api_client.post("/api/users", data={"username": "formuser"})
    assert response.status_code == 200
    assert response.json()["username"] == "formuser"


def test_malformed_json_body_is_rejected(api_client):
    response = api_client.post(
        "/api/users",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Malformed request body"}


def test_list_users(api_client):
    alice = _create_user(api_client, "alice")
    bob = _create_user(api_client, "bob")

    response = api_client.get("/api/users")
    assert response.status_code == 200
    assert response.json() == [
        {"username": "alice", "id": alice},
        {"username": "bob", "id": bob},
    ]


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"description": "run", "duration": "30"},
        {"description": "", "duration": "abc", "date": "nope"},
        {"description": 123, "duration": "30"},
        {"duration": [1]},
        {"date": 5},
    ],
)
def test_add_exercise_unknown_user_is_not_found(api_client, body):
    response = api_client.post("/api/users/does-not-exist/exercises", json=body)
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"duration": "30"}, "Description and duration are required"),
        ({"description": "run"}, "Description and duration are required"),
        ({"description": "run", "duration": "abc"}, "Invalid duration"),
        ({"description": "run", "duration": "0"}, "Invalid duration"),
        ({"description": "run", "duration": -5}, "Invalid duration"),
        ({"description": "run", "duration": "30", "date": "not-a-date"}, "Invalid date"),
        ({"description": "run", "duration": "30", "date": 5}, "Invalid date"),
        ({"description": "run", "duration": True}, "Invalid duration"),
        ({"description": "run", "duration": [1]}, "Invalid duration"),
        ({"description": "run", "duration": "9" * 5000}, "Invalid duration"),
        ({"description": "run", "duration": 10**20}, "Invalid duration"),
        ({"description": ["run"], "duration": "30"}, "Invalid description"),
    ],
)
def test_add_exercise_validation_errors(api_client, body, message):
    user_id = _create_user(api_client, "alice")

    response = api_client.post(f"/api/users/{user_id}/exercises", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_add_exercise_with_explicit_date(api_client):
    user_id = _create_user(api_client, "alice")

    response = api_client.post(
        f"/api/users/{user_id}/exercises",
        json={"description": "swim", "duration": "45", "date": "2024-02-03"},
    )
    assert response.status_code == 200
    assert response.json() == {
        "username": "alice",
        "description": "swim",
        "duration": 45,
        "date": "Sat Feb 03 2024",
        "id": user_id,
    }


def test_add_exercise_accepts_form_body_and_numeric_prefix(api_client):
    user_id = _create_user(api_client, "alice")

    response = api_client.post(
        f"/api/users/{user_id}/exercises",
        data={"description": "row", "duration": "20min", "date": ""},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["duration"] == 20
    assert body["date"] == TODAY


def test_alice_scenario(api_client):
    created = api_client.post("/api/users", json={"username": "alice"}).json()
    alice_id = created["id"]
    assert created == {"username": "alice", "id": alice_id}

    added = api_client.post(
        f"/api/users/{alice_id}/exercises",
        json={"description": "run", "duration": "30"},
    ).json()
    assert added == {
        "username": "alice",
        "description": "run",
        "duration": 30,
        "date": TODAY,
        "id": alice_id,
    }

    logs = api_client.get(f"/api/users/{alice_id}/logs").json()
    assert logs == {
        "username": "alice",
        "count": 1,
        "id": alice_id,
        "log": [{"description": "run", "duration": 30, "date": TODAY}],
    }


def _seed_week(client: TestClient, user_id: str) -> None:
    # Deliberately inserted out of date order.
    for day in ("2024-01-05", "2024-01-02", "2024-01-04", "2024-01-01", "2024-01-03"):
        response = client.post(
            f"/api/users/{user_id}/exercises",
            json={"description": f"workout {day}", "duration": 10, "date": day},
        )
        assert response.status_code == 200


def test_logs_are_sorted_by_date(api_client):
    user_id = _create_user(api_client, "alice")
    _seed_week(api_client, user_id)

    body = api_client.get(f"/api/users/{user_id}/logs").json()
    assert body["count"] == len(body["log"]) == 5
    assert [entry["description"] for entry in body["log"]] == [
        "workout 2024-01-01",
        "workout 2024-01-02",
        "workout 2024-01-03",
        "workout 2024-01-04",
        "workout 2024-01-05",
    ]


def test_logs_filter_with_inclusive_bounds(api_client):
    user_id = _create_user(api_client, "alice")
    _seed_week(api_client, user_id)

    body = api_client.get(
        f"/api/users/{user_id}/logs", params={"from": "2024-01-02", "to": "2024-01-04"}
    ).json()
    assert body["count"] == 3
    assert [entry["date"] for entry in body["log"]] == [
        "Tue Jan 02 2024",
        "Wed Jan 03 2024",
        "Thu Jan 04 2024",
    ]

    only_from = api_client.get(f"/api/users/{user_id}/logs", params={"from": "2024-01-04"}).json()
    assert only_from["count"] == 2

    only_to = api_client.get(f"/api/users/{user_id}/logs", params={"to": "2024-01-01"}).json()
    assert only_to["count"] == 1


def test_logs_limit_returns_earliest_entries(api_client):
    user_id = _create_user(api_client, "alice")
    _seed_week(api_client, user_id)

    body = api_client.get(f"/api/users/{user_id}/logs", params={"limit": "2"}).json()
    assert body["count"] == 2
    assert [entry["date"] for entry in body["log"]] == ["Mon Jan 01 2024", "Tue Jan 02 2024"]


@pytest.mark.parametrize(
    "params",
    [
        {"limit": "abc"},
        {"limit": "0"},
        {"limit": "9" * 5000},
        {"from": "garbage"},
        {"to": "2024-13-45"},
    ],
)
def test_logs_ignore_unparsable_filters(api_client, params):
    user_id = _create_user(api_client, "alice")
    _seed_week(api_client, user_id)

    body = api_client.get(f"/api/users/{user_id}/logs", params=params).json()
    assert body["count"] == 5


def test_logs_unknown_user_is_not_found(api_client):
    response = api_client.get("/api/users/missing/logs")
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_store_failures_are_generic_server_errors(api_client, store):
    store.fail_with = StoreError("connection refused by 10.0.0.5")

    for response in (
        api_client.post("/api/users", json={"username": "alice"}),
        api_client.get("/api/users"),
        api_client.get("/api/users/abc/logs"),
    ):
        assert response.status_code == 500
        assert response.json() == {"error": "Server error"}


def test_unexpected_errors_are_trapped(api_client, store):
    store.fail_with = RuntimeError("boom")

    response = api_client.get("/api/users", headers={"Origin": "https://example.org"})

    assert response.status_code == 500
    assert response.json() == {"error": "Something went wrong!"}
    assert response.headers["access-control-allow-origin"] == "*"

    store.fail_with = None
    metrics = api_client.get("/metrics").text
    assert 'exercise_tracker_http_requests_total{method="GET",status="500"}' in metrics


def test_unknown_routes_fall_back_to_404(api_client):
    api_miss = api_client.get("/api/nothing/here")
    assert api_miss.status_code == 404
    assert api_miss.json() == {"error": "API route not found"}

    other_miss = api_client.get("/nothing/here")
    assert other_miss.status_code == 404
    assert other_miss.json() == {"error": "Route not found"}


def test_cors_allows_any_origin(api_client):
    response = api_client.get("/api/health", headers={"Origin": "https://example.org"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_landing_page_and_metrics(api_client):
    page = api_client.get("/")
    assert page.status_code == 200
    assert "text/html" in page.headers["content-type"]

    api_client.get("/api/health")
    metrics = api_client.get("/metrics")
    assert metrics.status_code == 200
    assert "exercise_tracker_http_requests_total" in metrics.text


def test_add_exercise_accepts_numeric_description(api_client):
    user_id = _create_user(api_client, "alice")

    response = api_client.post(
        f"/api/users/{user_id}/exercises",
        json={"description": 123, "duration": 5},
    )
    assert response.status_code == 200
    assert response.json()["description"] == "123"


def test_repeated_form_fields_keep_first_value(api_client):
    response = api_client.post("/api/users", data={"username": ["first", "second"]})
    assert response.status_code == 200
    assert response.json()["username"] == "first"


def test_usernames_are_stored_as_sent(api_client):
    plain = api_client.post("/api/users", json={"username": "alice"})
    padded = api_client.post("/api/users", json={"username": " alice"})

    assert plain.status_code == 200
    assert padded.status_code == 200
    assert padded.json()["username"] == " alice"
    assert plain.json()["id"] != padded.json()["id"]
