from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.constants import RoleEnum
from tests.helpers.asserts import api_call, assert_error
from tests.helpers.seed import auth_headers, make_attempt, make_department, make_profile


@pytest.fixture
def seeded(db_session: Session):
    make_department(db_session, "dept-a", "Alpha")
    make_department(db_session, "dept-b", "Beta")
    make_profile(db_session, "alice", "dept-a", full_name="Alice")
    make_profile(db_session, "bob", "dept-a", full_name="Bob")
    make_profile(db_session, "carol", "dept-b", full_name="Carol")
    make_profile(db_session, "root", None, role=RoleEnum.SUPER_ADMIN)
    make_attempt(db_session, "alice", 90)
    make_attempt(db_session, "alice", 80)
    make_attempt(db_session, "bob", 100)
    make_attempt(db_session, "carol", 60)


def test_get_department_leaderboard(client: TestClient, seeded):
    r = api_call(client, "GET", "/leaderboard/departments/dept-a", headers=auth_headers("alice"))
    body = r.json()
    data = body["data"]

    assert body["message"] == "Leaderboard retrieved successfully"
    assert data["from_cache"] is False
    assert data["total_students"] == 2
    first, second = data["entries"]
    assert first["student_name"] == "Alice"
    assert Decimal(first["total_points"]) == Decimal("170")
    assert Decimal(first["average_score"]) == Decimal("85")
    assert first["rank_position"] == 1
    assert second["student_name"] == "Bob"
    assert second["rank_position"] == 2
    assert "X-Request-ID" in r.headers
    assert r.headers["X-Leaderboard-Cache"] == "MISS"

    r2 = api_call(client, "GET", "/leaderboard/departments/dept-a", headers=auth_headers("bob"))
    assert r2.json()["data"]["from_cache"] is True
    assert r2.headers["X-Leaderboard-Cache"] == "HIT"


def test_pagination_query_parameters(client: TestClient, seeded):
    r = api_call(client, "GET", "/leaderboard/departments/dept-a", headers=auth_headers("alice"), params={"limit": 1, "offset": 0})
    data = r.json()["data"]
    assert len(data["entries"]) == 1
    assert data["has_more"] is True
    assert data["next_cursor"] == 1


def test_cross_department_request_is_forbidden(client: TestClient, seeded):
    r = client.get("/leaderboard/departments/dept-b", headers=auth_headers("alice"))
    error = assert_error(r, 403, "PERMISSION_DENIED")
    assert error["message"] == "You do not have permission to access this department's leaderboard"


def test_missing_token_is_unauthenticated(client: TestClient, seeded):
    r = client.get("/leaderboard/departments/dept-a")
    assert_error(r, 401, "UNAUTHENTICATED")


def test_tampered_token_is_unauthenticated(client: TestClient, seeded):
    r = client.get("/leaderboard/departments/dept-a", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


def test_unknown_profile_is_not_found(client: TestClient, seeded):
    r = client.get("/leaderboard/departments/dept-a", headers=auth_headers("nobody"))
    assert_error(r, 404, "NOT_FOUND")


@pytest.mark.parametrize("query", ["limit=0", "limit=101", "offset=-1", "limit=abc"])
def test_invalid_pagination_is_bad_request(client: TestClient, seeded, query):
    r = client.get(f"/leaderboard/departments/dept-a?{query}", headers=auth_headers("alice"))
    assert_error(r, 400, "INVALID_ARGUMENT")


def test_global_department_leaderboard(client: TestClient, seeded):
    r = api_call(client, "GET", "/leaderboard/departments", headers=auth_headers("carol"))
    data = r.json()["data"]
    assert data["total_departments"] == 2
    assert [d["department_id"] for d in data["rankings"]] == ["dept-a", "dept-b"]
    assert Decimal(data["rankings"][0]["average_score"]) == Decimal("92.5")


def test_admin_endpoints(client: TestClient, seeded):
    headers = auth_headers("root")

    r = api_call(client, "POST", "/leaderboard/admin/cache/refresh", headers=headers, params={"department_id": "dept-a"})
    assert r.json()["data"]["total_students"] == 2

    r = api_call(client, "POST", "/leaderboard/admin/rankings/recalculate", headers=headers)
    assert r.json()["data"]["refreshed_count"] == 2

    r = api_call(client, "GET", "/leaderboard/admin/status", headers=headers)
    status = r.json()["data"]
    assert status["cache"]["total"] == 2
    assert status["cache"]["valid"] == 2

    r = api_call(client, "DELETE", "/leaderboard/admin/cache/dept-a", headers=headers)
    assert r.json()["data"]["department_id"] == "dept-a"

    r = api_call(client, "GET", "/leaderboard/admin/departments/dept-a/diagnostics", headers=headers)
    assert r.json()["data"]["valid_count"] == 3


def test_admin_endpoints_reject_students(client: TestClient, seeded):
    r = client.get("/leaderboard/admin/status", headers=auth_headers("alice"))
    assert_error(r, 403, "PERMISSION_DENIED")
