"""End-to-end tests for the HTTP endpoints of the admission service."""

from fastapi.testclient import TestClient

from admission.core.rate_limit import get_rate_limiter
from admission.main import app

client = TestClient(app)


def test_health_is_public():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "rate_limit": {"enabled": True, "backend": "memory"}}


def test_me_for_anonymous_caller():
    response = client.get("/v1/me")

    assert response.status_code == 200
    body = response.json()
    assert body["authenticated"] is False
    assert body["ip_address"] == "testclient"
    assert body["user_id"] is None
    assert response.headers["X-RateLimit-Limit"] == "100"


def test_me_for_authenticated_caller(auth_headers):
    response = client.get("/v1/me", headers=auth_headers(user_id=12, role="user"))

    assert response.status_code == 200
    assert response.json()["user_id"] == 12
    assert response.json()["role"] == "USER"


def test_rate_limits_requires_authentication():
    response = client.get("/v1/rate-limits")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_rate_limits_forbidden_for_users(auth_headers):
    assert client.get("/v1/rate-limits", headers=auth_headers(role="user")).status_code == 403


def test_rate_limits_pages_through_all_policies(auth_headers):
    headers = auth_headers(user_id=2, role="admin")
    operations: list[str] = []
    params: dict = {"limit": 10}

    while True:
        response = client.get("/v1/rate-limits", headers=headers, params=params)
        assert response.status_code == 200
        assert response.headers["X-Pagination-Limit"] == "10"
        body = response.json()
        operations.extend(item["operation"] for item in body["data"])
        if not body["pagination"]["hasNextPage"]:
            assert body["pagination"]["nextCursor"] is None
            break
        params = {"limit": 10, "cursor": body["pagination"]["nextCursor"]}

    assert operations == [name for name, _ in get_rate_limiter().policies.items()]
    assert len(operations) == len(set(operations))


def test_rate_limits_clamps_oversized_limit(auth_headers):
    response = client.get(
        "/v1/rate-limits",
        headers=auth_headers(user_id=2, role="admin"),
        params={"limit": 5000},
    )

    assert response.status_code == 200
    assert response.json()["pagination"]["limit"] == 100
    assert response.headers["X-Pagination-Max-Limit"] == "100"


def test_openapi_documents_bearer_scheme():
    schema = client.get("/openapi.json").json()

    assert "BearerAuth" in schema["components"]["securitySchemes"]
    assert schema["paths"]["/health"]["get"]["security"] == []
    assert "429" in schema["paths"]["/v1/me"]["get"]["responses"]


def test_lifespan_starts_and_stops_sweeper():
    with TestClient(app) as lifespan_client:
        assert lifespan_client.get("/health").status_code == 200
        sweeper = app.state.rate_limit_sweeper
        assert sweeper.running is True

    assert sweeper.running is False
