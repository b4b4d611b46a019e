"""Tests for the pagination query parameter dependency."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from admission.core.exception_handlers import setup_exception_handlers
from admission.core.pagination import pagination_params
from admission.services.pagination_service import PaginationRequest


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/items")
    async def list_items(page: PaginationRequest = Depends(pagination_params(max_limit=10))):
        return {"cursor": page.cursor, "limit": page.limit}

    @app.get("/tasks")
    async def list_tasks(page: PaginationRequest = Depends(pagination_params(cursor_type=int))):
        return {"cursor": page.cursor, "limit": page.limit}

    return TestClient(app)


def test_max_below_configured_default_lowers_default(client: TestClient) -> None:
    response = client.get("/items")

    assert response.status_code == 200
    assert response.json()["limit"] == 10
    assert response.headers["X-Pagination-Limit"] == "10"
    assert response.headers["X-Pagination-Max-Limit"] == "10"


def test_requested_limit_within_max(client: TestClient) -> None:
    response = client.get("/items", params={"limit": 5})

    assert response.status_code == 200
    assert response.json()["limit"] == 5


def test_oversized_and_garbage_limits_are_clamped(client: TestClient) -> None:
    assert client.get("/items", params={"limit": 500}).json()["limit"] == 10
    assert client.get("/items", params={"limit": "abc"}).json()["limit"] == 10


def test_cursor_type_converts_numeric_cursor(client: TestClient) -> None:
    assert client.get("/tasks", params={"cursor": "42"}).json()["cursor"] == 42
    assert client.get("/tasks", params={"cursor": "abc"}).json()["cursor"] == "abc"


def test_factory_with_small_max_does_not_raise() -> None:
    assert callable(pagination_params(max_limit=1))
