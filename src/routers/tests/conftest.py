"""Shared fixtures for API tests: an app on in-memory storage and a user."""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.main import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, storage_backend="memory", log_level="WARNING")


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def user_id(client: TestClient) -> int:
    response = client.post("/api/v1/users", json={"username": "ada"})
    assert response.status_code == 201
    return response.json()["user_id"]
