from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from cursorcalc.api.routes.sessions import get_session_registry
from cursorcalc.core.config import get_settings
from cursorcalc.main import create_app
from cursorcalc.services.registry import SessionRegistry


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry(max_expression_length=get_settings().max_expression_length)


@pytest.fixture()
def client(registry: SessionRegistry) -> Iterator[TestClient]:
    app = create_app()
    app.dependency_overrides[get_session_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def session_id(client: TestClient) -> str:
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.json()["sessionId"]
