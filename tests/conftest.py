"""Shared pytest fixtures for the wishlist store API tests."""

import pytest
from fastapi.testclient import TestClient

from database import JsonDocumentStore, get_db
from main import app


@pytest.fixture
def store(tmp_path):
    """A store backed by a per-test data file."""
    return JsonDocumentStore(str(tmp_path / "data.json"))


@pytest.fixture
def client(store):
    """Return a test client wired to the per-test store."""
    app.dependency_overrides[get_db] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice(client):
    """Sign up alice with password pw1."""
    response = client.post("/api/auth/signup", json={"id": "alice", "password": "pw1"})
    assert response.status_code == 200
    return "alice"


@pytest.fixture
def coat(client, alice):
    """Create a winter coat owned by alice."""
    response = client.post("/api/items", json={
        "name": "Coat",
        "price": 50000,
        "season": "Winter",
        "category": "Outer",
        "userId": alice,
    })
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def scarf(client, alice):
    """Create a scarf owned by alice."""
    response = client.post("/api/items", json={
        "name": "Scarf",
        "price": 20000,
        "season": "Winter",
        "category": "Accessories",
        "userId": alice,
    })
    assert response.status_code == 200
    return response.json()
