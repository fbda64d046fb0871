"""Tests for the service endpoints."""


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Seasonal Wishlist Store API running"}


def test_diagnostics_report_collection_counts(client, store, coat):
    response = client.get("/test")

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "✅ Connected"
    assert body["data_file"] == store.path
    assert body["collections"] == {"users": 1, "items": 1, "carts": 0, "orders": 0}


def test_schema_lists_entities(client):
    body = client.get("/schema").json()

    assert set(body) == {"user", "item", "cart_entry", "order"}
    assert body["user"]["properties"]["password"]["maxLength"] == 16
    assert body["item"]["properties"]["season"]["enum"] == ["Spring", "Summer", "Fall", "Winter"]


def test_cors_headers(client):
    response = client.get("/api/items", headers={"Origin": "http://localhost:3000"})

    assert response.headers["access-control-allow-origin"] in ("*", "http://localhost:3000")
