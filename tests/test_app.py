"""Cross-cutting behaviour: health, catch-all routes, error envelopes, rate limiting."""
from api.features.conversations.service import ConversationService


def test_health_is_served_under_prefix_and_root(client):
    for path in ("/api/health", "/health"):
        response = client.get(path)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["database"]["status"] == "healthy"


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Endpoint not found"}


def test_unsupported_method_uses_envelope(client):
    response = client.patch("/api/stats")
    assert response.status_code == 405
    assert response.json() == {"success": False, "error": "Endpoint not found"}


def test_write_rate_limit(client_factory):
    client = client_factory(rate_limit={"RATE_LIMIT_WRITES": "3 per minute"})
    for _ in range(3):
        assert client.post("/api/conversations", json={}).status_code == 201

    response = client.post("/api/conversations", json={})
    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": "Too many requests from this IP, please try again later.",
    }
    assert "Retry-After" in response.headers

    # Reads are not limited and the rejected write was not processed
    listed = client.get("/api/conversations").json()
    assert listed["pagination"]["count"] == 3


def test_default_window_allows_one_hundred_writes(client):
    for _ in range(100):
        assert client.post("/api/conversations", json={}).status_code == 201
    assert client.post("/api/conversations", json={}).status_code == 429


def test_rate_limit_can_be_disabled(client_factory):
    client = client_factory(
        rate_limit={"RATE_LIMIT_ENABLED": False, "RATE_LIMIT_WRITES": "1 per minute"}
    )
    for _ in range(3):
        assert client.post("/api/conversations", json={}).status_code == 201


async def _boom(*args, **kwargs):
    raise RuntimeError("database exploded")


def test_unhandled_errors_show_detail_outside_prod(client_factory, monkeypatch):
    monkeypatch.setattr(ConversationService, "list_conversations", _boom)
    client = client_factory()

    response = client.get("/api/conversations")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "database exploded"}


def test_unhandled_errors_are_generic_in_prod(client_factory, monkeypatch):
    monkeypatch.setattr(ConversationService, "list_conversations", _boom)
    client = client_factory(app={"ENVIRONMENT": "prod"})

    response = client.get("/api/conversations")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
