from sqlalchemy.exc import OperationalError

from routes import cards_api as cards_api_route


def test_database_errors_return_json(client, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(cards_api_route, "cached_card_count", _boom)

    resp = client.get("/api/cards/count")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "server_error", "detail": "A database error occurred."}


def test_method_not_allowed_is_json(client):
    resp = client.post("/api/cards")
    assert resp.status_code == 405
    assert resp.get_json()["error"] == "method_not_allowed"


def test_invalid_cursor_is_rejected(client):
    resp = client.get("/api/cards?cursor=abc")
    assert resp.status_code == 400
    assert resp.get_json()["detail"] == "Invalid cursor."
