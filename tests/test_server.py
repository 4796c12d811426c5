import json

import pytest

from conftest import DummyResponse, DummySession
from rental_funnel.functions import lead_hook
from rental_funnel.jobs import server
from rental_funnel.vendors import listings_api


@pytest.fixture
def client():
    return server.app.test_client()


def test_root_and_health(client, monkeypatch):
    monkeypatch.delenv("HOOK_URL", raising=False)

    assert client.get("/").status_code == 200
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    assert response.get_json()["hook_configured"] is False


def test_listings_route_proxies_upstream(client, monkeypatch):
    session = DummySession(DummyResponse(status_code=200, text='[{"Unit": {"Id": 1}}]'))
    monkeypatch.setattr(listings_api, "_SESSION", session)

    response = client.get(server.LISTINGS_PATH)

    assert response.status_code == 200
    assert response.get_data(as_text=True) == '[{"Unit": {"Id": 1}}]'
    assert response.headers["Cache-Control"] == "public, max-age=600"
    assert response.headers["Content-Type"].startswith("application/json")


def test_listings_route_propagates_503(client, monkeypatch):
    monkeypatch.setattr(listings_api, "_SESSION", DummySession(DummyResponse(status_code=503)))

    response = client.get(server.LISTINGS_PATH)

    assert response.status_code == 503
    assert response.get_json() == {"error": "Upstream error", "status": 503}


def test_lead_hook_route_rejects_get(client):
    assert client.get(server.LEAD_HOOK_PATH).status_code == 405


@pytest.mark.parametrize("method", ["options", "head", "put", "delete"])
def test_lead_hook_route_rejects_every_non_post(client, method):
    response = getattr(client, method)(server.LEAD_HOOK_PATH)

    assert response.status_code == 405
    assert response.headers["Allow"] == "POST"


def test_lead_hook_route_without_hook_is_204(client, monkeypatch):
    monkeypatch.delenv("HOOK_URL", raising=False)

    response = client.post(server.LEAD_HOOK_PATH, json={"email": "a@example.com"})

    assert response.status_code == 204
    assert response.get_data() == b""


def test_lead_hook_route_forwards(client, monkeypatch):
    monkeypatch.setenv("HOOK_URL", "https://hooks.example.com/lead")
    session = DummySession(DummyResponse(status_code=200))
    monkeypatch.setattr(lead_hook, "_SESSION", session)

    response = client.post(server.LEAD_HOOK_PATH, data="hello", content_type="text/plain")

    assert response.status_code == 200
    assert response.get_json() == {"ok": True, "status": 200}
    envelope = json.loads(session.calls[0][2]["data"])
    assert envelope["payload"] == {"raw": "hello"}
