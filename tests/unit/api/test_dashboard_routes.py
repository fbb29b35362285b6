import pytest
from fastapi.testclient import TestClient

from dropsim_api.server.app_factory import create_app


def _with_simulation(settings, **updates):
    simulation = settings.simulation.model_copy(update=updates)
    return settings.model_copy(update={"simulation": simulation})


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["session_id"] == "default"
    assert data["day"] == 0


def test_state_of_a_new_session(client):
    r = client.get("/api/v1/dashboard/state")
    assert r.status_code == 200
    data = r.json()
    assert data["day"] == 0
    assert data["state"]["inventory"] == 15
    assert data["state"]["profit"] == 0.0
    assert data["stepper_state"] == "idle"
    assert data["auto_running"] is False
    assert data["profit_history"] == []
    assert 30.0 <= data["metrics"]["averageOrderValue"] <= 70.0


def test_step_advances_the_session(client, settings):
    r = client.post("/api/v1/dashboard/step")
    assert r.status_code == 200
    data = r.json()
    assert data["day"] == 1
    assert data["mode"] == "fallback"
    state = data["state"]
    assert state["profit"] == pytest.approx(state["revenue"] - state["expenses"])

    r = client.post("/api/v1/dashboard/step", json={"override_inventory": False})
    assert r.status_code == 200
    current = client.get("/api/v1/dashboard/state").json()
    assert current["day"] == 2
    assert len(current["profit_history"]) == 2


def test_step_on_empty_inventory_is_a_conflict(settings):
    app = create_app(_with_simulation(settings, starting_inventory=0))
    with TestClient(app) as client:
        r = client.post("/api/v1/dashboard/step")
        assert r.status_code == 409
        assert r.json()["reason"] == "out_of_stock"

        r = client.post("/api/v1/dashboard/step", json={"override_inventory": True})
        assert r.status_code == 200
        assert r.json()["day"] == 1


def test_empty_catalog_is_unprocessable(client):
    client.app.state.container.stepper.catalog.products = []
    r = client.post("/api/v1/dashboard/step")
    assert r.status_code == 422
    assert r.json()["error"] == "validation_error"


def test_actions_require_profit(client):
    r = client.post("/api/v1/dashboard/restock")
    assert r.status_code == 402
    body = r.json()
    assert body["error"] == "insufficient_funds"
    assert body["action"] == "restock"

    r = client.post("/api/v1/dashboard/marketing")
    assert r.status_code == 402


def test_auto_run_lifecycle(client):
    r = client.post("/api/v1/dashboard/auto-run", json={"speed": 3})
    assert r.status_code == 422

    r = client.post("/api/v1/dashboard/auto-run", json={"speed": 5})
    assert r.status_code == 202
    assert r.json()["auto_running"] is True
    assert r.json()["speed"] == 5

    r = client.delete("/api/v1/dashboard/auto-run")
    assert r.status_code == 200
    assert r.json()["auto_running"] is False
