import pytest

import app as webapp


@pytest.fixture
def client():
    webapp.app.config.update(TESTING=True)
    with webapp.app.test_client() as c:
        yield c


def test_items(client):
    r = client.get("/api/items")
    assert r.status_code == 200
    names = [it["name"] for it in r.get_json()["items"]]
    assert "Icon of the Silver Crescent" in names


def test_stats(client):
    r = client.post("/api/stats", json={"Gear": ["Totem of the Void"]})
    assert r.status_code == 200
    assert r.get_json()["stats"]["StatSpellDmg"] == 55


def test_simulate(client):
    r = client.post("/api/simulate", json={
        "Iterations": 3,
        "Seed": 4,
        "Options": {"AgentType": "3LB1CL", "Encounter": {"Duration": 20}},
    })
    assert r.status_code == 200
    body = r.get_json()
    assert body["trials"] == 3
    assert body["dpsAvg"] > 0
    assert "LB12" in body["casts"]


def test_simulate_clamps_iterations(client, monkeypatch):
    monkeypatch.setattr(webapp, "MAX_ITERATIONS", 2)
    r = client.post("/api/simulate", json={"Iterations": 500, "Seed": 1, "Options": {"Encounter": {"Duration": 10}}})
    assert r.get_json()["trials"] == 2


def test_statweights(client):
    r = client.post("/api/statweights", json={
        "Iterations": 2,
        "Seed": 1,
        "Options": {"AgentType": "LB", "Encounter": {"Duration": 15}},
    })
    assert r.status_code == 200
    weights = r.get_json()["weights"]
    assert set(weights) == {"StatInt", "StatSpellDmg", "StatSpellCrit", "StatSpellHit", "StatHaste", "StatMP5"}


def test_invalid_json(client):
    r = client.post("/api/simulate", data="nope", content_type="application/json")
    assert r.status_code == 400
    assert r.get_json() == {"error": "invalid json"}


def test_config_error_is_400(client):
    r = client.post("/api/simulate", json={"Options": {"AgentType": "2LB1CL"}})
    assert r.status_code == 400
    assert "unknown agent type" in r.get_json()["error"]


def test_unknown_gear_is_400(client):
    r = client.post("/api/stats", json={"Gear": ["Thunderfury"]})
    assert r.status_code == 400


def test_statweights_respects_request_timeout(client, monkeypatch):
    monkeypatch.setattr(webapp, "REQUEST_TIMEOUT", 0)
    r = client.post("/api/statweights", json={"Iterations": 50, "Seed": 1, "Options": {"Encounter": {"Duration": 30}}})
    assert r.status_code == 503
    assert "did not finish" in r.get_json()["error"]
