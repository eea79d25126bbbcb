import threading

import pytest

import app as app_module


def _payload():
    return {
        "locations": [
            {"id": 0, "x": 0, "y": 0, "type": "depot"},
            {"id": 1, "x": 1, "y": 0, "demand": 1},
            {"id": 2, "x": 0, "y": 1, "demand": 1},
        ],
        "vehicles": [{"id": 1, "speed": 60, "max_fuel": 100, "min_fuel": 0, "capacity": 5}],
    }


@pytest.fixture
def client():
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


def test_optimize_requires_problem(client):
    response = client.post("/optimize", json={})
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_optimize_rejects_invalid_problem(client):
    payload = _payload()
    payload["locations"][0]["type"] = "customer"
    response = client.post("/optimize/sync", json={"problem": payload})
    assert response.status_code == 400
    assert "depot" in response.get_json()["error"]


def test_optimize_sync_returns_solution(client):
    response = client.post("/optimize/sync", json={
        "problem": _payload(),
        "config": {"population_size": 3, "max_generations": 2, "seed": 4, "unknown": 1},
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "finished"
    assert body["coverage"]["complete"] is True
    assert body["routes"][0]["stops"][0] == 0


def test_optimize_runs_in_background_and_emits_events(client, monkeypatch):
    events = []
    finished = threading.Event()

    def fake_run_cvrp(problem, epoch_callback=None, generate_pdf=False, **options):
        epoch_callback(generation=1, best_cost=4.0, routes=[])
        return {"total_cost": 4.0, "options": options}

    def fake_emit(name, data):
        events.append((name, data))
        if data.get("status") == "finished":
            finished.set()

    monkeypatch.setattr(app_module, "run_cvrp", fake_run_cvrp)
    monkeypatch.setattr(app_module.socketio, "emit", fake_emit)

    response = client.post("/optimize", json={"problem": _payload(), "config": {"max_generations": 5}})

    assert response.status_code == 202
    assert finished.wait(5)
    assert events[0] == ("optimization_update",
                         {"status": "optimizing", "generation": 1, "best_cost": 4.0, "routes": []})
    assert events[-1][1]["result"] == {"total_cost": 4.0, "options": {"max_generations": 5}}
