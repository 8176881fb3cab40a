from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from scenariotree.features.scenario.service import ScenarioManager
from scenariotree.features.scenario.store import InMemoryScenarioStore
from scenariotree.web.app import create_app

BASE = "/api/v1/scenario"


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(ScenarioManager(InMemoryScenarioStore())))


def _create(client: TestClient, **body) -> dict:
    response = client.post(BASE, json={"table_format": "6max", **body})
    assert response.status_code == 200
    return response.json()


def test_health_and_shutdown() -> None:
    manager = ScenarioManager(InMemoryScenarioStore())
    with TestClient(create_app(manager)) as client:
        assert client.get("/health").json() == {"status": "ok"}
        assert client.post(BASE, json={}).status_code == 200
    assert manager._executor is None


def test_create_returns_seeded_snapshot(client: TestClient) -> None:
    data = _create(client, hero="CO")

    assert data["table_format"] == "6max"
    assert [node["position"] for node in data["nodes"]] == ["UTG", "HJ", "CO", "BTN", "SB", "BB"]
    assert data["next_to_act"] == "seat-0-utg"
    assert data["nodes"][2]["role"] == "hero"
    assert data["history"] == []
    assert client.get(f"{BASE}/{data['scenario']}").json() == data


def test_apply_action_and_legal_endpoint(client: TestClient) -> None:
    scenario_id = _create(client)["scenario"]

    legal = client.get(f"{BASE}/{scenario_id}/nodes/seat-0-utg/legal").json()
    assert legal == {"node_id": "seat-0-utg", "legal_actions": ["fold", "limp", "open"]}

    response = client.post(
        f"{BASE}/{scenario_id}/actions",
        json={"node_id": "seat-0-utg", "action": "open", "sizing": 2.5},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["last_opener"] == {"position": "UTG", "action": "open", "sizing": 2.5}
    assert data["nodes"][-1]["position"] == "HJ"
    assert data["nodes"][-1]["parent_id"] == "seat-0-utg"
    assert data["next_to_act"] == data["nodes"][-1]["id"]


@pytest.mark.parametrize(
    ("body", "status", "code"),
    [
        ({"node_id": "nope", "action": "fold"}, 404, "node_not_found"),
        ({"node_id": "seat-0-utg", "action": "4bet"}, 409, "illegal_action"),
        ({"node_id": "seat-0-utg", "action": "shove"}, 400, "unknown_action"),
    ],
)
def test_apply_errors_map_to_status(client: TestClient, body: dict, status: int, code: str) -> None:
    scenario_id = _create(client)["scenario"]
    before = client.get(f"{BASE}/{scenario_id}").json()

    response = client.post(f"{BASE}/{scenario_id}/actions", json=body)

    assert response.status_code == status
    assert response.json()["detail"]["code"] == code
    assert client.get(f"{BASE}/{scenario_id}").json() == before


def test_unknown_scenario_is_404(client: TestClient) -> None:
    response = client.get(f"{BASE}/missing")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "scenario_not_found"


def test_sizing_options(client: TestClient) -> None:
    assert client.get(f"{BASE}/sizing/open").json() == {"action": "open", "options": ["2bb", "2.5bb", "3bb"]}
    assert client.get(f"{BASE}/sizing/raise").json()["options"] == ["pot", "0.5pot", "0.75pot"]
    assert client.get(f"{BASE}/sizing/jam").status_code == 400


def test_save_and_load(client: TestClient) -> None:
    scenario_id = _create(client)["scenario"]
    client.post(f"{BASE}/{scenario_id}/actions", json={"node_id": "seat-0-utg", "action": "limp"})

    saved = client.post(f"{BASE}/{scenario_id}/save").json()
    assert saved["scenario"] == scenario_id
    assert client.get(f"{BASE}/saved").json() == {"saved": [saved["saved"]]}

    loaded = client.post(f"{BASE}/load/{saved['saved']}")
    assert loaded.status_code == 200
    data = loaded.json()
    assert data["scenario"] != scenario_id
    assert data["last_opener"]["action"] == "limp"

    assert client.post(f"{BASE}/load/unknown").status_code == 404


def test_node_editing_routes(client: TestClient) -> None:
    scenario_id = _create(client)["scenario"]
    node_url = f"{BASE}/{scenario_id}/nodes/seat-2-co"

    assert client.put(f"{node_url}/range", json={"range_id": "co-rfi"}).status_code == 409

    data = client.post(f"{node_url}/hero", json={"range_id": "co-rfi"}).json()
    assert data["nodes"][2]["role"] == "hero"
    assert data["nodes"][2]["range_id"] == "co-rfi"

    data = client.put(f"{node_url}/range", json={"range_id": "co-wide"}).json()
    assert data["nodes"][2]["range_id"] == "co-wide"

    data = client.put(f"{node_url}/stack", json={"stack_bb": 35}).json()
    assert data["nodes"][2]["stack_override"] == 35
    assert client.put(f"{node_url}/stack", json={"stack_bb": -1}).status_code == 409

    data = client.post(f"{node_url}/villain").json()
    assert data["nodes"][2]["role"] == "villain"
    assert "range_id" not in data["nodes"][2]

    assert client.post(f"{BASE}/{scenario_id}/nodes/missing/hero").status_code == 404


def test_modify_route_rewinds(client: TestClient) -> None:
    scenario_id = _create(client)["scenario"]
    client.post(f"{BASE}/{scenario_id}/actions", json={"node_id": "seat-0-utg", "action": "open"})

    response = client.post(f"{BASE}/{scenario_id}/nodes/seat-0-utg/modify")

    assert response.status_code == 200
    data = response.json()
    assert len(data["nodes"]) == 6
    assert data["history"] == []
    assert data["next_to_act"] == "seat-0-utg"
    assert client.post(f"{BASE}/{scenario_id}/nodes/seat-0-utg/modify").status_code == 409


def test_delete_saved_scenario(client: TestClient) -> None:
    scenario_id = _create(client)["scenario"]
    saved_id = client.post(f"{BASE}/{scenario_id}/save").json()["saved"]

    assert client.delete(f"{BASE}/saved/{saved_id}").status_code == 204
    assert client.get(f"{BASE}/saved").json() == {"saved": []}
    assert client.delete(f"{BASE}/saved/{saved_id}").status_code == 404
