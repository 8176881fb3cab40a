"""Scenario feature: persistence adapters, service layer, schemas, and API router."""

from .router import create_scenario_router
from .schemas import (
    NodePayload,
    NodeRecord,
    ScenarioPayload,
    ScenarioRecord,
    record_from_state,
    state_from_record,
)
from .service import ScenarioManager
from .store import InMemoryScenarioStore, JsonScenarioStore, ScenarioStore

__all__ = [
    "InMemoryScenarioStore",
    "JsonScenarioStore",
    "NodePayload",
    "NodeRecord",
    "ScenarioManager",
    "ScenarioPayload",
    "ScenarioRecord",
    "ScenarioStore",
    "create_scenario_router",
    "record_from_state",
    "state_from_record",
]
