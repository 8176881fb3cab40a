"""Scenario persistence adapters.

The engine never persists anything itself; these stores implement the
load/save/list/delete contract keyed by opaque ids.
"""

from __future__ import annotations

import logging
import secrets
import string
import threading
from pathlib import Path
from typing import Protocol

from ...core.errors import ScenarioNotFound
from .schemas import ScenarioRecord

__all__ = ["InMemoryScenarioStore", "JsonScenarioStore", "ScenarioStore", "new_scenario_id"]

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_lowercase + string.digits


def new_scenario_id() -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(12))


class ScenarioStore(Protocol):
    def save(self, record: ScenarioRecord, scenario_id: str | None = None) -> str: ...

    def load(self, scenario_id: str) -> ScenarioRecord: ...

    def list_ids(self) -> list[str]: ...

    def delete(self, scenario_id: str) -> None: ...


class InMemoryScenarioStore:
    def __init__(self) -> None:
        self._records: dict[str, str] = {}
        self._lock = threading.Lock()

    def save(self, record: ScenarioRecord, scenario_id: str | None = None) -> str:
        scenario_id = scenario_id or new_scenario_id()
        with self._lock:
            self._records[scenario_id] = record.model_dump_json(exclude_none=True)
        return scenario_id

    def load(self, scenario_id: str) -> ScenarioRecord:
        with self._lock:
            raw = self._records.get(scenario_id)
        if raw is None:
            raise ScenarioNotFound(scenario_id)
        return ScenarioRecord.model_validate_json(raw)

    def list_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def delete(self, scenario_id: str) -> None:
        with self._lock:
            if self._records.pop(scenario_id, None) is None:
                raise ScenarioNotFound(scenario_id)


class JsonScenarioStore:
    """One ``<id>.json`` document per scenario under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._directory.mkdir(parents=True, exist_ok=True)

    def _path(self, scenario_id: str) -> Path:
        if not scenario_id or any(ch not in _ALPHABET + "-_" for ch in scenario_id):
            raise ScenarioNotFound(scenario_id)
        return self._directory / f"{scenario_id}.json"

    def save(self, record: ScenarioRecord, scenario_id: str | None = None) -> str:
        scenario_id = scenario_id or new_scenario_id()
        path = self._path(scenario_id)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(record.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
        tmp.replace(path)
        logger.debug("Wrote scenario %s to %s", scenario_id, path)
        return scenario_id

    def load(self, scenario_id: str) -> ScenarioRecord:
        path = self._path(scenario_id)
        if not path.exists():
            raise ScenarioNotFound(scenario_id)
        return ScenarioRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def list_ids(self) -> list[str]:
        return sorted(path.stem for path in self._directory.glob("*.json"))

    def delete(self, scenario_id: str) -> None:
        path = self._path(scenario_id)
        if not path.exists():
            raise ScenarioNotFound(scenario_id)
        path.unlink()
