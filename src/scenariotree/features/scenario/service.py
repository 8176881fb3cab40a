from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

from ...core.errors import ScenarioNotFound
from ...core.models import ActionKind, Position, ScenarioState, TableFormat
from ...core.settings import get_settings
from ...dynamic import builder
from .schemas import ScenarioPayload, record_from_state, scenario_payload, state_from_record
from .store import InMemoryScenarioStore, JsonScenarioStore, ScenarioStore, new_scenario_id

__all__ = ["ScenarioManager", "ScenarioSession", "default_store"]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")
_MAX_WORKERS = max(1, min(8, os.cpu_count() or 1))


def default_store() -> ScenarioStore:
    """JSON store when ``SCENARIOTREE_STORE_DIR`` is set, otherwise in-memory."""

    store_dir = get_settings().store_dir
    if store_dir is not None:
        return JsonScenarioStore(store_dir)
    return InMemoryScenarioStore()


@dataclass
class ScenarioSession:
    state: ScenarioState
    saved_id: str | None = None


class ScenarioManager:
    """Owns live scenarios independent of the presentation layer.

    Each command swaps in the builder's new state only after it succeeds, so a
    failed command leaves the live scenario exactly as it was.
    """

    def __init__(self, store: ScenarioStore | None = None) -> None:
        self._store = store if store is not None else default_store()
        self._sessions: dict[str, ScenarioSession] = {}
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def store(self) -> ScenarioStore:
        return self._store

    def _require(self, scenario_id: str) -> ScenarioSession:
        session = self._sessions.get(scenario_id)
        if session is None:
            raise ScenarioNotFound(scenario_id)
        return session

    def _transition(
        self,
        scenario_id: str,
        step: Callable[[ScenarioState], ScenarioState],
    ) -> ScenarioState:
        with self._lock:
            session = self._require(scenario_id)
            session.state = step(session.state)
            return session.state

    # ------------------------------------------------------------------ lifecycle
    def create(self, table_format: TableFormat | None = None, *, hero: Position | None = None) -> str:
        state = builder.seed_initial_nodes(table_format, hero=hero)
        scenario_id = new_scenario_id()
        with self._lock:
            self._sessions[scenario_id] = ScenarioSession(state=state)
        logger.info("Created %s scenario %s", state.table_format.value, scenario_id)
        return scenario_id

    def get(self, scenario_id: str) -> ScenarioState:
        with self._lock:
            return self._require(scenario_id).state

    def snapshot(self, scenario_id: str) -> ScenarioPayload:
        with self._lock:
            state = self._require(scenario_id).state
        return scenario_payload(scenario_id, state)

    def discard(self, scenario_id: str) -> None:
        with self._lock:
            self._require(scenario_id)
            del self._sessions[scenario_id]

    # ------------------------------------------------------------------ commands
    def legal_actions(self, scenario_id: str, node_id: str) -> frozenset[ActionKind]:
        return builder.legal_actions(self.get(scenario_id), node_id)

    def apply(
        self,
        scenario_id: str,
        node_id: str,
        action: ActionKind | str,
        sizing: float | None = None,
    ) -> ScenarioState:
        return self._transition(scenario_id, lambda state: builder.apply_action(state, node_id, action, sizing))

    def convert_to_hero(self, scenario_id: str, node_id: str, range_id: str | None = None) -> ScenarioState:
        return self._transition(scenario_id, lambda state: builder.convert_to_hero(state, node_id, range_id))

    def convert_to_villain(self, scenario_id: str, node_id: str) -> ScenarioState:
        return self._transition(scenario_id, lambda state: builder.convert_to_villain(state, node_id))

    def link_range(self, scenario_id: str, node_id: str, range_id: str) -> ScenarioState:
        return self._transition(scenario_id, lambda state: builder.link_range(state, node_id, range_id))

    def set_stack_override(self, scenario_id: str, node_id: str, stack_bb: float | None) -> ScenarioState:
        return self._transition(scenario_id, lambda state: builder.set_stack_override(state, node_id, stack_bb))

    def modify_action(self, scenario_id: str, node_id: str) -> ScenarioState:
        """Take back a decision and everything after it."""

        state = self._transition(scenario_id, lambda state: builder.modify_action(state, node_id))
        logger.info("Rewound scenario %s before %s", scenario_id, node_id)
        return state

    # ------------------------------------------------------------------ persistence
    def save(self, scenario_id: str) -> str:
        """Persist the live scenario; returns the store id (stable across saves)."""

        with self._lock:
            session = self._require(scenario_id)
            record = record_from_state(session.state)
            session.saved_id = self._store.save(record, session.saved_id)
            saved_id = session.saved_id
        logger.info("Saved scenario %s as %s", scenario_id, saved_id)
        return saved_id

    def load(self, saved_id: str) -> str:
        """Open a stored scenario as a new live scenario."""

        state = state_from_record(self._store.load(saved_id))
        scenario_id = new_scenario_id()
        with self._lock:
            self._sessions[scenario_id] = ScenarioSession(state=state, saved_id=saved_id)
        logger.info("Loaded scenario %s as %s", saved_id, scenario_id)
        return scenario_id

    def delete_saved(self, saved_id: str) -> None:
        self._store.delete(saved_id)
        logger.info("Deleted stored scenario %s", saved_id)

    def list_saved(self) -> list[str]:
        return self._store.list_ids()

    # ------------------------------------------------------------------ async
    async def _run(self, func: Callable[..., _T], /, *args: Any, **kwargs: Any) -> _T:
        """Run a blocking manager call on this manager's worker threads."""

        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=_MAX_WORKERS, thread_name_prefix="scenario-tree")
            executor = self._executor
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, partial(func, *args, **kwargs))

    def close(self) -> None:
        """Stop the worker threads; later async calls start a fresh pool."""

        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    async def create_async(self, table_format: TableFormat | None = None, *, hero: Position | None = None) -> str:
        return await self._run(self.create, table_format, hero=hero)

    async def apply_async(
        self,
        scenario_id: str,
        node_id: str,
        action: ActionKind | str,
        sizing: float | None = None,
    ) -> ScenarioState:
        return await self._run(self.apply, scenario_id, node_id, action, sizing)

    async def save_async(self, scenario_id: str) -> str:
        return await self._run(self.save, scenario_id)

    async def load_async(self, saved_id: str) -> str:
        return await self._run(self.load, saved_id)
