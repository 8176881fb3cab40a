from __future__ import annotations

import asyncio

import pytest

from scenariotree.core.errors import IllegalAction, NodeNotFound, ScenarioNotFound
from scenariotree.core.models import ActionKind, Position, Role, TableFormat
from scenariotree.dynamic.builder import effective_stack
from scenariotree.features.scenario.service import ScenarioManager
from scenariotree.features.scenario.store import InMemoryScenarioStore


@pytest.fixture
def manager() -> ScenarioManager:
    return ScenarioManager(InMemoryScenarioStore())


def test_create_and_apply(manager: ScenarioManager) -> None:
    scenario_id = manager.create(TableFormat.SIX_MAX)

    state = manager.apply(scenario_id, "seat-0-utg", "open")

    assert manager.get(scenario_id) is state
    assert state.find("seat-0-utg").action is ActionKind.OPEN
    assert state.nodes[-1].position is Position.HJ
    snapshot = manager.snapshot(scenario_id)
    assert snapshot.next_to_act == state.nodes[-1].id


def test_failed_command_keeps_live_state(manager: ScenarioManager) -> None:
    scenario_id = manager.create(TableFormat.SIX_MAX)
    before = manager.get(scenario_id)

    with pytest.raises(IllegalAction):
        manager.apply(scenario_id, "seat-0-utg", ActionKind.FOUR_BET)
    with pytest.raises(NodeNotFound):
        manager.apply(scenario_id, "missing", ActionKind.FOLD)
    with pytest.raises(IllegalAction):
        manager.link_range(scenario_id, "seat-0-utg", "utg-open")

    assert manager.get(scenario_id) is before


def test_hero_editing_commands(manager: ScenarioManager) -> None:
    scenario_id = manager.create(TableFormat.SIX_MAX)

    manager.convert_to_hero(scenario_id, "seat-2-co")
    state = manager.link_range(scenario_id, "seat-2-co", "co-rfi")
    node = state.find("seat-2-co")
    assert node.role is Role.HERO
    assert node.range_id == "co-rfi"

    state = manager.set_stack_override(scenario_id, "seat-2-co", 35.0)
    assert effective_stack(state, "seat-2-co") == 35.0

    state = manager.convert_to_villain(scenario_id, "seat-2-co")
    assert state.find("seat-2-co").role is Role.VILLAIN
    assert state.find("seat-2-co").range_id is None


def test_save_is_stable_and_load_opens_new_scenario(manager: ScenarioManager) -> None:
    scenario_id = manager.create(TableFormat.SIX_MAX, hero=Position.BTN)
    manager.apply(scenario_id, "seat-0-utg", ActionKind.OPEN)

    saved_id = manager.save(scenario_id)
    manager.apply(scenario_id, "seat-3-btn", ActionKind.THREE_BET)
    assert manager.save(scenario_id) == saved_id
    assert manager.list_saved() == [saved_id]

    loaded_id = manager.load(saved_id)
    assert loaded_id != scenario_id
    assert manager.get(loaded_id).nodes == manager.get(scenario_id).nodes
    assert manager.get(loaded_id).context == manager.get(scenario_id).context

    manager.delete_saved(saved_id)
    assert manager.list_saved() == []
    with pytest.raises(ScenarioNotFound):
        manager.load(saved_id)


def test_discard_and_unknown_scenarios(manager: ScenarioManager) -> None:
    scenario_id = manager.create()
    manager.discard(scenario_id)

    with pytest.raises(ScenarioNotFound):
        manager.get(scenario_id)
    with pytest.raises(ScenarioNotFound):
        manager.apply(scenario_id, "seat-0-utg", ActionKind.FOLD)


def test_async_wrappers(manager: ScenarioManager) -> None:
    async def flow() -> tuple[str, str]:
        scenario_id = await manager.create_async(TableFormat.NINE_MAX)
        await manager.apply_async(scenario_id, "seat-0-utg", ActionKind.LIMP)
        saved_id = await manager.save_async(scenario_id)
        return scenario_id, await manager.load_async(saved_id)

    try:
        scenario_id, loaded_id = asyncio.run(flow())
    finally:
        manager.close()

    assert manager.get(scenario_id).find("seat-0-utg").sizing == 1.0
    assert manager.get(loaded_id).context.last_opener.action is ActionKind.LIMP


def test_modify_action_rewinds_live_scenario(manager: ScenarioManager) -> None:
    scenario_id = manager.create(TableFormat.SIX_MAX)
    manager.apply(scenario_id, "seat-0-utg", ActionKind.OPEN)
    manager.apply(scenario_id, "seat-3-btn", ActionKind.THREE_BET)
    before = manager.get(scenario_id)

    with pytest.raises(IllegalAction):
        manager.modify_action(scenario_id, "seat-1-hj")
    assert manager.get(scenario_id) is before

    state = manager.modify_action(scenario_id, "seat-3-btn")

    assert state.find("seat-3-btn").is_pending
    assert state.find("seat-1-hj").is_pending
    assert [entry.node_id for entry in state.context.history] == ["seat-0-utg"]
    assert manager.snapshot(scenario_id).next_to_act == "cont-6-hj"
