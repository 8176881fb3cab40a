from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...core.models import (
    ActionKind,
    ActionRecord,
    Decision,
    Position,
    Role,
    ScenarioNode,
    ScenarioState,
    TableFormat,
    parse_action,
)
from ...dynamic.builder import legal_actions, next_to_act, node_state, rebuild_context

__all__ = [
    "ActionRecordPayload",
    "ApplyActionRequest",
    "ConvertToHeroRequest",
    "CreateScenarioRequest",
    "HistoryPayload",
    "LinkRangeRequest",
    "NodePayload",
    "NodeRecord",
    "ScenarioPayload",
    "ScenarioRecord",
    "SizingOptionsPayload",
    "StackOverrideRequest",
    "record_from_state",
    "scenario_payload",
    "state_from_record",
]


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ----------------------------------------------------------------------
# Persisted representation


class NodeRecord(_APIModel):
    id: str
    position: Position
    role: Role = Role.VILLAIN
    action: ActionKind | None = None
    sizing: float | None = None
    stack_override: float | None = None
    is_automatic: bool | None = None
    range_id: str | None = None
    parent_id: str | None = None
    sequence_index: int | None = None

    @field_validator("action", mode="before")
    @classmethod
    def _coerce_action(cls, value: object) -> object:
        if value in (None, ""):
            return None
        if isinstance(value, (str, ActionKind)):
            return parse_action(value)
        return value


class ScenarioRecord(_APIModel):
    table_format: TableFormat
    nodes: list[NodeRecord] = Field(default_factory=list)


def _node_record(node: ScenarioNode, sequence: dict[str, int]) -> NodeRecord:
    return NodeRecord(
        id=node.id,
        position=node.position,
        role=node.role,
        action=node.action,
        sizing=node.sizing,
        stack_override=node.stack_override,
        is_automatic=True if node.is_automatic else None,
        range_id=node.range_id,
        parent_id=node.parent_id,
        sequence_index=sequence.get(node.id),
    )


def record_from_state(state: ScenarioState) -> ScenarioRecord:
    sequence = {entry.node_id: entry.sequence_index for entry in state.context.history}
    return ScenarioRecord(
        table_format=state.table_format,
        nodes=[_node_record(node, sequence) for node in state.nodes],
    )


def _decision_order(record: ScenarioRecord) -> list[str] | None:
    """Node ids by recorded sequence; None when any explicit decision lacks one."""

    decided = [item for item in record.nodes if item.action is not None and not item.is_automatic]
    if any(item.sequence_index is None for item in decided):
        return None
    return [item.id for item in sorted(decided, key=lambda item: item.sequence_index)]


def state_from_record(record: ScenarioRecord) -> ScenarioState:
    """Rebuild an engine state; context and history are replayed from the nodes.

    Records written before decisions carried a ``sequence_index`` fall back to
    table order for seeded seats, then continuations in append order.
    """

    nodes = tuple(
        ScenarioNode(
            id=item.id,
            position=item.position,
            role=item.role,
            decision=Decision(item.action, automatic=bool(item.is_automatic)) if item.action else None,
            sizing=item.sizing,
            stack_override=item.stack_override,
            range_id=item.range_id,
            parent_id=item.parent_id,
        )
        for item in record.nodes
    )
    return rebuild_context(ScenarioState(table_format=record.table_format, nodes=nodes), _decision_order(record))


# ----------------------------------------------------------------------
# API payloads


class NodePayload(_APIModel):
    id: str
    position: Position
    role: Role
    state: str
    action: ActionKind | None = None
    sizing: float | None = None
    is_automatic: bool = False
    stack_override: float | None = None
    range_id: str | None = None
    parent_id: str | None = None
    legal_actions: list[ActionKind] = Field(default_factory=list)


class ActionRecordPayload(_APIModel):
    position: Position
    action: ActionKind
    sizing: float | None = None


class HistoryPayload(_APIModel):
    node_id: str
    position: Position
    action: ActionKind
    sizing: float | None = None
    sequence_index: int


class ScenarioPayload(_APIModel):
    scenario_id: str = Field(..., alias="scenario")
    table_format: TableFormat
    nodes: list[NodePayload]
    next_to_act: str | None = None
    last_opener: ActionRecordPayload | None = None
    last_raiser: ActionRecordPayload | None = None
    history: list[HistoryPayload] = Field(default_factory=list)


class SizingOptionsPayload(_APIModel):
    action: ActionKind
    options: list[str]


class CreateScenarioRequest(BaseModel):
    table_format: TableFormat | None = None
    hero: Position | None = None


class ApplyActionRequest(BaseModel):
    node_id: str
    action: str
    sizing: float | None = None


class ConvertToHeroRequest(BaseModel):
    range_id: str | None = None


class LinkRangeRequest(BaseModel):
    range_id: str = Field(..., min_length=1)


class StackOverrideRequest(BaseModel):
    stack_bb: float | None = None


def _record_payload(record: ActionRecord | None) -> ActionRecordPayload | None:
    if record is None:
        return None
    return ActionRecordPayload(position=record.position, action=record.action, sizing=record.sizing)


def _sorted_actions(actions: frozenset[ActionKind]) -> list[ActionKind]:
    order = list(ActionKind)
    return sorted(actions, key=order.index)


def scenario_payload(scenario_id: str, state: ScenarioState) -> ScenarioPayload:
    active = next_to_act(state)
    nodes = [
        NodePayload(
            id=node.id,
            position=node.position,
            role=node.role,
            state=node_state(state, node.id).value,
            action=node.action,
            sizing=node.sizing,
            is_automatic=node.is_automatic,
            stack_override=node.stack_override,
            range_id=node.range_id,
            parent_id=node.parent_id,
            legal_actions=_sorted_actions(legal_actions(state, node.id)),
        )
        for node in state.nodes
    ]
    history = [
        HistoryPayload(
            node_id=entry.node_id,
            position=entry.position,
            action=entry.action,
            sizing=entry.sizing,
            sequence_index=entry.sequence_index,
        )
        for entry in state.context.history
    ]
    return ScenarioPayload(
        scenario_id=scenario_id,
        table_format=state.table_format,
        nodes=nodes,
        next_to_act=active.id if active else None,
        last_opener=_record_payload(state.context.last_opener),
        last_raiser=_record_payload(state.context.last_raiser),
        history=history,
    )
