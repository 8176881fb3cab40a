"""Scenario tree builder.

Every public function here is a pure transformation: it takes a
``ScenarioState`` and returns a new one (or raises an ``EngineError``), never
touching the input. A single ``apply_action`` call runs, in order:

1. validation of the node and the requested action,
2. recording the decision, its sizing and the history entry,
3. backward auto-folds for seats skipped by a later voluntary action,
4. forward auto-folds behind a hero fold,
5. insertion of the continuation node for whoever now owes a decision.

A seat can hold more than one pending node: its seeded node and a
continuation spawned for it. Whichever of them acts first answers for the
seat; the other is *superseded* and never acts. Continuations spawned after
the seat's decision (responses to a later re-raise) are not affected.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from ..core import feature_flags
from ..core.errors import IllegalAction, NodeNotFound
from ..core.models import (
    AGGRESSIVE_ACTIONS,
    ActionHistoryEntry,
    ActionKind,
    ActionRecord,
    Decision,
    NodeState,
    Position,
    Role,
    ScenarioContext,
    ScenarioNode,
    ScenarioState,
    TableFormat,
    parse_action,
)
from ..core.settings import get_settings
from .action_rules import RESPONSE_TABLE, legal_actions_after, raise_level, succession_rule, target_position
from .bet_sizing import LIMP_SIZING, default_sizing, requires_sizing, sizing_values
from .seating import is_in_position, position_index, positions_for

__all__ = [
    "apply_action",
    "convert_to_hero",
    "convert_to_villain",
    "effective_stack",
    "facing_action",
    "is_superseded",
    "legal_actions",
    "link_range",
    "modify_action",
    "next_to_act",
    "node_state",
    "rebuild_context",
    "seed_initial_nodes",
    "set_stack_override",
]

logger = logging.getLogger(__name__)

_STATE_FOR_ACTION = {
    ActionKind.FOLD: NodeState.FOLDED,
    ActionKind.LIMP: NodeState.LIMPED,
    ActionKind.OPEN: NodeState.OPENED,
    ActionKind.THREE_BET: NodeState.THREE_BET,
    ActionKind.FOUR_BET: NodeState.FOUR_BET,
    ActionKind.RAISE: NodeState.RAISED,
    ActionKind.CALL: NodeState.CALLED,
    ActionKind.CHECK: NodeState.CHECKED,
}


# ----------------------------------------------------------------------
# Construction


def _seat_id(index: int, position: Position) -> str:
    return f"seat-{index}-{position.value.lower()}"


def _continuation_id(state: ScenarioState, position: Position) -> str:
    return f"cont-{len(state.nodes)}-{position.value.lower()}"


def seed_initial_nodes(
    table_format: TableFormat | None = None,
    *,
    hero: Position | None = None,
) -> ScenarioState:
    """One undecided node per seat; ``hero`` marks that seat as Hero."""

    table_format = table_format or get_settings().table_format
    seats = positions_for(table_format)
    if hero is not None:
        position_index(hero, table_format)
    nodes = tuple(
        ScenarioNode(
            id=_seat_id(idx, seat),
            position=seat,
            role=Role.HERO if seat is hero else Role.VILLAIN,
        )
        for idx, seat in enumerate(seats)
    )
    return ScenarioState(table_format=table_format, nodes=nodes)


# ----------------------------------------------------------------------
# Queries


def _require(state: ScenarioState, node_id: str) -> ScenarioNode:
    node = state.find(node_id)
    if node is None:
        raise NodeNotFound(node_id)
    return node


def _sequence(state: ScenarioState) -> dict[str, int]:
    return {entry.node_id: entry.sequence_index for entry in state.context.history}


def _resolved_action(state: ScenarioState, node: ScenarioNode) -> ActionKind | None:
    """The node's action, with a size-agnostic raise read as the level it reached."""

    if node.action is not ActionKind.RAISE:
        return node.action
    seq = _sequence(state).get(node.id, len(state.context.history))
    prior = sum(
        1 for entry in state.context.history if entry.sequence_index < seq and entry.action in AGGRESSIVE_ACTIONS
    )
    return raise_level(prior)


def facing_action(state: ScenarioState, node: ScenarioNode) -> ActionKind | None:
    """What *node* is responding to: its parent's action, else the table context."""

    if node.parent_id is not None:
        parent = state.find(node.parent_id)
        if parent is not None and parent.action is not None:
            return _resolved_action(state, parent)
    facing = state.context.facing_action()
    if facing is ActionKind.RAISE:
        raiser = next(entry for entry in reversed(state.context.history) if entry.action in AGGRESSIVE_ACTIONS)
        return _resolved_action(state, _require(state, raiser.node_id))
    return facing


def _superseded(node: ScenarioNode, nodes: Sequence[ScenarioNode], sequence: Mapping[str, int]) -> bool:
    if not node.is_pending:
        return False
    created = sequence.get(node.parent_id, -1) if node.parent_id is not None else -1
    return any(
        other.position is node.position and other.id != node.id and sequence.get(other.id, -1) > created
        for other in nodes
    )


def is_superseded(state: ScenarioState, node_id: str) -> bool:
    """True when the seat already acted after this pending node was created."""

    return _superseded(_require(state, node_id), state.nodes, _sequence(state))


def _legal_for(state: ScenarioState, node: ScenarioNode) -> frozenset[ActionKind]:
    if not node.is_pending or _superseded(node, state.nodes, _sequence(state)):
        return frozenset()
    position_index(node.position, state.table_format)
    facing = facing_action(state, node)
    is_bb = node.position is Position.BB
    legal = legal_actions_after(facing, is_bb=is_bb, bb_faced_raise=facing in AGGRESSIVE_ACTIONS)
    if node.is_hero and not (is_bb and facing not in RESPONSE_TABLE):
        if legal & {ActionKind.OPEN, ActionKind.THREE_BET}:
            legal = legal | {ActionKind.RAISE}
    return legal


def legal_actions(state: ScenarioState, node_id: str) -> frozenset[ActionKind]:
    """Actions *node_id* may take now; empty once the node or its seat has decided."""

    return _legal_for(state, _require(state, node_id))


def _is_revisit(state: ScenarioState, node: ScenarioNode) -> bool:
    """A continuation node sitting earlier in the order than the seat that spawned it."""

    if node.parent_id is None:
        return False
    parent = state.find(node.parent_id)
    if parent is None:
        return False
    fmt = state.table_format
    return position_index(node.position, fmt) < position_index(parent.position, fmt)


def _open_nodes(state: ScenarioState) -> list[ScenarioNode]:
    """Pending nodes that still owe a decision."""

    sequence = _sequence(state)
    return [node for node in state.nodes if node.is_pending and not _superseded(node, state.nodes, sequence)]


def next_to_act(state: ScenarioState) -> ScenarioNode | None:
    """Latest pending continuation node, else the earliest pending seat."""

    pending = _open_nodes(state)
    continuations = [node for node in pending if node.is_continuation]
    if continuations:
        return continuations[-1]
    if not pending:
        return None
    return min(pending, key=lambda node: position_index(node.position, state.table_format))


def node_state(state: ScenarioState, node_id: str) -> NodeState:
    node = _require(state, node_id)
    if node.decision is None:
        if _superseded(node, state.nodes, _sequence(state)):
            return NodeState.SUPERSEDED
        active = next_to_act(state)
        return NodeState.ACTIVE if active is not None and active.id == node.id else NodeState.WAITING
    return _STATE_FOR_ACTION[node.decision.kind]


def effective_stack(state: ScenarioState, node_id: str) -> float:
    node = _require(state, node_id)
    if node.stack_override is not None:
        return node.stack_override
    return get_settings().stack_bb


# ----------------------------------------------------------------------
# apply_action


def _resolve_sizing(
    state: ScenarioState,
    node: ScenarioNode,
    action: ActionKind,
    sizing: float | None,
) -> float | None:
    if not requires_sizing(action):
        if sizing is not None:
            logger.debug("Dropping sizing %s supplied for %s", sizing, action.value)
        return None
    if action is ActionKind.LIMP:
        return LIMP_SIZING
    if sizing is None:
        raiser = state.context.last_raiser
        in_position = is_in_position(node.position, raiser.position if raiser else None, state.table_format)
        return default_sizing(action, in_position)
    value = float(sizing)
    if not math.isfinite(value) or value <= 0:
        raise IllegalAction(f"sizing must be a positive number, got {sizing!r}")
    if feature_flags.is_enabled(feature_flags.STRICT_SIZING):
        allowed = sizing_values(action)
        if allowed and not any(math.isclose(value, option) for option in allowed):
            raise IllegalAction(f"sizing {value:g} is not one of {allowed} for {action.value}")
    return value


def _replace_node(nodes: list[ScenarioNode], updated: ScenarioNode) -> None:
    for idx, node in enumerate(nodes):
        if node.id == updated.id:
            nodes[idx] = updated
            return


def _auto_fold(node: ScenarioNode) -> ScenarioNode:
    return replace(node, decision=Decision(ActionKind.FOLD, automatic=True), sizing=None)


def _propagate_backward(state: ScenarioState) -> ScenarioState:
    fmt = state.table_format
    voluntary = [
        node
        for node in state.nodes
        if node.decision is not None and not node.decision.automatic and node.decision.kind is not ActionKind.FOLD
    ]
    if not voluntary:
        return state
    latest = max(voluntary, key=lambda node: position_index(node.position, fmt))
    latest_idx = position_index(latest.position, fmt)
    nodes = list(state.nodes)
    for node in _open_nodes(state):
        if node.is_hero:
            continue
        if position_index(node.position, fmt) >= latest_idx or _is_revisit(state, node):
            continue
        logger.debug("Auto-folding %s (%s) behind %s", node.id, node.position.value, latest.position.value)
        _replace_node(nodes, _auto_fold(node))
    return replace(state, nodes=tuple(nodes))


def _propagate_forward(state: ScenarioState) -> ScenarioState:
    fmt = state.table_format
    nodes = list(state.nodes)
    pending = _open_nodes(state)
    for hero in state.nodes:
        if not hero.is_hero or hero.action is not ActionKind.FOLD:
            continue
        hero_idx = position_index(hero.position, fmt)
        for node in pending:
            if node.is_hero:
                continue
            if position_index(node.position, fmt) > hero_idx:
                logger.debug("Auto-folding %s after hero fold at %s", node.id, hero.position.value)
                _replace_node(nodes, _auto_fold(node))
    return replace(state, nodes=tuple(nodes))


def _folded_seats(nodes: Iterable[ScenarioNode]) -> set[Position]:
    return {node.position for node in nodes if node.action is ActionKind.FOLD}


def _live_aggressors(state: ScenarioState, acting: ScenarioNode) -> set[Position]:
    folded = _folded_seats(state.nodes)
    return {
        node.position
        for node in state.nodes
        if node.action in AGGRESSIVE_ACTIONS and node.position is not acting.position and node.position not in folded
    }


def _has_pending_continuation(state: ScenarioState, position: Position) -> bool:
    return any(node.position is position and node.is_continuation for node in _open_nodes(state))


def _scan_for_responder(state: ScenarioState, acting: ScenarioNode) -> Position | None:
    """Forward from the acting seat to the end of the order, then wrap from the start."""

    seats = positions_for(state.table_format)
    start = position_index(acting.position, state.table_format)
    occupied = {node.position for node in state.nodes if node.is_continuation} | _folded_seats(state.nodes)
    for seat in (*seats[start + 1 :], *seats[:start]):
        if seat not in occupied:
            return seat
    return None


def _insert_continuation(state: ScenarioState, acting: ScenarioNode) -> ScenarioState:
    action = _resolved_action(state, acting)
    if action is None or action is ActionKind.FOLD or not succession_rule(action).spawns_node:
        return state
    aggressors = _live_aggressors(state, acting)
    facing = bool(aggressors) and action in RESPONSE_TABLE
    target = target_position(action, acting.position, state.table_format, aggressors=aggressors)
    if target is not None and _has_pending_continuation(state, target):
        logger.debug("Continuation at %s already pending; nothing to add", target.value)
        return state
    if not facing:
        target = _scan_for_responder(state, acting)
    if target is None:
        logger.debug("No seat left to respond to %s at %s", action.value, acting.position.value)
        return state
    node = ScenarioNode(
        id=_continuation_id(state, target),
        position=target,
        role=Role.VILLAIN,
        parent_id=acting.id,
    )
    logger.debug("Adding continuation %s at %s after %s", node.id, target.value, action.value)
    return replace(state, nodes=(*state.nodes, node))


def _record(context: ScenarioContext, node: ScenarioNode) -> ScenarioContext:
    action = node.action
    if action is None:
        return context
    entry = ActionHistoryEntry(
        node_id=node.id,
        position=node.position,
        action=action,
        sizing=node.sizing,
        sequence_index=len(context.history),
    )
    record = ActionRecord(position=node.position, action=action, sizing=node.sizing)
    last_raiser = record if action in AGGRESSIVE_ACTIONS else context.last_raiser
    last_opener = context.last_opener
    if last_opener is None and action in (ActionKind.LIMP, ActionKind.OPEN):
        last_opener = record
    return ScenarioContext(
        last_opener=last_opener,
        last_raiser=last_raiser,
        history=(*context.history, entry),
    )


def apply_action(
    state: ScenarioState,
    node_id: str,
    action: ActionKind | str,
    sizing: float | None = None,
) -> ScenarioState:
    """Record *action* for *node_id* and return the resulting scenario."""

    node = _require(state, node_id)
    action = parse_action(action)
    legal = _legal_for(state, node)
    if action not in legal:
        if node.decision is not None:
            raise IllegalAction(f"{node.position.value} has already acted ({node.decision.kind.value})")
        if not legal:
            raise IllegalAction(f"{node.position.value} has already acted at another node")
        allowed = ", ".join(sorted(kind.value for kind in legal))
        raise IllegalAction(f"{action.value} is not legal for {node.position.value}; allowed: {allowed}")

    decided = replace(
        node,
        decision=Decision(action),
        sizing=_resolve_sizing(state, node, action, sizing),
    )
    nodes = list(state.nodes)
    _replace_node(nodes, decided)
    next_state = replace(state, nodes=tuple(nodes), context=_record(state.context, decided))

    next_state = _propagate_backward(next_state)
    next_state = _propagate_forward(next_state)
    return _insert_continuation(next_state, decided)


# ----------------------------------------------------------------------
# Editing commands


def _edit(state: ScenarioState, node_id: str, **changes) -> ScenarioState:
    node = _require(state, node_id)
    nodes = list(state.nodes)
    _replace_node(nodes, replace(node, **changes))
    return replace(state, nodes=tuple(nodes))


def convert_to_hero(state: ScenarioState, node_id: str, range_id: str | None = None) -> ScenarioState:
    node = _require(state, node_id)
    return _edit(state, node_id, role=Role.HERO, range_id=range_id if range_id is not None else node.range_id)


def convert_to_villain(state: ScenarioState, node_id: str) -> ScenarioState:
    return _edit(state, node_id, role=Role.VILLAIN, range_id=None)


def link_range(state: ScenarioState, node_id: str, range_id: str) -> ScenarioState:
    node = _require(state, node_id)
    if not node.is_hero:
        raise IllegalAction(f"only hero nodes carry a range; {node.position.value} is a villain")
    return _edit(state, node_id, range_id=range_id)


def set_stack_override(state: ScenarioState, node_id: str, stack_bb: float | None) -> ScenarioState:
    if stack_bb is not None and (not math.isfinite(stack_bb) or stack_bb <= 0):
        raise IllegalAction(f"stack override must be positive, got {stack_bb!r}")
    return _edit(state, node_id, stack_override=stack_bb)


def _carry_edits(state: ScenarioState, previous: Mapping[str, ScenarioNode]) -> ScenarioState:
    nodes = tuple(
        replace(node, role=old.role, range_id=old.range_id, stack_override=old.stack_override)
        if (old := previous.get(node.id)) is not None
        else node
        for node in state.nodes
    )
    return replace(state, nodes=nodes)


def modify_action(state: ScenarioState, node_id: str) -> ScenarioState:
    """Take back *node_id*'s explicit decision and everything decided after it.

    The scenario is replayed from its seeded seats up to, but not including,
    that decision. The node is pending again; later continuations disappear
    and the auto-folds they caused are lifted. Role, range and stack edits
    survive on every node that still exists.
    """

    node = _require(state, node_id)
    if node.decision is None:
        raise IllegalAction(f"{node.position.value} has not acted yet")
    if node.decision.automatic:
        raise IllegalAction(f"{node.position.value} was folded automatically; modify the action that caused it")
    cutoff = _sequence(state).get(node.id)
    if cutoff is None:
        raise IllegalAction(f"{node.id!r} has no recorded decision to take back")

    previous = {item.id: item for item in state.nodes}
    seeds = tuple(replace(item, decision=None, sizing=None) for item in state.nodes if not item.is_continuation)
    rewound = ScenarioState(table_format=state.table_format, nodes=seeds)
    kept = [entry for entry in state.context.history if entry.sequence_index < cutoff]
    # Recorded sizings include resolved defaults, which strict sizing would refuse.
    with feature_flags.override(disable={feature_flags.STRICT_SIZING}):
        for entry in sorted(kept, key=lambda item: item.sequence_index):
            rewound = apply_action(rewound, entry.node_id, entry.action, entry.sizing)
            rewound = _carry_edits(rewound, previous)
    logger.debug("Rewound %s to before %s (%d decisions kept)", node.position.value, node.id, cutoff)
    return rewound


# ----------------------------------------------------------------------
# Context reconstruction


def rebuild_context(state: ScenarioState, order: Sequence[str] | None = None) -> ScenarioState:
    """Recompute context from the node list.

    ``order`` lists node ids in the order their decisions were taken. Without
    it, seeded seats replay in table order, then continuation nodes in the
    order they were appended. Automatic folds are not history.
    """

    if order is not None:
        nodes = [_require(state, node_id) for node_id in order]
    else:
        fmt = state.table_format
        seats = sorted(
            (node for node in state.nodes if not node.is_continuation),
            key=lambda node: position_index(node.position, fmt),
        )
        nodes = [*seats, *(node for node in state.nodes if node.is_continuation)]
    context = ScenarioContext()
    for node in nodes:
        if node.decision is None or node.decision.automatic:
            continue
        context = _record(context, node)
    return replace(state, context=context)
