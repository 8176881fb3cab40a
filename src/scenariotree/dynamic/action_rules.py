"""Action succession rules for a simplified preflop betting round.

Each action a seat takes maps to a ``SuccessionRule``: what the next actor may
do, whether someone else now owes a decision, and how to find that seat. Two
extra rows describe the obligation that returns to an earlier raiser once they
face a 3-bet or 4-bet.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum

from ..core.errors import UnknownAction
from ..core.models import ActionKind, Position, TableFormat
from .seating import next_position, position_index, positions_for

__all__ = [
    "BB_FACING_RAISE",
    "BB_UNOPENED",
    "ENTRY_ACTIONS",
    "RESPONSE_TABLE",
    "SUCCESSION_TABLE",
    "SuccessionRule",
    "TargetRule",
    "legal_actions_after",
    "previous_aggressor",
    "raise_level",
    "spawns_node",
    "succession_rule",
    "target_position",
]


class TargetRule(Enum):
    NEXT_IN_ORDER = "next_in_order"
    PREVIOUS_AGGRESSOR = "previous_aggressor"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class SuccessionRule:
    legal_next: frozenset[ActionKind]
    spawns_node: bool
    target: TargetRule


def _rule(legal: Collection[ActionKind], target: TargetRule) -> SuccessionRule:
    return SuccessionRule(
        legal_next=frozenset(legal),
        spawns_node=target is not TargetRule.NONE,
        target=target,
    )


_TERMINAL = _rule((), TargetRule.NONE)

A = ActionKind

SUCCESSION_TABLE: dict[ActionKind, SuccessionRule] = {
    A.OPEN: _rule((A.FOLD, A.THREE_BET, A.CALL), TargetRule.NEXT_IN_ORDER),
    # Someone can still open behind a limper.
    A.LIMP: _rule((A.FOLD, A.CALL, A.OPEN), TargetRule.NEXT_IN_ORDER),
    A.THREE_BET: _rule((A.FOLD, A.FOUR_BET, A.CALL), TargetRule.NEXT_IN_ORDER),
    # No 5-bet in this model.
    A.FOUR_BET: _rule((A.FOLD, A.CALL), TargetRule.NEXT_IN_ORDER),
    A.RAISE: _rule((A.FOLD, A.THREE_BET, A.CALL), TargetRule.NEXT_IN_ORDER),
    A.FOLD: _TERMINAL,
    A.CALL: _TERMINAL,
    A.CHECK: _TERMINAL,
}

# Keyed by the re-raise being faced: action returns to the earlier aggressor.
RESPONSE_TABLE: dict[ActionKind, SuccessionRule] = {
    A.THREE_BET: _rule((A.FOLD, A.FOUR_BET, A.CALL), TargetRule.PREVIOUS_AGGRESSOR),
    A.FOUR_BET: _rule((A.FOLD, A.CALL), TargetRule.PREVIOUS_AGGRESSOR),
}

ENTRY_ACTIONS: frozenset[ActionKind] = frozenset({A.FOLD, A.LIMP, A.OPEN})
BB_UNOPENED: frozenset[ActionKind] = frozenset({A.FOLD, A.CALL, A.CHECK})
# 3-bet stands in for a raise from the big blind; the BB never opens.
BB_FACING_RAISE: frozenset[ActionKind] = frozenset({A.FOLD, A.CALL, A.THREE_BET})

del A


def succession_rule(action: ActionKind, *, facing: bool = False) -> SuccessionRule:
    """Rule for *action*; ``facing`` selects the response row where one exists."""

    if facing and action in RESPONSE_TABLE:
        return RESPONSE_TABLE[action]
    try:
        return SUCCESSION_TABLE[action]
    except (KeyError, TypeError):
        raise UnknownAction(f"no succession rule for {action!r}") from None


def legal_actions_after(
    prev: ActionKind | None,
    is_bb: bool = False,
    bb_faced_raise: bool = False,
) -> frozenset[ActionKind]:
    """Legal choices for a seat whose last relevant action to face was *prev*."""

    if is_bb and prev not in RESPONSE_TABLE:
        return BB_FACING_RAISE if bb_faced_raise else BB_UNOPENED
    if prev is None:
        return ENTRY_ACTIONS
    return succession_rule(prev).legal_next


def spawns_node(action: ActionKind) -> bool:
    return succession_rule(action).spawns_node


_RAISE_LEVELS: tuple[ActionKind, ...] = (ActionKind.OPEN, ActionKind.THREE_BET, ActionKind.FOUR_BET)


def raise_level(prior_raises: int) -> ActionKind:
    """What a size-agnostic raise amounts to after *prior_raises* aggressive actions."""

    return _RAISE_LEVELS[min(max(prior_raises, 0), len(_RAISE_LEVELS) - 1)]


def previous_aggressor(
    current: Position,
    table_format: TableFormat,
    aggressors: Collection[Position],
) -> Position | None:
    """Walk backward from *current* (wrapping) to the nearest seat in *aggressors*."""

    seats = positions_for(table_format)
    start = position_index(current, table_format)
    for step in range(1, len(seats)):
        seat = seats[(start - step) % len(seats)]
        if seat in aggressors:
            return seat
    return None


def target_position(
    action: ActionKind,
    current_position: Position,
    table_format: TableFormat,
    *,
    aggressors: Collection[Position] = (),
) -> Position | None:
    """Seat that owes a decision after *current_position* takes *action*.

    With earlier aggressors still live, a re-raise sends action back to the
    nearest of them; otherwise the next seat in order is targeted.
    """

    others = [seat for seat in aggressors if seat is not current_position]
    rule = succession_rule(action, facing=bool(others))
    if rule.target is TargetRule.NEXT_IN_ORDER:
        return next_position(current_position, table_format)
    if rule.target is TargetRule.PREVIOUS_AGGRESSOR:
        return previous_aggressor(current_position, table_format, others)
    return None
