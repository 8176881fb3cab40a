"""Default bet sizing lookups for preflop scenario construction.

Sizes are in big blinds except for the generic raise fallback, which is
expressed as pot fractions. 3-bets default smaller in position (3x) than out
of position (4x).
"""

from __future__ import annotations

import re

from ..core.models import SIZED_ACTIONS, ActionKind

__all__ = [
    "default_sizing",
    "default_sizing_options",
    "parse_sizing_label",
    "requires_sizing",
    "sizing_values",
]

LIMP_SIZING = 1.0

_OPTIONS: dict[ActionKind, tuple[str, ...]] = {
    ActionKind.OPEN: ("2bb", "2.5bb", "3bb"),
    ActionKind.THREE_BET: ("8bb", "9bb", "10bb", "12bb"),
    ActionKind.FOUR_BET: ("20bb", "24bb", "28bb"),
    ActionKind.LIMP: ("1bb",),
    ActionKind.CALL: (),
    ActionKind.FOLD: (),
    ActionKind.CHECK: (),
}
_FALLBACK_OPTIONS: tuple[str, ...] = ("pot", "0.5pot", "0.75pot")

_LABEL = re.compile(r"^\s*(?P<value>\d+(?:\.\d+)?)?\s*(?P<unit>bb|pot)\s*$", re.IGNORECASE)


def default_sizing_options(action: ActionKind) -> tuple[str, ...]:
    return _OPTIONS.get(action, _FALLBACK_OPTIONS)


def default_sizing(action: ActionKind, in_position: bool = True) -> float:
    if action is ActionKind.OPEN:
        return 2.0
    if action in (ActionKind.THREE_BET, ActionKind.RAISE):
        return 3.0 if in_position else 4.0
    if action is ActionKind.FOUR_BET:
        return 20.0
    if action is ActionKind.LIMP:
        return LIMP_SIZING
    return 2.0


def requires_sizing(action: ActionKind) -> bool:
    return action in SIZED_ACTIONS


def parse_sizing_label(label: str) -> float:
    """``"2.5bb"`` → 2.5, ``"pot"`` → 1.0, ``"0.75pot"`` → 0.75."""

    match = _LABEL.match(label)
    if not match:
        raise ValueError(f"unrecognised sizing label {label!r}")
    value = match.group("value")
    return float(value) if value is not None else 1.0


def sizing_values(action: ActionKind) -> tuple[float, ...]:
    return tuple(parse_sizing_label(label) for label in default_sizing_options(action))
