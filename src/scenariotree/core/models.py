from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .errors import IllegalAction, InvalidPosition, UnknownAction

__all__ = [
    "AGGRESSIVE_ACTIONS",
    "SIZED_ACTIONS",
    "ActionHistoryEntry",
    "ActionKind",
    "ActionRecord",
    "Decision",
    "NodeState",
    "Position",
    "Role",
    "ScenarioContext",
    "ScenarioNode",
    "ScenarioState",
    "TableFormat",
    "parse_action",
    "parse_position",
    "parse_table_format",
]


class TableFormat(StrEnum):
    SIX_MAX = "6max"
    NINE_MAX = "9max"


class Position(StrEnum):
    UTG = "UTG"
    UTG1 = "UTG+1"
    UTG2 = "UTG+2"
    HJ = "HJ"
    CO = "CO"
    BTN = "BTN"
    SB = "SB"
    BB = "BB"


class ActionKind(StrEnum):
    FOLD = "fold"
    CALL = "call"
    LIMP = "limp"
    OPEN = "open"
    THREE_BET = "3bet"
    FOUR_BET = "4bet"
    RAISE = "raise"
    CHECK = "check"


class Role(StrEnum):
    HERO = "hero"
    VILLAIN = "villain"


class NodeState(StrEnum):
    ACTIVE = "active"
    WAITING = "waiting"
    FOLDED = "folded"
    LIMPED = "limped"
    OPENED = "opened"
    THREE_BET = "3bet"
    FOUR_BET = "4bet"
    RAISED = "raised"
    CALLED = "called"
    CHECKED = "checked"
    # Pending, but its seat already answered at another node.
    SUPERSEDED = "superseded"
    # Reserved for externally authored nodes; the builder never derives it.
    CUSTOM = "custom"


AGGRESSIVE_ACTIONS: frozenset[ActionKind] = frozenset(
    {ActionKind.OPEN, ActionKind.RAISE, ActionKind.THREE_BET, ActionKind.FOUR_BET}
)
SIZED_ACTIONS: frozenset[ActionKind] = AGGRESSIVE_ACTIONS | {ActionKind.LIMP}

_ACTION_ALIASES = {
    "three_bet": ActionKind.THREE_BET,
    "threebet": ActionKind.THREE_BET,
    "four_bet": ActionKind.FOUR_BET,
    "fourbet": ActionKind.FOUR_BET,
}


def parse_action(raw: ActionKind | str) -> ActionKind:
    """Return the ``ActionKind`` for a wire value or enum name."""

    if isinstance(raw, ActionKind):
        return raw
    if isinstance(raw, str):
        token = raw.strip().lower()
        for kind in ActionKind:
            if token in (kind.value, kind.name.lower()):
                return kind
        if token in _ACTION_ALIASES:
            return _ACTION_ALIASES[token]
    raise UnknownAction(f"unknown action {raw!r}")


def parse_position(raw: Position | str) -> Position:
    if isinstance(raw, Position):
        return raw
    if isinstance(raw, str):
        token = raw.strip().upper()
        for position in Position:
            if token in (position.value, position.name):
                return position
    raise InvalidPosition(f"unknown position {raw!r}")


def parse_table_format(raw: TableFormat | str) -> TableFormat:
    if isinstance(raw, TableFormat):
        return raw
    token = str(raw).strip().lower().replace("-", "")
    for table_format in TableFormat:
        if token == table_format.value:
            return table_format
    raise ValueError(f"unsupported table format {raw!r}")


@dataclass(frozen=True, slots=True)
class Decision:
    """An action a node has taken, tagged with how it was assigned.

    Automatic decisions are engine-derived and only ever folds.
    """

    kind: ActionKind
    automatic: bool = False

    def __post_init__(self) -> None:
        if self.automatic and self.kind is not ActionKind.FOLD:
            raise IllegalAction(f"automatic decisions must be folds, got {self.kind.value}")


@dataclass(frozen=True, slots=True)
class ScenarioNode:
    """One seat's participation record in the scenario tree."""

    id: str
    position: Position
    role: Role = Role.VILLAIN
    decision: Decision | None = None
    sizing: float | None = None
    stack_override: float | None = None
    range_id: str | None = None
    parent_id: str | None = None

    @property
    def action(self) -> ActionKind | None:
        return self.decision.kind if self.decision else None

    @property
    def is_automatic(self) -> bool:
        return bool(self.decision and self.decision.automatic)

    @property
    def is_pending(self) -> bool:
        return self.decision is None

    @property
    def is_hero(self) -> bool:
        return self.role is Role.HERO

    @property
    def is_continuation(self) -> bool:
        return self.parent_id is not None


@dataclass(frozen=True, slots=True)
class ActionRecord:
    position: Position
    action: ActionKind
    sizing: float | None = None


@dataclass(frozen=True, slots=True)
class ActionHistoryEntry:
    node_id: str
    position: Position
    action: ActionKind
    sizing: float | None
    sequence_index: int


@dataclass(frozen=True, slots=True)
class ScenarioContext:
    last_opener: ActionRecord | None = None
    last_raiser: ActionRecord | None = None
    history: tuple[ActionHistoryEntry, ...] = ()

    def facing_action(self) -> ActionKind | None:
        """Action an unopened seat is facing: last raise, else a limp."""

        if self.last_raiser is not None:
            return self.last_raiser.action
        if self.last_opener is not None and self.last_opener.action is ActionKind.LIMP:
            return ActionKind.LIMP
        return None


@dataclass(frozen=True, slots=True)
class ScenarioState:
    table_format: TableFormat
    nodes: tuple[ScenarioNode, ...] = ()
    context: ScenarioContext = field(default_factory=ScenarioContext)

    def find(self, node_id: str) -> ScenarioNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def index_of(self, node_id: str) -> int:
        for idx, node in enumerate(self.nodes):
            if node.id == node_id:
                return idx
        return -1

    def nodes_at(self, position: Position) -> list[ScenarioNode]:
        return [node for node in self.nodes if node.position is position]
