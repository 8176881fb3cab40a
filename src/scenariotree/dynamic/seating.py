"""Canonical seat order helpers shared across the engine.

Preflop action always proceeds UTG → ... → BTN → SB → BB, so every ordering
question (who acts next, who raised before me, who is in position) reduces to
an index lookup in the format's seat tuple.
"""

from __future__ import annotations

from ..core.errors import InvalidPosition
from ..core.models import Position, TableFormat

__all__ = [
    "SEAT_ORDER",
    "is_in_position",
    "next_position",
    "position_index",
    "positions_for",
    "previous_position",
]

SEAT_ORDER: dict[TableFormat, tuple[Position, ...]] = {
    TableFormat.SIX_MAX: (
        Position.UTG,
        Position.HJ,
        Position.CO,
        Position.BTN,
        Position.SB,
        Position.BB,
    ),
    TableFormat.NINE_MAX: (
        Position.UTG,
        Position.UTG1,
        Position.UTG2,
        Position.HJ,
        Position.CO,
        Position.BTN,
        Position.SB,
        Position.BB,
    ),
}


def positions_for(table_format: TableFormat) -> tuple[Position, ...]:
    return SEAT_ORDER[table_format]


def position_index(position: Position, table_format: TableFormat) -> int:
    seats = SEAT_ORDER[table_format]
    try:
        return seats.index(position)
    except ValueError:
        raise InvalidPosition(f"{position.value} is not a seat at a {table_format.value} table") from None


def next_position(position: Position, table_format: TableFormat) -> Position | None:
    seats = SEAT_ORDER[table_format]
    idx = position_index(position, table_format)
    return seats[idx + 1] if idx + 1 < len(seats) else None


def previous_position(position: Position, table_format: TableFormat) -> Position | None:
    seats = SEAT_ORDER[table_format]
    idx = position_index(position, table_format)
    return seats[idx - 1] if idx > 0 else None


def is_in_position(acting: Position, aggressor: Position | None, table_format: TableFormat) -> bool:
    """True when *acting* acts after *aggressor*; unopened pots count as IP."""

    if aggressor is None:
        return True
    return position_index(acting, table_format) > position_index(aggressor, table_format)
