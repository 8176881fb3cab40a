from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from .core import feature_flags
from .core.errors import EngineError, IllegalAction
from .core.models import (
    ActionKind,
    Position,
    ScenarioNode,
    ScenarioState,
    parse_action,
    parse_position,
    parse_table_format,
)
from .core.settings import get_settings
from .dynamic.builder import apply_action, is_superseded, seed_initial_nodes
from .features.scenario.schemas import record_from_state
from .ui.presenters import RichPresenter


@dataclass(frozen=True)
class Step:
    position: Position
    action: ActionKind
    sizing: float | None = None


def parse_step(raw: str) -> Step:
    """``SEAT:ACTION[@SIZE]``, e.g. ``UTG:open``, ``BTN:3bet@9``."""

    seat, sep, rest = raw.partition(":")
    if not sep or not rest:
        raise argparse.ArgumentTypeError(f"expected SEAT:ACTION[@SIZE], got {raw!r}")
    action_text, _, size_text = rest.partition("@")
    try:
        sizing = float(size_text) if size_text else None
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad sizing in {raw!r}") from None
    return Step(position=parse_position(seat), action=parse_action(action_text), sizing=sizing)


def node_for_seat(state: ScenarioState, position: Position) -> ScenarioNode:
    """The seat's undecided node, preferring the most recent continuation."""

    pending = [
        node for node in state.nodes_at(position) if node.is_pending and not is_superseded(state, node.id)
    ]
    if not pending:
        raise IllegalAction(f"{position.value} has no pending decision")
    continuations = [node for node in pending if node.is_continuation]
    return continuations[-1] if continuations else pending[0]


def replay(state: ScenarioState, steps: Sequence[Step]) -> ScenarioState:
    for step in steps:
        node = node_for_seat(state, step.position)
        state = apply_action(state, node.id, step.action, step.sizing)
    return state


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scenariotree",
        description="Build a preflop scenario tree by replaying seat actions",
    )
    parser.add_argument("steps", nargs="*", metavar="SEAT:ACTION[@SIZE]", help="Actions in the order they are taken")
    parser.add_argument("--format", dest="table_format", default=None, help="Table format: 6max or 9max")
    parser.add_argument("--hero", default=None, help="Seat to mark as Hero")
    parser.add_argument("--json", action="store_true", help="Print the persisted record instead of the tree")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--enable",
        action="append",
        default=[],
        metavar="FLAG",
        help=f"Turn on a builder feature flag (known: {', '.join(sorted(feature_flags.KNOWN_FLAGS))})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine decisions")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    presenter = RichPresenter(no_color=args.no_color)
    try:
        table_format = parse_table_format(args.table_format) if args.table_format else get_settings().table_format
        hero = parse_position(args.hero) if args.hero else None
        steps = [parse_step(raw) for raw in args.steps]
        with feature_flags.override(enable=args.enable):
            state = replay(seed_initial_nodes(table_format, hero=hero), steps)
    except (ValueError, argparse.ArgumentTypeError) as exc:
        parser.error(str(exc))
    except EngineError as exc:
        presenter.show_error(exc)
        return 2

    if args.json:
        sys.stdout.write(record_from_state(state).model_dump_json(indent=2, exclude_none=True) + "\n")
        return 0
    presenter.show_tree(state)
    presenter.show_history(state)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
