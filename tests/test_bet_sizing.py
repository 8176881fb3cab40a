from __future__ import annotations

import pytest

from scenariotree.core.models import ActionKind as A
from scenariotree.dynamic.bet_sizing import (
    default_sizing,
    default_sizing_options,
    parse_sizing_label,
    requires_sizing,
    sizing_values,
)


def test_default_sizing_options_per_action() -> None:
    assert default_sizing_options(A.OPEN) == ("2bb", "2.5bb", "3bb")
    assert default_sizing_options(A.THREE_BET) == ("8bb", "9bb", "10bb", "12bb")
    assert default_sizing_options(A.FOUR_BET) == ("20bb", "24bb", "28bb")
    assert default_sizing_options(A.LIMP) == ("1bb",)
    for action in (A.FOLD, A.CALL, A.CHECK):
        assert default_sizing_options(action) == ()
    assert default_sizing_options(A.RAISE) == ("pot", "0.5pot", "0.75pot")


def test_three_bet_is_smaller_in_position() -> None:
    assert default_sizing(A.THREE_BET, in_position=True) == 3
    assert default_sizing(A.THREE_BET, in_position=False) == 4
    assert default_sizing(A.RAISE, in_position=True) == 3
    assert default_sizing(A.RAISE, in_position=False) == 4


@pytest.mark.parametrize(
    ("action", "expected"),
    [(A.OPEN, 2), (A.FOUR_BET, 20), (A.LIMP, 1), (A.CALL, 2), (A.FOLD, 2), (A.CHECK, 2)],
)
def test_default_sizing_is_position_agnostic_elsewhere(action: A, expected: float) -> None:
    assert default_sizing(action, in_position=True) == expected
    assert default_sizing(action, in_position=False) == expected


def test_labels_parse_to_numbers() -> None:
    assert parse_sizing_label("2.5bb") == 2.5
    assert parse_sizing_label("pot") == 1.0
    assert parse_sizing_label("0.75pot") == 0.75
    assert sizing_values(A.FOUR_BET) == (20.0, 24.0, 28.0)
    with pytest.raises(ValueError):
        parse_sizing_label("huge")


def test_requires_sizing() -> None:
    assert {action for action in A if requires_sizing(action)} == {
        A.OPEN,
        A.THREE_BET,
        A.FOUR_BET,
        A.RAISE,
        A.LIMP,
    }
