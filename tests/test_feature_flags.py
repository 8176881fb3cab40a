from __future__ import annotations

import pytest

from scenariotree.core import feature_flags
from scenariotree.core.errors import IllegalAction
from scenariotree.core.models import ActionKind, Position, TableFormat
from scenariotree.dynamic.builder import apply_action, seed_initial_nodes


def test_env_and_override_stack(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SCENARIOTREE_FEATURES", raising=False)

    assert feature_flags.is_enabled(feature_flags.STRICT_SIZING) is False
    assert feature_flags.enabled_flags() == frozenset()

    feature_flags.set_env_flags([" Builder.Strict_Sizing "])
    assert feature_flags.is_enabled(feature_flags.STRICT_SIZING) is True

    with feature_flags.override(disable={feature_flags.STRICT_SIZING}):
        assert feature_flags.is_enabled(feature_flags.STRICT_SIZING) is False
        with feature_flags.override(enable={"builder.other"}):
            assert feature_flags.is_enabled("builder.other") is True
            assert feature_flags.is_enabled(feature_flags.STRICT_SIZING) is False
            assert feature_flags.enabled_flags() == frozenset({"builder.other"})
        with feature_flags.override(enable={feature_flags.STRICT_SIZING}):
            assert feature_flags.is_enabled(feature_flags.STRICT_SIZING) is True

    assert feature_flags.is_enabled(feature_flags.STRICT_SIZING) is True
    assert feature_flags.enabled_flags() == frozenset({feature_flags.STRICT_SIZING})


def test_strict_sizing_rejects_unlisted_sizes() -> None:
    state = seed_initial_nodes(TableFormat.SIX_MAX)
    utg = state.nodes[0]
    assert utg.position is Position.UTG

    with feature_flags.override(enable={feature_flags.STRICT_SIZING}):
        with pytest.raises(IllegalAction):
            apply_action(state, utg.id, ActionKind.OPEN, sizing=2.2)
        accepted = apply_action(state, utg.id, ActionKind.OPEN, sizing=2.5)
        defaulted = apply_action(state, utg.id, ActionKind.OPEN)

    assert accepted.find(utg.id).sizing == 2.5
    assert defaulted.find(utg.id).sizing == 2.0
    with feature_flags.override(disable={feature_flags.STRICT_SIZING}):
        assert apply_action(state, utg.id, ActionKind.OPEN, sizing=2.2).find(utg.id).sizing == 2.2
