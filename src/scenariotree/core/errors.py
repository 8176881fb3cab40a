"""Typed failures raised by the scenario engine.

Every error leaves the caller's ``ScenarioState`` untouched; the builder only
ever returns complete new states.
"""

from __future__ import annotations

__all__ = [
    "EngineError",
    "IllegalAction",
    "InvalidPosition",
    "NodeNotFound",
    "ScenarioNotFound",
    "UnknownAction",
]


class EngineError(Exception):
    """Base class for all engine failures."""

    code = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NodeNotFound(EngineError):
    code = "node_not_found"

    def __init__(self, node_id: str) -> None:
        super().__init__(f"node {node_id!r} does not exist in this scenario")
        self.node_id = node_id


class IllegalAction(EngineError):
    """The requested action is not in the node's legal set (recoverable)."""

    code = "illegal_action"


class InvalidPosition(EngineError):
    code = "invalid_position"


class UnknownAction(EngineError):
    """An action outside the succession table; indicates a missing rule."""

    code = "unknown_action"


class ScenarioNotFound(EngineError):
    code = "scenario_not_found"

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"scenario {scenario_id!r} not found")
        self.scenario_id = scenario_id
