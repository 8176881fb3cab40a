"""Builder feature flags.

``SCENARIOTREE_FEATURES`` holds a comma-separated, case-insensitive list of
enabled flags. Tests and the CLI layer overrides on top with ``override``;
the innermost override that mentions a flag decides it.

Usage::

    from scenariotree.core import feature_flags

    with feature_flags.override(enable={feature_flags.STRICT_SIZING}):
        ...
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from contextlib import contextmanager
from typing import Final

__all__ = ["KNOWN_FLAGS", "STRICT_SIZING", "enabled_flags", "is_enabled", "override", "set_env_flags"]

logger = logging.getLogger(__name__)

_ENV_VAR: Final = "SCENARIOTREE_FEATURES"

# Reject explicit sizings that are not one of the labelled options for the action.
STRICT_SIZING: Final = "builder.strict_sizing"

KNOWN_FLAGS: Final = frozenset({STRICT_SIZING})

_OVERRIDES: list[dict[str, bool]] = []


def _key(flag: str) -> str:
    return flag.strip().lower()


def _env_flags() -> set[str]:
    raw = os.getenv(_ENV_VAR) or ""
    flags = {_key(entry) for entry in raw.split(",") if entry.strip()}
    unknown = flags - KNOWN_FLAGS
    if unknown:
        logger.debug("Unrecognised entries in %s: %s", _ENV_VAR, ", ".join(sorted(unknown)))
    return flags


def is_enabled(flag: str) -> bool:
    key = _key(flag)
    for layer in reversed(_OVERRIDES):
        if key in layer:
            return layer[key]
    return key in _env_flags()


def enabled_flags() -> frozenset[str]:
    """Every flag currently on, from the environment and active overrides."""

    candidates = _env_flags() | {key for layer in _OVERRIDES for key in layer}
    return frozenset(flag for flag in candidates if is_enabled(flag))


@contextmanager
def override(*, enable: Iterable[str] = (), disable: Iterable[str] = ()):
    layer = {_key(flag): True for flag in enable}
    layer.update({_key(flag): False for flag in disable})
    _OVERRIDES.append(layer)
    try:
        yield
    finally:
        _OVERRIDES.pop()


def set_env_flags(flags: Iterable[str]) -> None:
    os.environ[_ENV_VAR] = ",".join(sorted({_key(flag) for flag in flags}))
