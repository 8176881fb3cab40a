"""Environment-driven defaults for new scenarios.

``SCENARIOTREE_TABLE_FORMAT``  table format for seeded scenarios (``6max``)
``SCENARIOTREE_STACK_BB``      default effective stack in big blinds (``100``)
``SCENARIOTREE_STORE_DIR``     directory for the JSON scenario store (unset = memory)
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final

from .models import TableFormat, parse_table_format

__all__ = ["Settings", "get_settings", "override"]

logger = logging.getLogger(__name__)

_PREFIX: Final = "SCENARIOTREE_"
_DEFAULT_STACK_BB: Final = 100.0


@dataclass(frozen=True, slots=True)
class Settings:
    table_format: TableFormat = TableFormat.SIX_MAX
    stack_bb: float = _DEFAULT_STACK_BB
    store_dir: Path | None = None


def _from_env() -> Settings:
    settings = Settings()
    raw_format = os.getenv(f"{_PREFIX}TABLE_FORMAT")
    if raw_format:
        try:
            settings = replace(settings, table_format=parse_table_format(raw_format))
        except ValueError:
            logger.warning("Ignoring %sTABLE_FORMAT=%r; using %s", _PREFIX, raw_format, settings.table_format)
    raw_stack = os.getenv(f"{_PREFIX}STACK_BB")
    if raw_stack:
        try:
            stack = float(raw_stack)
        except ValueError:
            stack = 0.0
        if stack > 0:
            settings = replace(settings, stack_bb=stack)
        else:
            logger.warning("Ignoring %sSTACK_BB=%r; using %s", _PREFIX, raw_stack, settings.stack_bb)
    raw_dir = os.getenv(f"{_PREFIX}STORE_DIR")
    if raw_dir:
        settings = replace(settings, store_dir=Path(raw_dir).expanduser())
    return settings


_OVERRIDE_STACK: list[dict[str, Any]] = []


def get_settings() -> Settings:
    """Current settings: environment first, then any active overrides."""

    settings = _from_env()
    for values in _OVERRIDE_STACK:
        settings = replace(settings, **values)
    return settings


@contextmanager
def override(**values: Any):
    """Temporarily replace settings fields, e.g. ``override(stack_bb=40)``."""

    _OVERRIDE_STACK.append(values)
    try:
        yield get_settings()
    finally:
        _OVERRIDE_STACK.pop()
