"""Shared CLI helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from archgov.defaults import DEFAULT_DB_PATH
from archgov.errors import GovernanceError


def _default_db() -> str:
    return str(Path(DEFAULT_DB_PATH))


def _out(data: Any) -> int:
    print(json.dumps(data, indent=2, default=str))
    if isinstance(data, dict) and "error" in data:
        return 1
    return 0


def _run(fn: Callable[[], Any]) -> int:
    """Call *fn* and print its result; domain errors print as ``{"error": ...}``."""
    try:
        result = fn()
    except GovernanceError as e:
        return _out(e.to_dict())
    return _out(result)


def _csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
