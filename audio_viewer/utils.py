"""Generic helper utilities used across the project."""
from __future__ import annotations

import os
from typing import Iterable, Optional, TypeVar

_Number = TypeVar("_Number", int, float)


def resolve_path(value: str, base_dir: str) -> str:
    """Resolve a path relative to base_dir when value is not absolute."""
    if not os.path.isabs(value):
        return os.path.join(base_dir, value)
    return value


def clamp(value: _Number, low: Optional[_Number], high: Optional[_Number]) -> _Number:
    if low is not None and value < low:
        value = low
    if high is not None and value > high:
        value = high
    return value


def clamp_fraction(value: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    if parsed != parsed:  # NaN
        return 0.0
    return clamp(parsed, 0.0, 1.0)


def parse_int_env(
    name: str,
    default: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Parse an integer environment variable with optional bounds."""
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return clamp(value, min_value, max_value)


def parse_float_env(
    name: str,
    default: float,
    *,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    """Parse a float environment variable with optional bounds."""
    try:
        value = float(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return clamp(value, min_value, max_value)


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def parse_choice_env(name: str, default: str, choices: Iterable[str]) -> str:
    """Read a lower-cased enum-like environment variable, falling back to default."""
    allowed = {choice.lower() for choice in choices}
    value = os.getenv(name, default).strip().lower()
    return value if value in allowed else default
