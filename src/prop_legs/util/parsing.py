"""Shared parsing helpers for tolerant numeric/string coercion."""

from __future__ import annotations

from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse number-like input into float, returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            return None
    return None


def safe_int(value: Any) -> int | None:
    """Parse number-like input into int, returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.startswith("+"):
            raw = raw[1:]
        try:
            return int(float(raw))
        except ValueError:
            return None
    return None


def clamp_unit(value: float) -> float:
    """Clamp a probability-like value into [0, 1]."""
    return max(0.0, min(1.0, value))


def safe_unit(value: Any) -> float | None:
    """Parse a rate into [0, 1], accepting percentages above 1."""
    parsed = safe_float(value)
    if parsed is None:
        return None
    if parsed > 1.0:
        parsed = parsed / 100.0
    return clamp_unit(parsed)


def safe_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
