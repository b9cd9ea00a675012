"""Shared validation helpers."""

from __future__ import annotations

import math
import numbers


def validate_delay(delay: float, *, name: str = "delay") -> None:
    """Ensure *delay* is a usable verification wait budget in seconds."""
    if isinstance(delay, bool) or not isinstance(delay, numbers.Real):
        msg = f"{name} must be a real number"
        raise TypeError(msg)

    if not (delay >= 0 and math.isfinite(delay)):
        msg = f"{name} must be >= 0 and finite"
        raise ValueError(msg)
