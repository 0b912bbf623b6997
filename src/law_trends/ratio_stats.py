from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import numpy as np

PERCENT_DECIMALS = 1


def coerce_count(value: Any) -> int:
    """Coerce a raw count field to a non-negative int; anything malformed becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, np.integer)):
        return max(int(value), 0)
    if isinstance(value, (float, np.floating)):
        if not math.isfinite(float(value)):
            return 0
        return max(int(value), 0)
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0
        try:
            parsed = float(text)
        except ValueError:
            return 0
        return coerce_count(parsed)
    return 0


def is_count_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, np.integer)):
        return True
    if isinstance(value, (float, np.floating)):
        return math.isfinite(float(value))
    return False


def round1(value: float) -> float:
    # Half-up so 0.05 steps round the same way on every platform.
    quantum = Decimal(1).scaleb(-PERCENT_DECIMALS)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def safe_pct(count: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return round1(float(count) / float(total) * 100.0)


def clamp(value: float, bound: float) -> float:
    limit = abs(float(bound))
    return float(np.clip(float(value), -limit, limit))
