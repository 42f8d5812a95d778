"""Rate and average arithmetic for windowed metrics."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded towards +infinity.

    Raises:
        ValueError: If ``value`` is NaN or infinite.
    """
    if not math.isfinite(value):
        raise ValueError(f"cannot round non-finite value {value!r}")
    return math.floor(value + 0.5)


def elapsed_minutes(previous: float, now: float) -> float:
    """Minutes between two wall-clock readings given in seconds."""
    return (now - previous) / 60


def per_minute(
    current: float, previous: float, minutes: float, scale: int = 1
) -> int | None:
    """Rate of change per minute, multiplied by ``scale`` and rounded.

    Returns None when the rate is undefined (zero, negative or non-finite
    elapsed time, or a non-finite result).
    """
    if not math.isfinite(minutes) or minutes <= 0:
        return None
    rate = (current - previous) / minutes * scale
    if not math.isfinite(rate):
        return None
    return round_half_up(rate)


def average(total: float, count: int) -> int:
    """Rounded mean, or 0 when nothing was accumulated."""
    if count <= 0:
        return 0
    return round_half_up(total / count)
