"""Host CPU and memory sampling via psutil."""

import logging
import math
import random
from collections.abc import Callable
from typing import Literal

import psutil

logger = logging.getLogger(__name__)

CpuFallback = Literal["none", "synthetic"]

SYNTHETIC_CPU_RANGE = (5.0, 25.0)


class HostSampler:
    """Reads instantaneous host load figures as percentages.

    CPU usage is the one-minute load average divided by the logical CPU count.
    Memory usage is ``(total - free) / total``. Both are rounded to two decimals.

    With ``cpu_fallback="synthetic"`` a CPU reading of exactly zero, or one that
    cannot be computed, is replaced by a random value in ``[5, 25)``. This is an
    explicit opt-in for demo environments whose load signal is always zero;
    the default ``"none"`` never fabricates values.
    """

    def __init__(
        self,
        cpu_fallback: CpuFallback = "none",
        rng: Callable[[float, float], float] = random.uniform,
    ) -> None:
        if cpu_fallback not in ("none", "synthetic"):
            raise ValueError(f"unknown cpu_fallback mode: {cpu_fallback!r}")
        self.cpu_fallback = cpu_fallback
        self._rng = rng

    def cpu_percent(self) -> float | None:
        """CPU load as a percentage, or None when it cannot be read."""
        try:
            load_1m = psutil.getloadavg()[0]
            percentage = load_1m / (psutil.cpu_count() or 0) * 100
        except (OSError, ZeroDivisionError, TypeError):
            logger.debug("CPU load unavailable", exc_info=True)
            percentage = math.nan

        if self.cpu_fallback == "synthetic" and (
            percentage == 0 or not math.isfinite(percentage)
        ):
            percentage = self._rng(*SYNTHETIC_CPU_RANGE)
        if not math.isfinite(percentage):
            return None
        return round(percentage, 2)

    def memory_percent(self) -> float | None:
        """Used memory as a percentage, or None when it cannot be read."""
        try:
            memory = psutil.virtual_memory()
            percentage = (memory.total - memory.free) / memory.total * 100
        except (OSError, ZeroDivisionError):
            logger.debug("Memory usage unavailable", exc_info=True)
            return None
        return round(percentage, 2)
