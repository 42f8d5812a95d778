"""Runtime wiring: the periodic reporter and the context object."""

from observapush.runtime.context import ObservabilityContext
from observapush.runtime.reporter import RateReporter, ReporterState

__all__ = ["ObservabilityContext", "RateReporter", "ReporterState"]
