"""Alert monitoring engine."""

from pricealert.engine.cycle import MonitoringCycle
from pricealert.engine.evaluator import matches

__all__ = ["MonitoringCycle", "matches"]
