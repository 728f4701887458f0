"""Cycle derivation and prediction for FlowCycle.

Modules:
    deriver  : Rebuild a user's cycles from their period logs
    insights : Averages, next-period and fertile-window prediction
    reminders: Due dates for cycle-anchored reminders
"""

from src.cycles.deriver import CycleDeriver, derive_cycle_drafts, group_runs
from src.cycles.insights import CycleInsightsEngine, PredictionConfig

__all__ = [
    "CycleDeriver",
    "CycleInsightsEngine",
    "PredictionConfig",
    "derive_cycle_drafts",
    "group_runs",
]
