"""Corruption propagation and site furnishing."""

from .engine import CorruptionEngine, CorruptionReport, CorruptionTuning
from .furnishing import FurnishingPlan, FurnishingReport, LootEntry, LootTable, PropSpec, SiteFurnisher

__all__ = [
    "CorruptionEngine",
    "CorruptionReport",
    "CorruptionTuning",
    "FurnishingPlan",
    "FurnishingReport",
    "LootEntry",
    "LootTable",
    "PropSpec",
    "SiteFurnisher",
]
