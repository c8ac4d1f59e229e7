"""Site registry, tick scheduling, guardians and the lifecycle manager."""

from .guardians import GUARDIAN_KIND, OBSERVER_KIND, GuardianRules, GuardianWarden
from .manager import AncientSiteManager, ScanResult
from .registry import CooldownTable, ProcessedCellSet, SiteRegistry
from .scheduler import ScheduledTask, TickScheduler

__all__ = [
    "AncientSiteManager",
    "CooldownTable",
    "GUARDIAN_KIND",
    "GuardianRules",
    "GuardianWarden",
    "OBSERVER_KIND",
    "ProcessedCellSet",
    "ScanResult",
    "ScheduledTask",
    "SiteRegistry",
    "TickScheduler",
]
