"""Site lifecycle: region-load scans, registration, recurring tasks and queries."""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Callable

from ancient_sites.config import Settings
from ancient_sites.corruption.engine import CorruptionEngine, CorruptionTuning
from ancient_sites.corruption.furnishing import SiteFurnisher
from ancient_sites.detection.classifier import StructureClassifier
from ancient_sites.detection.outline import StructureOutline, ValidationThresholds
from ancient_sites.detection.sampler import RegionSampler
from ancient_sites.lifecycle.guardians import GuardianRules, GuardianWarden
from ancient_sites.lifecycle.registry import CooldownTable, ProcessedCellSet, SiteRegistry
from ancient_sites.lifecycle.scheduler import ScheduledTask, TickScheduler
from ancient_sites.materials import SCULK, MaterialTable, default_material_table
from ancient_sites.models import (
    CELL_SIZE,
    Coordinate,
    ItemStack,
    Site,
    SiteStatistics,
    SiteSummary,
    cell_key,
    site_key,
)
from ancient_sites.telemetry.logging import LoggingTelemetry, Telemetry
from ancient_sites.world.interfaces import Ambience, ContainerHost, EntityHost, NullAmbience, Teleporter, VoxelWorld


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of one off-thread cell scan; carries data only, never mutations."""

    world: str
    cell_x: int
    cell_z: int
    detection: StructureOutline
    analysis: StructureOutline | None = None

    @property
    def is_valid(self) -> bool:
        return self.analysis is not None and self.analysis.is_valid_structure()

    @property
    def anchor(self) -> Coordinate | None:
        return self.analysis.center if self.analysis is not None else None


class AncientSiteManager:
    """Owns every site and drives detection, corruption and guardians.

    Handlers named ``on_*`` must be called on the tick thread. Scans run on the
    scheduler's worker pool and hand their ``ScanResult`` back to the tick loop.
    """

    def __init__(
        self,
        world: VoxelWorld,
        entities: EntityHost,
        containers: ContainerHost,
        scheduler: TickScheduler,
        *,
        settings: Settings | None = None,
        table: MaterialTable | None = None,
        thresholds: ValidationThresholds | None = None,
        tuning: CorruptionTuning | None = None,
        ambience: Ambience | None = None,
        telemetry: Telemetry | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._world = world
        self._scheduler = scheduler
        self._table = table or default_material_table()
        self._thresholds = thresholds or ValidationThresholds()
        self._ambience = ambience or NullAmbience()
        self._telemetry = telemetry or LoggingTelemetry()
        self._rng = rng or random.Random()
        self._clock = clock
        self._logger = logger or logging.getLogger("ancient_sites.manager")

        self._sampler = RegionSampler(world, self._table)
        self._classifier = StructureClassifier(self._table)
        self._engine = CorruptionEngine(
            world,
            self._table,
            tuning=tuning or CorruptionTuning(detection_radius=self._settings.detection_radius),
        )
        self._furnisher = SiteFurnisher(world, containers, self._table)
        self._warden = GuardianWarden(
            world,
            entities,
            self._table,
            self._ambience,
            rules=GuardianRules(
                trigger_radius=self._settings.guardian_trigger_radius,
                search_radius=self._settings.guardian_search_radius,
                count_radius=self._settings.guardian_count_radius,
            ),
        )

        self._registry = SiteRegistry()
        self._cells = ProcessedCellSet()
        self._cooldowns = CooldownTable(self._settings.entry_cooldown_seconds)
        self._guardian_tasks: dict[str, ScheduledTask] = {}
        self._recurring: list[ScheduledTask] = []

    @property
    def registry(self) -> SiteRegistry:
        return self._registry

    @property
    def warden(self) -> GuardianWarden:
        return self._warden

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    def start(self) -> None:
        """Schedule the ambience and cleanup loops once."""
        if self._recurring:
            return
        self._recurring = [
            self._scheduler.run_every(
                self._settings.ambience_interval_ticks,
                self.ambience_tick,
                name="site-ambience",
            ),
            self._scheduler.run_every(
                self._settings.cleanup_interval_ticks,
                self.cleanup,
                initial_delay=self._settings.cleanup_interval_ticks,
                name="site-cleanup",
            ),
        ]
        self._logger.info("site_manager_started", extra={"worlds": list(self._settings.watched_worlds)})

    # -- detection ------------------------------------------------------------------

    def on_region_loaded(self, world: str, cell_x: int, cell_z: int) -> bool:
        """Queue a scan of a freshly loaded cell; ``False`` when the cell is ignored."""
        if world not in self._settings.watched_worlds or self._excluded(cell_x, cell_z):
            return False
        if not self._cells.add(cell_key(world, cell_x, cell_z)):
            return False

        self._scheduler.run_async(self._scan_and_hand_back, world, cell_x, cell_z)
        return True

    def scan_cell(self, world: str, cell_x: int, cell_z: int) -> ScanResult:
        """Read-only structure scan; safe on a worker thread."""
        settings = self._settings
        sample = self._sampler.sample_columns(
            world,
            cell_x,
            cell_z,
            min_y=settings.scan_min_y,
            max_y=settings.scan_max_y,
            stride=settings.scan_stride,
        )
        detection = StructureOutline.from_sample(sample, self._classifier, self._thresholds)
        if not detection.is_valid_structure() or detection.centroid is None:
            return ScanResult(world, cell_x, cell_z, detection)

        radius = settings.detection_radius
        around = self._sampler.sample(detection.centroid, radius, vertical_radius=radius // 2)
        analysis = StructureOutline.from_sample(around, self._classifier, self._thresholds)
        return ScanResult(world, cell_x, cell_z, detection, analysis)

    def handle_scan_result(self, result: ScanResult) -> Site | None:
        if not result.is_valid or result.anchor is None or result.analysis is None:
            self._logger.debug(
                "scan_found_nothing",
                extra={"cell": cell_key(result.world, result.cell_x, result.cell_z)},
            )
            return None
        if self._rng.random() >= self._settings.spawn_chance:
            self._logger.debug("site_spawn_skipped", extra={"anchor": result.anchor.format()})
            return None
        return self.create_site(result.anchor, result.analysis)

    def create_site(self, anchor: Coordinate, outline: StructureOutline) -> Site | None:
        """Register and transform a site; ``None`` if its key is already taken."""
        site = Site(key=site_key(anchor), anchor=anchor)
        if not self._registry.register(site):
            self._logger.debug("site_already_registered", extra={"site": site.key})
            return None

        report = self._engine.corrupt(anchor, outline, self._rng)
        if outline.is_suitable_for_furnishing():
            self._furnisher.furnish(anchor, outline, self._rng)
            site.furnished = True
            self._schedule_guardian(site)

        self._telemetry.emit(
            "site_created",
            {
                "site": site.key,
                "anchor": anchor.format(),
                "confidence": round(outline.confidence(), 3),
                "corrupted": report.total,
                "furnished": site.furnished,
            },
        )
        return site

    def _scan_and_hand_back(self, world: str, cell_x: int, cell_z: int) -> None:
        result = self.scan_cell(world, cell_x, cell_z)
        self._scheduler.call_soon_threadsafe(lambda: self.handle_scan_result(result))

    def _excluded(self, cell_x: int, cell_z: int) -> bool:
        center_x = cell_x * CELL_SIZE + CELL_SIZE / 2
        center_z = cell_z * CELL_SIZE + CELL_SIZE / 2
        return math.hypot(center_x, center_z) < self._settings.spawn_exclusion_radius

    # -- guardians ------------------------------------------------------------------

    def _schedule_guardian(self, site: Site) -> None:
        key = site.key

        def check() -> None:
            current = self._registry.get(key)
            if current is None:
                task.cancel()
                self._guardian_tasks.pop(key, None)
                return
            self._warden.check(current, self._rng)

        task = self._scheduler.run_every(
            self._settings.guardian_check_interval_ticks,
            check,
            initial_delay=self._settings.guardian_initial_delay_ticks,
            name=f"guardian-check:{key}",
        )
        site.guardian_task = task
        self._guardian_tasks[key] = task

    # -- observers ------------------------------------------------------------------

    def on_observer_moved(self, observer_id: str, coordinate: Coordinate) -> Site | None:
        """Fire the entry effect for the first site within reach, unless on cooldown."""
        if coordinate.world not in self._settings.watched_worlds:
            return None
        now = self._clock()
        if self._cooldowns.on_cooldown(observer_id, now):
            return None

        for site in self._registry.list():
            if site.anchor.world != coordinate.world:
                continue
            if site.anchor.distance(coordinate) >= self._settings.entry_radius:
                continue
            if not self._cooldowns.try_trigger(observer_id, now):
                return None
            self._ambience.site_entered(observer_id, site)
            self._telemetry.emit("site_entered", {"site": site.key, "observer": observer_id})
            return site
        return None

    def on_voxel_broken(self, observer_id: str, coordinate: Coordinate, material: str) -> ItemStack | None:
        """Occasionally reward breaking corrupted or ancient voxels."""
        if coordinate.world not in self._settings.watched_worlds:
            return None
        table = self._table
        fully = table.is_fully_corrupted(material)
        partially = table.is_partially_corrupted(material)
        if not (fully or partially or table.is_original_architecture(material)):
            return None
        if self._rng.random() >= self._settings.bonus_drop_chance:
            return None

        if fully:
            item = ItemStack("echo_shard", 1)
        elif partially:
            item = ItemStack(SCULK, self._rng.randint(1, 2))
        else:
            return None
        self._ambience.bonus_drop(observer_id, coordinate, item)
        self._logger.info(
            "bonus_drop",
            extra={"observer": observer_id, "material": material, "item": item.material, "amount": item.amount},
        )
        return item

    def request_teleport(self, observer_id: str, destination: Coordinate, teleporter: Teleporter) -> ScheduledTask:
        """Move an observer after the configured delay if they are still online."""

        def teleport() -> None:
            if not teleporter.is_online(observer_id):
                self._logger.info("teleport_dropped_offline", extra={"observer": observer_id})
                return
            teleporter.teleport(observer_id, destination)

        return self._scheduler.run_after(
            self._settings.teleport_delay_ticks,
            teleport,
            name=f"teleport:{observer_id}",
        )

    # -- recurring ------------------------------------------------------------------

    def ambience_tick(self) -> int:
        touched = 0
        for site in self._registry.list():
            if self._warden.observers_near(site.anchor, self._settings.ambience_radius):
                self._ambience.site_ambience(site)
                touched += 1
        return touched

    def cleanup(self) -> dict[str, int]:
        now = self._clock()
        evicted_cooldowns = self._cooldowns.evict_older_than(now, 2 * self._cooldowns.window_seconds)

        evicted_cells = 0
        if self._settings.evict_unloaded_cells:
            gone = [key for key in self._cells.snapshot() if not self._cell_resident(key)]
            evicted_cells = self._cells.discard_many(gone)

        pruned_guardians = self._warden.prune()

        cancelled_tasks = 0
        for key in [key for key in self._guardian_tasks if key not in self._registry]:
            self._guardian_tasks.pop(key).cancel()
            self._warden.forget_site(key)
            cancelled_tasks += 1

        summary = {
            "cooldowns": evicted_cooldowns,
            "cells": evicted_cells,
            "guardians": pruned_guardians,
            "guardian_tasks": cancelled_tasks,
        }
        self._logger.info("site_cleanup_finished", extra=summary)
        return summary

    def _cell_resident(self, key: str) -> bool:
        world, cell_x, cell_z = key.rsplit("_", 2)
        return self._world.is_cell_loaded(world, int(cell_x), int(cell_z))

    # -- queries --------------------------------------------------------------------

    def list_sites(self) -> list[SiteSummary]:
        return [SiteSummary(key=site.key, anchor=site.anchor) for site in self._registry.list()]

    def get_site(self, key: str) -> Site | None:
        return self._registry.get(key)

    def nearest_site(self, origin: Coordinate) -> Coordinate | None:
        anchors = [site.anchor for site in self._registry.list() if site.anchor.world == origin.world]
        return min(anchors, key=origin.distance, default=None)

    def statistics(self) -> SiteStatistics:
        return SiteStatistics(
            site_count=len(self._registry),
            processed_cell_count=len(self._cells),
            active_guardian_count=self._warden.active_count(self._registry.list()),
        )

    def debug_dump(self) -> str:
        stats = self.statistics()
        lines = [
            f"Ancient sites: {stats.site_count}",
            f"Processed cells: {stats.processed_cell_count}",
            f"Active guardians: {stats.active_guardian_count}",
            f"Tracked guardians: {self._warden.tracked_count}",
            f"Cooldowns: {len(self._cooldowns)}",
            f"Scheduled tasks: {self._scheduler.task_count}",
        ]
        for site in self._registry.list():
            state = "furnished" if site.furnished else "corrupted"
            lines.append(f"  {site.key} @ {site.anchor.format()} ({state})")
        return "\n".join(lines)

    def clear_sites(self) -> int:
        """Forget every site and processed cell so loaded regions are scanned again.

        Guardian checks of the cleared sites cancel themselves on their next run,
        and the next cleanup pass evicts any that have not run yet.
        """
        cleared = len(self._registry)
        self._registry.clear()
        self._cells.clear()
        self._logger.info("sites_cleared", extra={"sites": cleared})
        return cleared

    def shutdown(self) -> None:
        """Cancel every task this manager scheduled and drop all bookkeeping."""
        for task in [*self._recurring, *self._guardian_tasks.values()]:
            task.cancel()
        self._recurring = []
        self._guardian_tasks.clear()
        self._registry.clear()
        self._cells.clear()
        self._cooldowns.clear()
        self._warden.clear()
        self._logger.info("site_manager_stopped")
