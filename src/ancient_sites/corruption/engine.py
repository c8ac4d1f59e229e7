"""Contextual corruption of the voxels around a detected structure."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass

from ancient_sites.detection.outline import StructureOutline
from ancient_sites.materials import MaterialTable, Progression, default_progression
from ancient_sites.models import ClassifiedVoxel, Coordinate, VoxelTag
from ancient_sites.world.interfaces import RegionUnavailableError, VoxelWorld

_THIN_TAGS = frozenset({VoxelTag.CONNECTOR_MATERIAL, VoxelTag.DECORATIVE_MATERIAL})


@dataclass(frozen=True, slots=True)
class CorruptionTuning:
    """Probabilities and radii of the corruption passes."""

    min_spread_radius: int = 4
    max_spread_radius: int = 6
    keep_partial_chance: float = 0.7
    protect_architecture_chance: float = 0.4
    base_acceptance: float = 0.6
    proximity_weight: float = 0.4
    network_window: int = 4
    network_min_distance: float = 4.0
    network_max_distance: float = 12.0
    network_step_factor: float = 1.5
    network_step_chance: float = 0.4
    atmospheric_samples: int = 15
    atmospheric_density_radius: float = 6.0
    atmospheric_max_density: float = 0.15
    atmospheric_patch_chance: float = 0.3
    generic_vein_chance: float = 0.1
    detection_radius: int = 40


@dataclass(slots=True)
class CorruptionReport:
    primary: int = 0
    network: int = 0
    atmospheric: int = 0
    unavailable: int = 0

    @property
    def total(self) -> int:
        return self.primary + self.network + self.atmospheric


class CorruptionEngine:
    """Mutates voxels around a structure outline in three passes.

    Must run on the thread that owns voxel writes. Every write goes through
    ``write``, which refuses critical voxels, self-overwrites and any change that
    would lower a voxel's corruption rank.
    """

    def __init__(
        self,
        world: VoxelWorld,
        table: MaterialTable,
        *,
        progression: Progression | None = None,
        tuning: CorruptionTuning | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._world = world
        self._table = table
        self._progression = progression or default_progression()
        self._tuning = tuning or CorruptionTuning()
        self._logger = logger or logging.getLogger("ancient_sites.corruption")

    @property
    def tuning(self) -> CorruptionTuning:
        return self._tuning

    def corrupt(self, anchor: Coordinate, outline: StructureOutline, rng: random.Random) -> CorruptionReport:
        """Run the primary, network and atmospheric passes once."""
        report = CorruptionReport()
        for source in outline.structural:
            self._corrupt_around(source, outline, rng, report)
        self._network_pass(outline, rng, report)
        self._atmospheric_pass(anchor, outline, rng, report)

        self._logger.info(
            "corruption_applied",
            extra={
                "anchor": anchor.format(),
                "primary": report.primary,
                "network": report.network,
                "atmospheric": report.atmospheric,
                "unavailable": report.unavailable,
            },
        )
        return report

    # -- primary pass ----------------------------------------------------------------

    def _corrupt_around(
        self,
        source: ClassifiedVoxel,
        outline: StructureOutline,
        rng: random.Random,
        report: CorruptionReport,
    ) -> None:
        radius = rng.randint(self._tuning.min_spread_radius, self._tuning.max_spread_radius)
        origin = source.coordinate
        for dx in range(-radius, radius + 1):
            for dy in range(-radius, radius + 1):
                for dz in range(-radius, radius + 1):
                    distance = math.sqrt(dx * dx + dy * dy + dz * dz)
                    if distance > radius:
                        continue
                    target = origin.offset(dx, dy, dz)
                    current = self.read(target)
                    if current is None:
                        report.unavailable += 1
                        continue
                    if not self._accepts(current, target, distance, radius, outline, rng):
                        continue
                    corruption = self.select_corruption(current, distance / radius, source.material, rng)
                    if corruption is not None and self.write(target, corruption, current=current):
                        report.primary += 1

    def should_corrupt(
        self,
        target: Coordinate,
        source: ClassifiedVoxel,
        distance: float,
        radius: float,
        outline: StructureOutline,
        rng: random.Random,
    ) -> bool:
        """Stochastic gate for corrupting ``target`` from ``source``."""
        current = self.read(target)
        if current is None:
            return False
        return self._accepts(current, target, distance, radius, outline, rng)

    def _accepts(
        self,
        current: str,
        target: Coordinate,
        distance: float,
        radius: float,
        outline: StructureOutline,
        rng: random.Random,
    ) -> bool:
        table = self._table
        if not table.is_solid(current) or table.is_fully_corrupted(current) or table.is_critical(current):
            return False
        if table.is_partially_corrupted(current) and rng.random() < self._tuning.keep_partial_chance:
            return False
        if table.is_original_architecture(current) and rng.random() < self._tuning.protect_architecture_chance:
            return False

        falloff = 1.0 - distance / radius
        chance = falloff * (self._tuning.base_acceptance + self._tuning.proximity_weight * outline.proximity(target))
        return rng.random() < chance

    # -- material selection ------------------------------------------------------------

    def select_corruption(
        self,
        current: str,
        intensity: float,
        source_context: str | None,
        rng: random.Random,
    ) -> str | None:
        """Pick the replacement for ``current``; ``None`` leaves the voxel alone."""
        table = self._table
        progression = self._progression
        if table.is_fully_corrupted(current) or table.is_critical(current):
            return None

        if current in progression.architecture:
            result = progression.pick(progression.architecture[current], intensity)
        elif current in progression.terrain:
            result = progression.pick(progression.terrain[current], intensity)
        elif table.is_partially_corrupted(current):
            result = progression.pick(progression.advance.get(current, ()), intensity)
        elif table.is_original_architecture(current):
            result = None
        else:
            result = self._generic_corruption(intensity, source_context, rng)

        if result is None or result == current:
            return None
        if table.corruption_rank(result) < table.corruption_rank(current):
            return None
        return result

    def _generic_corruption(self, intensity: float, source_context: str | None, rng: random.Random) -> str | None:
        progression = self._progression
        if intensity > 0.8:
            thin_source = self._table.tag(source_context) in _THIN_TAGS
            return progression.vein if thin_source else progression.full
        if intensity > 0.5:
            return progression.vein
        if rng.random() < self._tuning.generic_vein_chance:
            return progression.vein
        return None

    # -- network pass ------------------------------------------------------------------

    def _network_pass(self, outline: StructureOutline, rng: random.Random, report: CorruptionReport) -> None:
        voxels = outline.structural
        tuning = self._tuning
        for i, first in enumerate(voxels):
            for j in range(i + 1, min(len(voxels), i + tuning.network_window)):
                second = voxels[j]
                distance = first.coordinate.distance(second.coordinate)
                if tuning.network_min_distance < distance < tuning.network_max_distance:
                    report.network += self._tendril(first.coordinate, second.coordinate, distance, rng)

    def _tendril(self, start: Coordinate, end: Coordinate, distance: float, rng: random.Random) -> int:
        steps = int(distance * self._tuning.network_step_factor)
        converted = 0
        for step in range(steps + 1):
            if rng.random() >= self._tuning.network_step_chance:
                continue
            point = start.interpolate(end, step / steps).block()
            if self._spreadable(point) and self.write(point, self._progression.vein):
                converted += 1
        return converted

    # -- atmospheric pass --------------------------------------------------------------

    def _atmospheric_pass(
        self,
        anchor: Coordinate,
        outline: StructureOutline,
        rng: random.Random,
        report: CorruptionReport,
    ) -> None:
        tuning = self._tuning
        radius = tuning.detection_radius
        for _ in range(tuning.atmospheric_samples):
            sample = anchor.offset(
                (rng.random() - 0.5) * radius * 2,
                (rng.random() - 0.5) * radius,
                (rng.random() - 0.5) * radius * 2,
            )
            if outline.local_density(sample, tuning.atmospheric_density_radius) < tuning.atmospheric_max_density:
                report.atmospheric += self._splatter(sample, rng)

    def _splatter(self, center: Coordinate, rng: random.Random) -> int:
        size = rng.randint(2, 3)
        converted = 0
        for dx in range(-size, size + 1):
            for dy in range(-1, 2):
                for dz in range(-size, size + 1):
                    if rng.random() >= self._tuning.atmospheric_patch_chance:
                        continue
                    point = center.offset(dx, dy, dz).block()
                    if not self._spreadable(point):
                        continue
                    material = self._progression.vein if rng.random() < 0.5 else self._progression.cobbled
                    if self.write(point, material):
                        converted += 1
        return converted

    # -- guarded voxel access ----------------------------------------------------------

    def _spreadable(self, point: Coordinate) -> bool:
        current = self.read(point)
        return (
            current is not None
            and self._table.is_solid(current)
            and not self._table.is_fully_corrupted(current)
            and not self._table.is_critical(current)
        )

    def read(self, coordinate: Coordinate) -> str | None:
        try:
            return self._world.get_material(coordinate)
        except RegionUnavailableError:
            return None

    def write(self, coordinate: Coordinate, material: str, *, current: str | None = None) -> bool:
        """Apply one mutation if it moves the voxel forward; report whether it did."""
        if current is None:
            current = self.read(coordinate)
            if current is None:
                return False
        table = self._table
        if current == material or table.is_critical(current) or table.is_fully_corrupted(current):
            return False
        if table.corruption_rank(material) < table.corruption_rank(current):
            return False
        try:
            self._world.set_material(coordinate, material)
        except RegionUnavailableError:
            return False
        return True
