"""Infrastructure props and loot containers placed inside a corrupted site."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from ancient_sites.detection.outline import StructureOutline
from ancient_sites.materials import (
    CHEST,
    SCULK,
    SCULK_CATALYST,
    SCULK_SENSOR,
    SCULK_SHRIEKER,
    SCULK_VEIN,
    MaterialTable,
)
from ancient_sites.models import Coordinate, ItemStack
from ancient_sites.world.interfaces import ContainerHost, RegionUnavailableError, VoxelWorld

CONTAINER_SLOTS = 27


@dataclass(frozen=True, slots=True)
class LootEntry:
    material: str
    minimum: int
    maximum: int
    chance: float = 1.0


@dataclass(frozen=True, slots=True)
class LootTable:
    entries: tuple[LootEntry, ...] = (
        LootEntry(SCULK, 3, 7),
        LootEntry("echo_shard", 1, 2),
        LootEntry("disc_fragment_5", 1, 1),
        LootEntry("deepslate_bricks", 8, 23),
        LootEntry("recovery_compass", 1, 1, chance=0.3),
        LootEntry("netherite_ingot", 1, 1, chance=0.1),
    )
    slots: int = CONTAINER_SLOTS

    def roll(self, rng: random.Random) -> dict[int, ItemStack]:
        """Draw stacks and drop each one into a random slot, probing forward when taken."""
        contents: dict[int, ItemStack] = {}
        for entry in self.entries:
            if entry.chance < 1.0 and rng.random() >= entry.chance:
                continue
            stack = ItemStack(entry.material, rng.randint(entry.minimum, entry.maximum))
            slot = rng.randrange(self.slots)
            for _ in range(self.slots):
                if slot not in contents:
                    contents[slot] = stack
                    break
                slot = (slot + 1) % self.slots
        return contents


@dataclass(frozen=True, slots=True)
class PropSpec:
    """How many props of one kind to place and how far from the anchor."""

    material: str
    minimum: int
    maximum: int
    radius: int


@dataclass(frozen=True, slots=True)
class FurnishingPlan:
    sensors: PropSpec = PropSpec(SCULK_SENSOR, 4, 6, 15)
    shriekers: PropSpec = PropSpec(SCULK_SHRIEKER, 2, 3, 12)
    catalysts: PropSpec = PropSpec(SCULK_CATALYST, 2, 3, 20)
    containers: PropSpec = PropSpec(CHEST, 1, 2, 18)
    placement_attempts: int = 8
    min_proximity: float = 0.1
    support_vein_chance: float = 0.5
    platform_radius: int = 2
    platform_chance: float = 0.6
    catalyst_spread_radius: int = 2
    catalyst_spread_chance: float = 0.4


@dataclass(slots=True)
class FurnishingReport:
    placed: dict[str, int] = field(default_factory=dict)
    omitted: dict[str, int] = field(default_factory=dict)
    decorations: int = 0
    containers: list[Coordinate] = field(default_factory=list)

    def count(self, material: str) -> int:
        return self.placed.get(material, 0)


class SiteFurnisher:
    """Places sensors, shriekers, catalysts and loot containers on a corrupted site.

    A prop whose placement search runs out of attempts is simply left out.
    """

    def __init__(
        self,
        world: VoxelWorld,
        containers: ContainerHost,
        table: MaterialTable,
        *,
        plan: FurnishingPlan | None = None,
        loot: LootTable | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._world = world
        self._containers = containers
        self._table = table
        self._plan = plan or FurnishingPlan()
        self._loot = loot or LootTable()
        self._logger = logger or logging.getLogger("ancient_sites.furnishing")

    def furnish(self, anchor: Coordinate, outline: StructureOutline, rng: random.Random) -> FurnishingReport:
        report = FurnishingReport()
        plan = self._plan

        for spot in self._place_props(plan.sensors, anchor, outline, rng, report):
            report.decorations += self._support_veins(spot, rng)
        for spot in self._place_props(plan.shriekers, anchor, outline, rng, report):
            report.decorations += self._platform(spot, rng)
        for spot in self._place_props(plan.catalysts, anchor, outline, rng, report):
            report.decorations += self._catalyst_spread(spot, rng)
        for spot in self._place_props(plan.containers, anchor, outline, rng, report):
            self._containers.fill_container(spot, self._loot.roll(rng))
            report.containers.append(spot)

        self._logger.info(
            "site_furnished",
            extra={
                "anchor": anchor.format(),
                "placed": dict(report.placed),
                "omitted": dict(report.omitted),
                "decorations": report.decorations,
            },
        )
        return report

    def find_placement(
        self,
        anchor: Coordinate,
        outline: StructureOutline,
        radius: int,
        rng: random.Random,
    ) -> Coordinate | None:
        """Pick a voxel near the structure that is solid, not critical and open above."""
        for _ in range(self._plan.placement_attempts):
            candidate = anchor.offset(
                rng.randint(-radius, radius),
                rng.randint(-radius // 2, radius // 2),
                rng.randint(-radius, radius),
            ).block()
            if outline.proximity(candidate) <= self._plan.min_proximity:
                continue
            if self._can_host(candidate):
                return candidate
        return None

    def _place_props(
        self,
        prop: PropSpec,
        anchor: Coordinate,
        outline: StructureOutline,
        rng: random.Random,
        report: FurnishingReport,
    ) -> list[Coordinate]:
        placed: list[Coordinate] = []
        for _ in range(rng.randint(prop.minimum, prop.maximum)):
            spot = self.find_placement(anchor, outline, prop.radius, rng)
            if spot is None or not self._set(spot, prop.material):
                report.omitted[prop.material] = report.omitted.get(prop.material, 0) + 1
                continue
            report.placed[prop.material] = report.placed.get(prop.material, 0) + 1
            placed.append(spot)
        return placed

    def _support_veins(self, center: Coordinate, rng: random.Random) -> int:
        placed = 0
        for dx in (-1, 0, 1):
            for dz in (-1, 0, 1):
                if (dx or dz) and rng.random() < self._plan.support_vein_chance:
                    placed += self._overlay(center.offset(dx, 1, dz), SCULK_VEIN)
        return placed

    def _platform(self, center: Coordinate, rng: random.Random) -> int:
        radius = self._plan.platform_radius
        placed = 0
        for dx in range(-radius, radius + 1):
            for dz in range(-radius, radius + 1):
                if rng.random() < self._plan.platform_chance:
                    placed += self._convert(center.offset(dx, -1, dz), SCULK)
        return placed

    def _catalyst_spread(self, center: Coordinate, rng: random.Random) -> int:
        radius = self._plan.catalyst_spread_radius
        placed = 0
        for dx in range(-radius, radius + 1):
            for dy in range(-1, 2):
                for dz in range(-radius, radius + 1):
                    target = center.offset(dx, dy, dz)
                    distance = center.distance(target)
                    if distance == 0 or distance > radius:
                        continue
                    if rng.random() < self._plan.catalyst_spread_chance * (1.0 - distance / radius):
                        material = SCULK if rng.random() < 0.5 else SCULK_VEIN
                        placed += self._convert(target, material)
        return placed

    def _overlay(self, coordinate: Coordinate, material: str) -> int:
        """Put a thin material on an empty voxel that rests on a solid one."""
        if not self._table.is_empty(self._read(coordinate)):
            return 0
        if not self._table.is_solid(self._read(coordinate.offset(0, -1, 0))):
            return 0
        return 1 if self._set(coordinate, material) else 0

    def _convert(self, coordinate: Coordinate, material: str) -> int:
        current = self._read(coordinate)
        if not self._table.is_solid(current) or self._table.is_critical(current):
            return 0
        if self._table.is_fully_corrupted(current):
            return 0
        return 1 if self._set(coordinate, material) else 0

    def _can_host(self, candidate: Coordinate) -> bool:
        current = self._read(candidate)
        above = self._read(candidate.offset(0, 1, 0))
        return (
            self._table.is_solid(current)
            and not self._table.is_critical(current)
            and above is not None
            and self._table.is_empty(above)
        )

    def _read(self, coordinate: Coordinate) -> str | None:
        try:
            return self._world.get_material(coordinate)
        except RegionUnavailableError:
            return None

    def _set(self, coordinate: Coordinate, material: str) -> bool:
        try:
            self._world.set_material(coordinate, material)
        except RegionUnavailableError:
            return False
        return True
