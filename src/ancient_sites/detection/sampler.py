"""Read-only voxel sampling around candidate structures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from ancient_sites.materials import MaterialTable
from ancient_sites.models import CELL_SIZE, Coordinate, VoxelTag
from ancient_sites.world.interfaces import RegionUnavailableError, VoxelWorld

_Key = tuple[int, int, int]


@dataclass(frozen=True, slots=True)
class Neighborhood:
    """Materials of the six face-adjacent voxels; ``None`` where unreadable."""

    above: str | None
    below: str | None
    north: str | None
    south: str | None
    east: str | None
    west: str | None

    def horizontal(self) -> tuple[str | None, ...]:
        return self.north, self.south, self.east, self.west


@dataclass(frozen=True, slots=True)
class SampledVoxel:
    coordinate: Coordinate
    material: str
    tag: VoxelTag
    neighborhood: Neighborhood


@dataclass(slots=True)
class RegionSample:
    structural: list[SampledVoxel] = field(default_factory=list)
    generic: list[SampledVoxel] = field(default_factory=list)
    reads: int = 0
    skipped: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.structural


class RegionSampler:
    """Walks bounded regions and sorts solid voxels into structural and generic lists.

    The sampler never writes. Voxels in regions the host cannot serve are skipped.
    """

    def __init__(self, world: VoxelWorld, table: MaterialTable, *, logger: logging.Logger | None = None) -> None:
        self._world = world
        self._table = table
        self._logger = logger or logging.getLogger("ancient_sites.sampler")

    def sample(
        self,
        center: Coordinate,
        radius: int,
        *,
        vertical_radius: int | None = None,
        stride: int = 1,
    ) -> RegionSample:
        """Sample the box ``x, z in +-radius`` and ``y in +-vertical_radius`` around ``center``."""
        origin = center.block()
        vertical = radius if vertical_radius is None else vertical_radius
        ox, oy, oz = int(origin.x), int(origin.y), int(origin.z)
        columns = (
            (ox + dx, oz + dz)
            for dx in range(-radius, radius + 1, stride)
            for dz in range(-radius, radius + 1, stride)
        )
        return self._walk(center.world, columns, range(oy - vertical, oy + vertical + 1, stride))

    def sample_columns(
        self,
        world: str,
        cell_x: int,
        cell_z: int,
        *,
        min_y: int,
        max_y: int,
        stride: int = 1,
    ) -> RegionSample:
        """Sample one cell-sized column between ``min_y`` and ``max_y`` inclusive."""
        base_x = cell_x * CELL_SIZE
        base_z = cell_z * CELL_SIZE
        columns = (
            (base_x + dx, base_z + dz)
            for dx in range(0, CELL_SIZE, stride)
            for dz in range(0, CELL_SIZE, stride)
        )
        return self._walk(world, columns, range(min_y, max_y + 1, stride))

    def _walk(self, world: str, columns: Iterator[tuple[int, int]], heights: range) -> RegionSample:
        sample = RegionSample()
        memo: dict[_Key, str | None] = {}
        for x, z in columns:
            if not self._world.is_cell_loaded(world, x // CELL_SIZE, z // CELL_SIZE):
                sample.skipped += len(heights)
                continue
            for y in heights:
                material = self._read(world, (x, y, z), memo)
                sample.reads += 1
                if material is None:
                    sample.skipped += 1
                    continue

                if self._table.is_structure_material(material):
                    bucket = sample.structural
                elif self._table.is_solid(material):
                    bucket = sample.generic
                else:
                    continue

                bucket.append(
                    SampledVoxel(
                        coordinate=Coordinate(world, x, y, z),
                        material=material,
                        tag=self._table.tag(material),
                        neighborhood=self._neighborhood(world, (x, y, z), memo),
                    )
                )

        if sample.skipped:
            self._logger.debug("sample_skipped_unavailable", extra={"world": world, "skipped": sample.skipped})
        return sample

    def _neighborhood(self, world: str, key: _Key, memo: dict[_Key, str | None]) -> Neighborhood:
        x, y, z = key
        return Neighborhood(
            above=self._read(world, (x, y + 1, z), memo),
            below=self._read(world, (x, y - 1, z), memo),
            north=self._read(world, (x, y, z - 1), memo),
            south=self._read(world, (x, y, z + 1), memo),
            east=self._read(world, (x + 1, y, z), memo),
            west=self._read(world, (x - 1, y, z), memo),
        )

    def _read(self, world: str, key: _Key, memo: dict[_Key, str | None]) -> str | None:
        if key in memo:
            return memo[key]
        try:
            material: str | None = self._world.get_material(Coordinate(world, *key))
        except RegionUnavailableError:
            material = None
        memo[key] = material
        return material
