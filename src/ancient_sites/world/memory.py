"""Dictionary-backed host world used by local simulations and tests."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Iterable, Mapping
from uuid import uuid4

from ancient_sites.materials import AIR
from ancient_sites.models import CELL_SIZE, Coordinate, EntityHandle, ItemStack
from ancient_sites.world.interfaces import RegionUnavailableError

VoxelKey = tuple[str, int, int, int]


def _key(coordinate: Coordinate) -> VoxelKey:
    return (
        coordinate.world,
        math.floor(coordinate.x),
        math.floor(coordinate.y),
        math.floor(coordinate.z),
    )


@dataclass(slots=True)
class InMemoryWorld:
    """Sparse voxel store plus a flat entity list.

    Unset voxels read as ``default_material``. Cells listed in ``unloaded`` raise
    ``RegionUnavailableError`` on access, like a host that has paged them out.
    """

    default_material: str = AIR
    voxels: dict[VoxelKey, str] = field(default_factory=dict)
    unloaded: set[tuple[str, int, int]] = field(default_factory=set)
    entities: dict[str, EntityHandle] = field(default_factory=dict)
    containers: dict[VoxelKey, dict[int, ItemStack]] = field(default_factory=dict)
    teleports: list[tuple[str, Coordinate]] = field(default_factory=list)
    online: set[str] = field(default_factory=set)
    writes: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # -- VoxelWorld -----------------------------------------------------------------

    def get_material(self, coordinate: Coordinate) -> str:
        key = _key(coordinate)
        self._ensure_loaded(key)
        return self.voxels.get(key, self.default_material)

    def set_material(self, coordinate: Coordinate, material: str) -> None:
        key = _key(coordinate)
        self._ensure_loaded(key)
        with self._lock:
            if material == self.default_material:
                self.voxels.pop(key, None)
            else:
                self.voxels[key] = material
            self.writes += 1

    def is_cell_loaded(self, world: str, cell_x: int, cell_z: int) -> bool:
        return (world, cell_x, cell_z) not in self.unloaded

    def fill(self, coordinates: Iterable[Coordinate], material: str) -> None:
        for coordinate in coordinates:
            self.set_material(coordinate, material)

    def unload_cell(self, world: str, cell_x: int, cell_z: int) -> None:
        self.unloaded.add((world, cell_x, cell_z))

    def load_cell(self, world: str, cell_x: int, cell_z: int) -> None:
        self.unloaded.discard((world, cell_x, cell_z))

    def loaded_cells(self, world: str) -> set[tuple[int, int]]:
        """Cells that hold at least one non-default voxel."""
        return {
            (x // CELL_SIZE, z // CELL_SIZE)
            for (voxel_world, x, _, z) in list(self.voxels)
            if voxel_world == world and self.is_cell_loaded(world, x // CELL_SIZE, z // CELL_SIZE)
        }

    def count(self, material: str) -> int:
        return sum(1 for value in list(self.voxels.values()) if value == material)

    def _ensure_loaded(self, key: VoxelKey) -> None:
        world, x, _, z = key
        if not self.is_cell_loaded(world, x // CELL_SIZE, z // CELL_SIZE):
            raise RegionUnavailableError(f"Cell {world}:{x // CELL_SIZE},{z // CELL_SIZE} is not loaded")

    # -- EntityHost -----------------------------------------------------------------

    def spawn_guardian(self, coordinate: Coordinate) -> EntityHandle | None:
        handle = EntityHandle(entity_id=uuid4().hex, coordinate=coordinate, kind="guardian")
        with self._lock:
            self.entities[handle.entity_id] = handle
        return handle

    def add_entity(self, handle: EntityHandle) -> None:
        with self._lock:
            self.entities[handle.entity_id] = handle

    def remove_entity(self, entity_id: str) -> None:
        with self._lock:
            self.entities.pop(entity_id, None)

    def nearby_entities(self, coordinate: Coordinate, radius: float) -> list[EntityHandle]:
        return [
            handle
            for handle in list(self.entities.values())
            if handle.coordinate.world == coordinate.world and handle.coordinate.distance(coordinate) <= radius
        ]

    def is_valid(self, entity: EntityHandle) -> bool:
        return entity.entity_id in self.entities

    # -- ContainerHost / Teleporter -------------------------------------------------

    def fill_container(self, coordinate: Coordinate, slots: Mapping[int, ItemStack]) -> None:
        self.containers[_key(coordinate)] = dict(slots)

    def is_online(self, observer_id: str) -> bool:
        return observer_id in self.online

    def teleport(self, observer_id: str, coordinate: Coordinate) -> None:
        self.teleports.append((observer_id, coordinate))
