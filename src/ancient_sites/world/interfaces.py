"""Boundary contracts for the host platform's world, entities and effects."""

from __future__ import annotations

from typing import Mapping, Protocol

from ancient_sites.models import Coordinate, EntityHandle, ItemStack, Site


class RegionUnavailableError(LookupError):
    """Raised when a voxel is read or written in a region that is not resident."""


class VoxelWorld(Protocol):
    """Voxel read/write access to every world the host exposes."""

    def get_material(self, coordinate: Coordinate) -> str:
        """Return the material id at the voxel containing ``coordinate``."""

    def set_material(self, coordinate: Coordinate, material: str) -> None:
        """Replace the material at the voxel containing ``coordinate``."""

    def is_cell_loaded(self, world: str, cell_x: int, cell_z: int) -> bool:
        """Whether the 16x16 column is resident in memory."""


class EntityHost(Protocol):
    """Entity spawning and spatial queries."""

    def spawn_guardian(self, coordinate: Coordinate) -> EntityHandle | None:
        """Spawn a guardian entity; ``None`` when the host refuses."""

    def nearby_entities(self, coordinate: Coordinate, radius: float) -> list[EntityHandle]:
        """Entities within ``radius`` of ``coordinate``."""

    def is_valid(self, entity: EntityHandle) -> bool:
        """Whether the entity still exists."""


class ContainerHost(Protocol):
    def fill_container(self, coordinate: Coordinate, slots: Mapping[int, ItemStack]) -> None:
        """Write item stacks into the container at ``coordinate``."""


class Ambience(Protocol):
    """Sink for narrative effects (sounds, particles, chat lines)."""

    def site_entered(self, observer_id: str, site: Site) -> None: ...

    def site_ambience(self, site: Site) -> None: ...

    def guardian_awakened(self, site: Site, guardian: EntityHandle, observers: list[str]) -> None: ...

    def bonus_drop(self, observer_id: str, coordinate: Coordinate, item: ItemStack) -> None: ...


class Teleporter(Protocol):
    def is_online(self, observer_id: str) -> bool: ...

    def teleport(self, observer_id: str, coordinate: Coordinate) -> None: ...


class NullAmbience:
    """Ambience sink that drops every effect."""

    def site_entered(self, observer_id: str, site: Site) -> None:
        return None

    def site_ambience(self, site: Site) -> None:
        return None

    def guardian_awakened(self, site: Site, guardian: EntityHandle, observers: list[str]) -> None:
        return None

    def bonus_drop(self, observer_id: str, coordinate: Coordinate, item: ItemStack) -> None:
        return None
