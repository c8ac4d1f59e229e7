from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

CELL_SIZE = 16
SITE_BUCKET_SIZE = 50


class VoxelTag(str, Enum):
    """Semantic class of a material, derived from the material table on every read."""

    STRUCTURAL_MATERIAL = "structural_material"
    DECORATIVE_MATERIAL = "decorative_material"
    FUNCTIONAL_MATERIAL = "functional_material"
    CONNECTOR_MATERIAL = "connector_material"
    GENERIC_SOLID = "generic_solid"
    PARTIALLY_CORRUPTED = "partially_corrupted"
    FULLY_CORRUPTED = "fully_corrupted"
    EMPTY = "empty"


class StructuralRole(str, Enum):
    FOUNDATION = "foundation"
    WALL = "wall"
    FLOOR = "floor"
    ROOF = "roof"
    PILLAR = "pillar"
    DECORATION = "decoration"
    UNKNOWN = "unknown"


class FunctionalCategory(str, Enum):
    STRUCTURAL = "structural"
    DECORATIVE = "decorative"
    FUNCTIONAL = "functional"
    CONNECTOR = "connector"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A point inside one voxel space (``world``)."""

    world: str
    x: float
    y: float
    z: float

    def distance(self, other: Coordinate) -> float:
        return math.dist((self.x, self.y, self.z), (other.x, other.y, other.z))

    def offset(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> Coordinate:
        return Coordinate(self.world, self.x + dx, self.y + dy, self.z + dz)

    def block(self) -> Coordinate:
        """Snap to the integer voxel containing this point."""
        return Coordinate(self.world, math.floor(self.x), math.floor(self.y), math.floor(self.z))

    def cell(self, size: int = CELL_SIZE) -> tuple[int, int]:
        return math.floor(self.x) // size, math.floor(self.z) // size

    def interpolate(self, other: Coordinate, progress: float) -> Coordinate:
        return Coordinate(
            self.world,
            self.x + (other.x - self.x) * progress,
            self.y + (other.y - self.y) * progress,
            self.z + (other.z - self.z) * progress,
        )

    def format(self) -> str:
        return f"{self.x:.0f}, {self.y:.0f}, {self.z:.0f}"


def cell_key(world: str, cell_x: int, cell_z: int) -> str:
    return f"{world}_{cell_x}_{cell_z}"


def site_key(anchor: Coordinate) -> str:
    """Coarse spatial bucket of an anchor; two anchors in one bucket share a key."""
    return f"{anchor.world}_{int(anchor.x / SITE_BUCKET_SIZE)}_{int(anchor.z / SITE_BUCKET_SIZE)}"


@dataclass(frozen=True, slots=True)
class ClassifiedVoxel:
    coordinate: Coordinate
    material: str
    tag: VoxelTag
    category: FunctionalCategory
    role: StructuralRole
    resistance: float

    @property
    def priority(self) -> float:
        return 1.0 - self.resistance


@dataclass(slots=True)
class EntityHandle:
    """Opaque reference to a host entity."""

    entity_id: str
    coordinate: Coordinate
    kind: str = "guardian"


@dataclass(slots=True)
class ItemStack:
    material: str
    amount: int = 1


@dataclass(slots=True)
class Site:
    key: str
    anchor: Coordinate
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    furnished: bool = False
    guardian_task: Any = None


@dataclass(frozen=True, slots=True)
class SiteSummary:
    key: str
    anchor: Coordinate


@dataclass(frozen=True, slots=True)
class SiteStatistics:
    site_count: int
    processed_cell_count: int
    active_guardian_count: int

    def as_dict(self) -> dict[str, int]:
        return {
            "ancient_sites": self.site_count,
            "processed_cells": self.processed_cell_count,
            "active_guardians": self.active_guardian_count,
        }
