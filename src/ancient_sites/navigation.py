"""Compass bearings and safe arrival points for travel to a site."""

from __future__ import annotations

import math
import random

from ancient_sites.materials import MaterialTable, default_material_table
from ancient_sites.models import Coordinate
from ancient_sites.world.interfaces import RegionUnavailableError, VoxelWorld

# Sectors of 45 degrees starting at +x, turning towards +z.
COMPASS_POINTS = ("East", "Southeast", "South", "Southwest", "West", "Northwest", "North", "Northeast")


def compass_direction(origin: Coordinate, target: Coordinate) -> str:
    angle = math.degrees(math.atan2(target.z - origin.z, target.x - origin.x)) % 360
    return COMPASS_POINTS[int(((angle + 22.5) % 360) // 45)]


def find_safe_standing_point(
    world: VoxelWorld,
    center: Coordinate,
    rng: random.Random,
    *,
    table: MaterialTable | None = None,
    attempts: int = 20,
    horizontal: float = 10.0,
    vertical: float = 5.0,
) -> Coordinate:
    """A spot near ``center`` with solid floor and two empty voxels above it.

    Falls back to five voxels above ``center`` when no attempt succeeds.
    """
    table = table or default_material_table()
    for _ in range(attempts):
        candidate = center.offset(
            rng.uniform(-horizontal, horizontal),
            rng.uniform(-vertical, vertical),
            rng.uniform(-horizontal, horizontal),
        )
        try:
            floor = world.get_material(candidate)
            head = world.get_material(candidate.offset(0, 1, 0))
            top = world.get_material(candidate.offset(0, 2, 0))
        except RegionUnavailableError:
            continue
        if table.is_solid(floor) and table.is_empty(head) and table.is_empty(top):
            return candidate.offset(0, 1, 0)
    return center.offset(0, 5, 0)
