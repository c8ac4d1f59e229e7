"""Synthetic ancient structures for simulations and tests."""

from __future__ import annotations

from dataclasses import dataclass

from ancient_sites.models import Coordinate
from ancient_sites.world.memory import InMemoryWorld

TERRAIN_MATERIALS = ("end_stone", "obsidian", "stone")


@dataclass(slots=True)
class TowerLayout:
    structural: int
    generic: int
    vertical_spread: int


def build_ancient_tower(world: InMemoryWorld, origin: Coordinate) -> TowerLayout:
    """Place a four-pillar tower on a mixed-terrain platform.

    Pillars stand at the corners of an 8x8 square: three are 16 voxels tall and
    one is 12, alternating purpur blocks and end stone bricks (60 voxels, vertical
    spread 15). The platform below covers 10x14 voxels with three terrain kinds
    (140 voxels), giving a structural ratio of 0.3.
    """
    base = origin.block()
    corners = (
        (0, 0, 16, "purpur_block"),
        (8, 0, 16, "end_stone_bricks"),
        (0, 8, 16, "end_stone_bricks"),
        (8, 8, 12, "purpur_block"),
    )
    structural = 0
    for dx, dz, height, material in corners:
        for dy in range(height):
            world.set_material(base.offset(dx, dy, dz), material)
            structural += 1

    generic = 0
    for dx in range(10):
        for dz in range(14):
            world.set_material(base.offset(dx, -1, dz), TERRAIN_MATERIALS[(dx + dz) % len(TERRAIN_MATERIALS)])
            generic += 1

    return TowerLayout(structural=structural, generic=generic, vertical_spread=15)
