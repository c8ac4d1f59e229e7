"""Material classification tables and corruption progressions.

Everything here is data: the sampler, classifier and corruption engine receive a
``MaterialTable`` at construction so tests can swap in a custom palette.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .models import VoxelTag

SCULK = "sculk"
SCULK_VEIN = "sculk_vein"
SCULK_CATALYST = "sculk_catalyst"
SCULK_SHRIEKER = "sculk_shrieker"
SCULK_SENSOR = "sculk_sensor"
REINFORCED_DEEPSLATE = "reinforced_deepslate"
DEEPSLATE = "deepslate"
COBBLED_DEEPSLATE = "cobbled_deepslate"
DEEPSLATE_TILES = "deepslate_tiles"
DEEPSLATE_BRICKS = "deepslate_bricks"
CHEST = "chest"
AIR = "air"

_END_CITY = {
    "purpur_block": VoxelTag.STRUCTURAL_MATERIAL,
    "purpur_pillar": VoxelTag.STRUCTURAL_MATERIAL,
    "end_stone_bricks": VoxelTag.STRUCTURAL_MATERIAL,
    "purpur_stairs": VoxelTag.CONNECTOR_MATERIAL,
    "purpur_slab": VoxelTag.CONNECTOR_MATERIAL,
    "end_stone_brick_stairs": VoxelTag.CONNECTOR_MATERIAL,
    "end_stone_brick_slab": VoxelTag.CONNECTOR_MATERIAL,
    "end_stone_brick_wall": VoxelTag.CONNECTOR_MATERIAL,
    "end_rod": VoxelTag.DECORATIVE_MATERIAL,
    "magenta_stained_glass": VoxelTag.DECORATIVE_MATERIAL,
    "magenta_stained_glass_pane": VoxelTag.DECORATIVE_MATERIAL,
}

_FUNCTIONAL = ("chest", "ender_chest", "spawner", "brewing_stand", "end_portal", "end_portal_frame")

_PARTIAL = (
    DEEPSLATE,
    COBBLED_DEEPSLATE,
    DEEPSLATE_TILES,
    DEEPSLATE_BRICKS,
    "polished_deepslate",
    "chiseled_deepslate",
    "deepslate_brick_stairs",
    "deepslate_brick_slab",
    "deepslate_brick_wall",
    "blackstone",
    "polished_blackstone",
)

_FULL = (SCULK, SCULK_VEIN, SCULK_CATALYST, SCULK_SHRIEKER, SCULK_SENSOR, REINFORCED_DEEPSLATE)

# Rank inside the partially corrupted tier; fully corrupted ranks above all of them.
_PARTIAL_RANKS = {
    DEEPSLATE: 1,
    COBBLED_DEEPSLATE: 1,
    "blackstone": 1,
    DEEPSLATE_TILES: 2,
    "polished_deepslate": 2,
    "polished_blackstone": 2,
    DEEPSLATE_BRICKS: 3,
    "chiseled_deepslate": 3,
    "deepslate_brick_stairs": 3,
    "deepslate_brick_slab": 3,
    "deepslate_brick_wall": 3,
}
_FULL_RANK = 4

ORIGINAL_ARCHITECTURE_TAGS = frozenset(
    {VoxelTag.STRUCTURAL_MATERIAL, VoxelTag.DECORATIVE_MATERIAL, VoxelTag.CONNECTOR_MATERIAL}
)


@dataclass(frozen=True, slots=True)
class MaterialTable:
    """Static material id -> ``VoxelTag`` lookup plus the sets derived from it."""

    tags: Mapping[str, VoxelTag]
    structure_materials: frozenset[str]
    non_solid: frozenset[str]
    critical: frozenset[str]
    partial_ranks: Mapping[str, int] = field(default_factory=dict)

    def tag(self, material: str | None) -> VoxelTag:
        if material is None:
            return VoxelTag.EMPTY
        if material in self.tags:
            return self.tags[material]
        return VoxelTag.EMPTY if material in self.non_solid else VoxelTag.GENERIC_SOLID

    def is_solid(self, material: str | None) -> bool:
        return material is not None and material not in self.non_solid

    def is_empty(self, material: str | None) -> bool:
        return self.tag(material) == VoxelTag.EMPTY

    def is_structure_material(self, material: str | None) -> bool:
        return material in self.structure_materials

    def is_original_architecture(self, material: str | None) -> bool:
        return self.tag(material) in ORIGINAL_ARCHITECTURE_TAGS

    def is_partially_corrupted(self, material: str | None) -> bool:
        return self.tag(material) == VoxelTag.PARTIALLY_CORRUPTED

    def is_fully_corrupted(self, material: str | None) -> bool:
        return self.tag(material) == VoxelTag.FULLY_CORRUPTED

    def is_critical(self, material: str | None) -> bool:
        return material in self.critical or self.tag(material) == VoxelTag.FUNCTIONAL_MATERIAL

    def corruption_rank(self, material: str | None) -> int:
        tag = self.tag(material)
        if tag == VoxelTag.FULLY_CORRUPTED:
            return _FULL_RANK
        if tag == VoxelTag.PARTIALLY_CORRUPTED:
            return self.partial_ranks.get(material, 1)
        return 0


def default_material_table() -> MaterialTable:
    tags: dict[str, VoxelTag] = dict(_END_CITY)
    tags.update({name: VoxelTag.FUNCTIONAL_MATERIAL for name in _FUNCTIONAL})
    tags.update({name: VoxelTag.PARTIALLY_CORRUPTED for name in _PARTIAL})
    tags.update({name: VoxelTag.FULLY_CORRUPTED for name in _FULL})
    for name in (AIR, "cave_air", "void_air"):
        tags[name] = VoxelTag.EMPTY

    structure = set(_END_CITY)
    structure.update(
        (
            DEEPSLATE_BRICKS,
            DEEPSLATE_TILES,
            "polished_deepslate",
            COBBLED_DEEPSLATE,
            "deepslate_brick_stairs",
            "deepslate_brick_slab",
            "deepslate_brick_wall",
            REINFORCED_DEEPSLATE,
        )
    )
    return MaterialTable(
        tags=tags,
        structure_materials=frozenset(structure),
        non_solid=frozenset({AIR, "cave_air", "void_air", "water", "lava", "vine", "ladder"}),
        critical=frozenset(
            {"end_rod", "magenta_stained_glass", "magenta_stained_glass_pane", *_FUNCTIONAL}
        ),
        partial_ranks=dict(_PARTIAL_RANKS),
    )


@dataclass(frozen=True, slots=True)
class Step:
    """Result material used when intensity is strictly above ``above``."""

    above: float
    material: str


@dataclass(frozen=True, slots=True)
class Progression:
    """Per-material corruption steps, ordered from most to least intense."""

    architecture: Mapping[str, tuple[Step, ...]]
    terrain: Mapping[str, tuple[Step, ...]]
    advance: Mapping[str, tuple[Step, ...]]
    vein: str = SCULK_VEIN
    cobbled: str = COBBLED_DEEPSLATE
    full: str = SCULK

    @staticmethod
    def pick(steps: tuple[Step, ...], intensity: float) -> str | None:
        for step in steps:
            if intensity > step.above:
                return step.material
        return None


def default_progression() -> Progression:
    always = -1.0
    return Progression(
        architecture={
            "purpur_block": (
                Step(0.8, SCULK),
                Step(0.6, DEEPSLATE_BRICKS),
                Step(0.4, DEEPSLATE_TILES),
                Step(always, COBBLED_DEEPSLATE),
            ),
            "purpur_pillar": (Step(0.7, REINFORCED_DEEPSLATE), Step(always, DEEPSLATE_TILES)),
            "end_stone_bricks": (
                Step(0.8, SCULK),
                Step(0.5, DEEPSLATE_BRICKS),
                Step(always, COBBLED_DEEPSLATE),
            ),
            "purpur_stairs": (Step(always, "deepslate_brick_stairs"),),
            "purpur_slab": (Step(always, "deepslate_brick_slab"),),
            "end_stone_brick_stairs": (Step(always, "deepslate_brick_stairs"),),
            "end_stone_brick_slab": (Step(always, "deepslate_brick_slab"),),
            "end_stone_brick_wall": (Step(always, "deepslate_brick_wall"),),
        },
        terrain={
            "end_stone": (Step(0.9, SCULK), Step(0.6, DEEPSLATE), Step(always, COBBLED_DEEPSLATE)),
        },
        advance={
            COBBLED_DEEPSLATE: (Step(0.7, DEEPSLATE_BRICKS),),
            DEEPSLATE_BRICKS: (Step(0.8, SCULK),),
            DEEPSLATE_TILES: (Step(0.8, SCULK),),
            DEEPSLATE: (Step(0.8, SCULK),),
        },
    )
