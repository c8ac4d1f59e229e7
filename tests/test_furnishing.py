from __future__ import annotations

import random

from ancient_sites.corruption import LootEntry, LootTable, SiteFurnisher
from ancient_sites.detection import RegionSampler, StructureClassifier, StructureOutline
from ancient_sites.materials import CHEST, SCULK_SENSOR, default_material_table
from ancient_sites.models import ClassifiedVoxel, Coordinate, FunctionalCategory, StructuralRole, VoxelTag
from ancient_sites.world import InMemoryWorld
from ancient_sites.world.synthetic import build_ancient_tower

WORLD = "the_end"


def test_loot_roll_contains_guaranteed_stacks() -> None:
    table = LootTable()

    for seed in range(20):
        contents = table.roll(random.Random(seed))
        materials = {stack.material for stack in contents.values()}

        assert {"sculk", "echo_shard", "disc_fragment_5", "deepslate_bricks"} <= materials
        assert all(0 <= slot < 27 for slot in contents)
        for stack in contents.values():
            entry = next(entry for entry in table.entries if entry.material == stack.material)
            assert entry.minimum <= stack.amount <= entry.maximum


def test_loot_roll_moves_on_to_free_slots() -> None:
    table = LootTable(
        entries=(LootEntry("a", 1, 1), LootEntry("b", 1, 1), LootEntry("c", 1, 1)),
        slots=2,
    )

    contents = table.roll(random.Random(5))

    assert sorted(contents) == [0, 1]
    assert len({stack.material for stack in contents.values()}) == 2


def test_furnish_tower_places_props_and_fills_containers() -> None:
    world = InMemoryWorld()
    build_ancient_tower(world, Coordinate(WORLD, 0, 50, 0))
    table = default_material_table()
    sample = RegionSampler(world, table).sample(Coordinate(WORLD, 4, 57, 4), 20)
    outline = StructureOutline.from_sample(sample, StructureClassifier(table))
    furnisher = SiteFurnisher(world, world, table)

    report = furnisher.furnish(Coordinate(WORLD, 4, 57, 4), outline, random.Random(3))

    attempted = sum(report.placed.values()) + sum(report.omitted.values())
    assert 9 <= attempted <= 14
    assert len(report.containers) == report.count(CHEST)
    assert len(world.containers) == len(report.containers)
    for spot in report.containers:
        assert world.get_material(spot) == CHEST


def test_find_placement_requires_open_space_near_structure() -> None:
    world = InMemoryWorld()
    table = default_material_table()
    floor = [Coordinate(WORLD, x, 49, z) for x in range(-3, 4) for z in range(-3, 4)]
    world.fill(floor, "end_stone")
    outline = StructureOutline.build(
        [
            ClassifiedVoxel(
                coordinate=Coordinate(WORLD, 0, 50, 0),
                material="purpur_block",
                tag=VoxelTag.STRUCTURAL_MATERIAL,
                category=FunctionalCategory.STRUCTURAL,
                role=StructuralRole.FOUNDATION,
                resistance=0.8,
            )
        ]
    )
    furnisher = SiteFurnisher(world, world, table)

    spot = None
    for seed in range(50):
        spot = furnisher.find_placement(Coordinate(WORLD, 0, 49, 0), outline, 3, random.Random(seed))
        if spot is not None:
            break

    assert spot is not None
    assert world.get_material(spot) == "end_stone"
    assert world.get_material(spot.offset(0, 1, 0)) == "air"


def test_furnish_omits_everything_without_placement_room() -> None:
    world = InMemoryWorld()
    outline = StructureOutline.build(
        [
            ClassifiedVoxel(
                coordinate=Coordinate(WORLD, 0, 50, y),
                material="purpur_block",
                tag=VoxelTag.STRUCTURAL_MATERIAL,
                category=FunctionalCategory.STRUCTURAL,
                role=StructuralRole.PILLAR,
                resistance=0.7,
            )
            for y in range(3)
        ]
    )
    furnisher = SiteFurnisher(world, world, default_material_table())

    report = furnisher.furnish(Coordinate(WORLD, 0, 50, 0), outline, random.Random(9))

    assert report.placed == {}
    assert report.omitted[SCULK_SENSOR] >= 4
    assert world.writes == 0
    assert world.containers == {}
