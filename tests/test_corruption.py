from __future__ import annotations

import random

from ancient_sites.corruption import CorruptionEngine, CorruptionTuning
from ancient_sites.detection import RegionSampler, StructureClassifier, StructureOutline
from ancient_sites.materials import (
    COBBLED_DEEPSLATE,
    DEEPSLATE_BRICKS,
    DEEPSLATE_TILES,
    REINFORCED_DEEPSLATE,
    SCULK,
    SCULK_VEIN,
    default_material_table,
)
from ancient_sites.models import ClassifiedVoxel, Coordinate, FunctionalCategory, StructuralRole, VoxelTag
from ancient_sites.world import InMemoryWorld
from ancient_sites.world.synthetic import build_ancient_tower

WORLD = "the_end"


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def _engine(world: InMemoryWorld) -> CorruptionEngine:
    return CorruptionEngine(world, default_material_table())


def _source(material: str = "purpur_block") -> ClassifiedVoxel:
    return ClassifiedVoxel(
        coordinate=Coordinate(WORLD, 0, 50, 0),
        material=material,
        tag=VoxelTag.STRUCTURAL_MATERIAL,
        category=FunctionalCategory.STRUCTURAL,
        role=StructuralRole.WALL,
        resistance=0.5,
    )


def _tower_outline(world: InMemoryWorld) -> StructureOutline:
    table = default_material_table()
    sample = RegionSampler(world, table).sample(Coordinate(WORLD, 4, 57, 4), 20)
    return StructureOutline.from_sample(sample, StructureClassifier(table))


def test_architecture_progression_follows_intensity() -> None:
    engine = _engine(InMemoryWorld())
    rng = random.Random(1)

    assert engine.select_corruption("purpur_block", 0.9, "purpur_block", rng) == SCULK
    assert engine.select_corruption("purpur_block", 0.7, "purpur_block", rng) == DEEPSLATE_BRICKS
    assert engine.select_corruption("purpur_block", 0.5, "purpur_block", rng) == DEEPSLATE_TILES
    assert engine.select_corruption("purpur_block", 0.1, "purpur_block", rng) == COBBLED_DEEPSLATE
    assert engine.select_corruption("purpur_pillar", 0.8, "purpur_block", rng) == REINFORCED_DEEPSLATE
    assert engine.select_corruption("purpur_pillar", 0.2, "purpur_block", rng) == DEEPSLATE_TILES
    assert engine.select_corruption("end_stone_bricks", 0.6, "purpur_block", rng) == DEEPSLATE_BRICKS
    assert engine.select_corruption("purpur_stairs", 0.3, "purpur_block", rng) == "deepslate_brick_stairs"
    assert engine.select_corruption("end_stone", 0.95, "purpur_block", rng) == SCULK
    assert engine.select_corruption("end_stone", 0.7, "purpur_block", rng) == "deepslate"


def test_partially_corrupted_voxels_only_advance() -> None:
    engine = _engine(InMemoryWorld())
    rng = random.Random(1)

    assert engine.select_corruption(COBBLED_DEEPSLATE, 0.75, None, rng) == DEEPSLATE_BRICKS
    assert engine.select_corruption(COBBLED_DEEPSLATE, 0.5, None, rng) is None
    assert engine.select_corruption(DEEPSLATE_BRICKS, 0.9, None, rng) == SCULK
    assert engine.select_corruption(DEEPSLATE_BRICKS, 0.6, None, rng) is None
    assert engine.select_corruption("polished_deepslate", 1.0, None, rng) is None


def test_fully_corrupted_and_critical_materials_are_left_alone() -> None:
    engine = _engine(InMemoryWorld())
    rng = random.Random(1)

    for material in (SCULK, SCULK_VEIN, REINFORCED_DEEPSLATE, "end_rod", "chest", "magenta_stained_glass"):
        assert engine.select_corruption(material, 1.0, "purpur_block", rng) is None


def test_generic_solids_take_vein_or_sculk() -> None:
    engine = _engine(InMemoryWorld())

    assert engine.select_corruption("obsidian", 0.9, "purpur_block", random.Random(1)) == SCULK
    assert engine.select_corruption("obsidian", 0.9, "end_rod", random.Random(1)) == SCULK_VEIN
    assert engine.select_corruption("obsidian", 0.9, "purpur_slab", random.Random(1)) == SCULK_VEIN
    assert engine.select_corruption("obsidian", 0.6, "purpur_block", random.Random(1)) == SCULK_VEIN
    assert engine.select_corruption("obsidian", 0.3, "purpur_block", FixedRandom(0.05)) == SCULK_VEIN
    assert engine.select_corruption("obsidian", 0.3, "purpur_block", FixedRandom(0.5)) is None


def test_should_corrupt_gates() -> None:
    world = InMemoryWorld()
    engine = _engine(world)
    outline = StructureOutline.build([_source()])
    target = Coordinate(WORLD, 1, 50, 0)

    world.set_material(target, "end_rod")
    assert not engine.should_corrupt(target, _source(), 0.0, 5, outline, FixedRandom(0.0))

    world.set_material(target, "air")
    assert not engine.should_corrupt(target, _source(), 0.0, 5, outline, FixedRandom(0.0))

    world.set_material(target, SCULK)
    assert not engine.should_corrupt(target, _source(), 0.0, 5, outline, FixedRandom(0.0))

    world.set_material(target, DEEPSLATE_BRICKS)
    assert not engine.should_corrupt(target, _source(), 1.0, 5, outline, FixedRandom(0.5))

    world.set_material(target, "stone")
    assert engine.should_corrupt(target, _source(), 1.0, 5, outline, FixedRandom(0.0))
    assert not engine.should_corrupt(target, _source(), 5.0, 5, outline, FixedRandom(0.0))

    world.unload_cell(WORLD, 0, 0)
    assert not engine.should_corrupt(target, _source(), 1.0, 5, outline, FixedRandom(0.0))


def test_guarded_write_never_downgrades() -> None:
    world = InMemoryWorld()
    engine = _engine(world)
    spot = Coordinate(WORLD, 2, 50, 2)

    world.set_material(spot, DEEPSLATE_BRICKS)
    assert not engine.write(spot, COBBLED_DEEPSLATE)
    assert not engine.write(spot, DEEPSLATE_BRICKS)
    assert world.get_material(spot) == DEEPSLATE_BRICKS
    assert engine.write(spot, SCULK)
    assert not engine.write(spot, SCULK_VEIN)
    assert world.get_material(spot) == SCULK

    world.set_material(spot, "end_rod")
    assert not engine.write(spot, SCULK)

    world.set_material(spot, "stone")
    world.unload_cell(WORLD, 0, 0)
    assert not engine.write(spot, SCULK)


def test_corruption_is_monotonic_and_spares_critical_voxels() -> None:
    world = InMemoryWorld()
    build_ancient_tower(world, Coordinate(WORLD, 0, 50, 0))
    rods = [Coordinate(WORLD, 1, 50 + dy, 1) for dy in range(3)]
    world.fill(rods, "end_rod")
    table = default_material_table()
    outline = _tower_outline(world)
    before = dict(world.voxels)

    report = _engine(world).corrupt(Coordinate(WORLD, 4, 57, 4), outline, random.Random(42))

    assert report.total > 0
    assert report.primary > 0
    assert all(world.get_material(rod) == "end_rod" for rod in rods)
    for key, material in before.items():
        after = world.voxels.get(key, "air")
        assert table.corruption_rank(after) >= table.corruption_rank(material)
        if table.is_fully_corrupted(material):
            assert after == material


def test_repeated_corruption_keeps_ranks() -> None:
    world = InMemoryWorld()
    build_ancient_tower(world, Coordinate(WORLD, 0, 50, 0))
    table = default_material_table()
    outline = _tower_outline(world)
    engine = _engine(world)

    engine.corrupt(Coordinate(WORLD, 4, 57, 4), outline, random.Random(1))
    first = dict(world.voxels)
    engine.corrupt(Coordinate(WORLD, 4, 57, 4), outline, random.Random(2))

    for key, material in first.items():
        assert table.corruption_rank(world.voxels.get(key, "air")) >= table.corruption_rank(material)


def _structural(x: float, y: float, z: float) -> ClassifiedVoxel:
    return ClassifiedVoxel(
        coordinate=Coordinate(WORLD, x, y, z),
        material="purpur_block",
        tag=VoxelTag.STRUCTURAL_MATERIAL,
        category=FunctionalCategory.STRUCTURAL,
        role=StructuralRole.PILLAR,
        resistance=0.7,
    )


def test_farther_voxels_take_stronger_corruption() -> None:
    world = InMemoryWorld()
    near = Coordinate(WORLD, 1, 50, 0)
    far = Coordinate(WORLD, 0, 50, 3)
    world.fill([near, far], "end_stone")
    outline = StructureOutline.build([_structural(0, 50, 0)])

    report = _engine(world).corrupt(Coordinate(WORLD, 0, 50, 0), outline, FixedRandom(0.0))

    assert report.primary == 2
    assert world.get_material(near) == COBBLED_DEEPSLATE
    assert world.get_material(far) == "deepslate"


def test_network_pass_links_close_indices_within_distance_band() -> None:
    world = InMemoryWorld()
    world.fill([Coordinate(WORLD, x, 50, z) for x in range(-10, 11) for z in range(-2, 24)], "stone")
    voxels = [
        _structural(0, 50, 0),
        _structural(6, 50, 0),
        _structural(6, 50, 20),
        _structural(0, 50, 20),
        # Eight away from the first voxel, but four indices apart.
        _structural(-8, 50, 0),
        # Three away from its predecessor, below the distance band.
        _structural(-8, 50, 3),
    ]
    engine = CorruptionEngine(
        world,
        default_material_table(),
        tuning=CorruptionTuning(base_acceptance=0.0, proximity_weight=0.0, atmospheric_samples=0),
    )

    report = engine.corrupt(Coordinate(WORLD, 0, 50, 10), StructureOutline.build(voxels), FixedRandom(0.0))

    converted = {(key[1], key[3]) for key, material in world.voxels.items() if material != "stone"}
    assert {world.voxels[(WORLD, x, 50, z)] for x, z in converted} == {SCULK_VEIN}
    assert {(0, 0), (6, 0), (6, 20), (0, 20)} <= converted
    assert all(0 <= x <= 6 and z in (0, 20) for x, z in converted)
    assert report.primary == report.atmospheric == 0
    assert report.network == len(converted)


def test_atmospheric_patches_only_land_in_sparse_spots() -> None:
    anchor = Coordinate(WORLD, 0, 60, 0)
    spot = anchor.offset(-10, -5, -10)
    tuning = CorruptionTuning(base_acceptance=0.0, proximity_weight=0.0, network_step_chance=0.0, detection_radius=10)
    plane = [spot.offset(dx, 0, dz) for dx in range(-3, 4) for dz in range(-3, 4)]

    sparse_world = InMemoryWorld()
    sparse_world.fill(plane, "stone")
    sparse = StructureOutline.build([_structural(0, 60, 0)])
    report = CorruptionEngine(sparse_world, default_material_table(), tuning=tuning).corrupt(
        anchor, sparse, FixedRandom(0.0)
    )

    assert report.atmospheric == 25
    assert sparse_world.count(SCULK_VEIN) == 25
    assert sparse_world.count("stone") == 24

    dense_world = InMemoryWorld()
    dense_world.fill(plane, "stone")
    cube = [
        _structural(spot.x + dx, spot.y + dy, spot.z + dz)
        for dx in range(-2, 3)
        for dy in range(-2, 3)
        for dz in range(-2, 3)
    ]
    dense = StructureOutline.build(cube)
    assert dense.local_density(spot, 6) >= 0.15
    report = CorruptionEngine(dense_world, default_material_table(), tuning=tuning).corrupt(
        anchor, dense, FixedRandom(0.0)
    )

    assert report.atmospheric == 0
    assert dense_world.count("stone") == 49
