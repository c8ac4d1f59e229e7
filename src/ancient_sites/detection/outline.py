"""Aggregated shape of a detected structure and the "is this real" verdict."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from ancient_sites.detection.classifier import StructureClassifier
from ancient_sites.detection.sampler import RegionSample
from ancient_sites.models import ClassifiedVoxel, Coordinate


@dataclass(frozen=True, slots=True)
class ValidationThresholds:
    min_structure_blocks: int = 25
    min_structure_ratio: float = 0.15
    min_vertical_spread: float = 8.0
    min_mean_distance: float = 3.0
    max_mean_distance: float = 25.0
    min_material_kinds: int = 2
    tall_structure_spread: float = 12.0
    furnish_confidence: float = 0.6
    furnish_min_blocks: int = 40


@dataclass(frozen=True, slots=True)
class Bounds:
    minimum: Coordinate
    maximum: Coordinate

    @property
    def center(self) -> Coordinate:
        return self.minimum.interpolate(self.maximum, 0.5)

    @property
    def vertical_spread(self) -> float:
        return self.maximum.y - self.minimum.y


@dataclass(frozen=True, slots=True)
class StructureOutline:
    """Immutable aggregate over classified voxels of one candidate structure.

    Bounds, bounds center and centroid are computed over structural voxels only;
    generic solids only feed the structural ratio and material diversity.
    """

    structural: tuple[ClassifiedVoxel, ...]
    generic: tuple[ClassifiedVoxel, ...] = ()
    thresholds: ValidationThresholds = field(default_factory=ValidationThresholds)
    bounds: Bounds | None = None
    centroid: Coordinate | None = None

    @classmethod
    def build(
        cls,
        structural: Sequence[ClassifiedVoxel],
        generic: Sequence[ClassifiedVoxel] = (),
        thresholds: ValidationThresholds | None = None,
    ) -> StructureOutline:
        thresholds = thresholds or ValidationThresholds()
        if not structural:
            return cls(structural=(), generic=tuple(generic), thresholds=thresholds)

        world = structural[0].coordinate.world
        xs = [voxel.coordinate.x for voxel in structural]
        ys = [voxel.coordinate.y for voxel in structural]
        zs = [voxel.coordinate.z for voxel in structural]
        count = len(structural)
        return cls(
            structural=tuple(structural),
            generic=tuple(generic),
            thresholds=thresholds,
            bounds=Bounds(
                minimum=Coordinate(world, min(xs), min(ys), min(zs)),
                maximum=Coordinate(world, max(xs), max(ys), max(zs)),
            ),
            centroid=Coordinate(world, sum(xs) / count, sum(ys) / count, sum(zs) / count),
        )

    @classmethod
    def from_sample(
        cls,
        sample: RegionSample,
        classifier: StructureClassifier,
        thresholds: ValidationThresholds | None = None,
    ) -> StructureOutline:
        return cls.build(
            [classifier.classify_sampled(voxel) for voxel in sample.structural],
            [classifier.classify_sampled(voxel) for voxel in sample.generic],
            thresholds,
        )

    # -- basic measures ------------------------------------------------------------

    @property
    def block_count(self) -> int:
        return len(self.structural)

    @property
    def total_blocks(self) -> int:
        return len(self.structural) + len(self.generic)

    @property
    def is_empty(self) -> bool:
        return not self.structural

    @property
    def center(self) -> Coordinate | None:
        return self.bounds.center if self.bounds else None

    @property
    def structure_ratio(self) -> float:
        if not self.total_blocks:
            return 0.0
        return len(self.structural) / self.total_blocks

    @property
    def vertical_spread(self) -> float:
        return self.bounds.vertical_spread if self.bounds else 0.0

    @property
    def mean_centroid_distance(self) -> float:
        if not self.structural or self.centroid is None:
            return 0.0
        return sum(self.centroid.distance(voxel.coordinate) for voxel in self.structural) / len(self.structural)

    @property
    def structural_kinds(self) -> int:
        return len({voxel.material for voxel in self.structural})

    @property
    def detected_kinds(self) -> int:
        return len({voxel.material for voxel in (*self.structural, *self.generic)})

    @property
    def radius(self) -> int:
        if self.bounds is None:
            return 20
        width, height, depth = self.dimensions
        return max(width, height, depth) // 2

    @property
    def dimensions(self) -> tuple[int, int, int]:
        if self.bounds is None:
            return 0, 0, 0
        low, high = self.bounds.minimum, self.bounds.maximum
        return int(high.x - low.x), int(high.y - low.y), int(high.z - low.z)

    @property
    def complexity(self) -> float:
        if not self.structural:
            return 0.0
        material_complexity = min(1.0, self.structural_kinds / 8.0)
        center = self.center
        spread = 0.0
        if center is not None:
            spread = sum(center.distance(voxel.coordinate) for voxel in self.structural) / len(self.structural)
        return (material_complexity + min(1.0, spread / 30.0)) / 2.0

    @property
    def primary_material(self) -> str | None:
        if not self.structural:
            return None
        return Counter(voxel.material for voxel in self.structural).most_common(1)[0][0]

    # -- verdicts ------------------------------------------------------------------

    def is_valid_structure(self) -> bool:
        limits = self.thresholds
        if self.block_count < limits.min_structure_blocks:
            return False
        if self.structure_ratio < limits.min_structure_ratio:
            return False
        if self.vertical_spread < limits.min_vertical_spread:
            return False
        mean_distance = self.mean_centroid_distance
        if not limits.min_mean_distance < mean_distance < limits.max_mean_distance:
            return False
        return self.structural_kinds >= limits.min_material_kinds

    def confidence(self) -> float:
        if not self.is_valid_structure():
            return 0.0
        size_score = min(1.0, self.block_count / 100.0)
        ratio_score = min(1.0, self.structure_ratio)
        diversity_score = min(1.0, self.detected_kinds / 8.0)
        height_score = 1.0 if self.vertical_spread >= self.thresholds.tall_structure_spread else 0.5
        return (size_score + ratio_score + diversity_score + height_score) / 4.0

    def is_suitable_for_furnishing(self) -> bool:
        return (
            self.is_valid_structure()
            and self.confidence() > self.thresholds.furnish_confidence
            and self.block_count > self.thresholds.furnish_min_blocks
        )

    # -- spatial queries -----------------------------------------------------------

    def nearest_distance(self, point: Coordinate) -> float:
        return min((point.distance(voxel.coordinate) for voxel in self.structural), default=math.inf)

    def proximity(self, point: Coordinate) -> float:
        """Closeness to the nearest structural voxel, in (0, 1]; 0 for an empty outline."""
        if not self.structural:
            return 0.0
        return 1.0 / (1.0 + self.nearest_distance(point) * 0.1)

    def local_density(self, point: Coordinate, radius: float) -> float:
        nearby = sum(1 for voxel in self.structural if voxel.coordinate.distance(point) <= radius)
        capacity = (4.0 / 3.0) * math.pi * radius**3 * 0.5
        if capacity <= 0:
            return 0.0
        return min(1.0, nearby / capacity)

    def describe(self) -> str:
        return (
            f"StructureOutline(blocks={self.block_count}, complexity={self.complexity:.2f}, "
            f"radius={self.radius}, primary_material={self.primary_material})"
        )
