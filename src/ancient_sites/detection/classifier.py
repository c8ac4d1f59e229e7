"""Role, category and corruption resistance for sampled voxels."""

from __future__ import annotations

from typing import Callable

from ancient_sites.detection.sampler import Neighborhood, SampledVoxel
from ancient_sites.materials import MaterialTable
from ancient_sites.models import ClassifiedVoxel, Coordinate, FunctionalCategory, StructuralRole, VoxelTag

ROLE_RESISTANCE = {
    StructuralRole.FOUNDATION: 0.7,
    StructuralRole.PILLAR: 0.6,
    StructuralRole.WALL: 0.4,
    StructuralRole.FLOOR: 0.3,
    StructuralRole.ROOF: 0.3,
    StructuralRole.DECORATION: 0.1,
    StructuralRole.UNKNOWN: 0.2,
}

CATEGORY_MODIFIER = {
    FunctionalCategory.FUNCTIONAL: 0.3,
    FunctionalCategory.STRUCTURAL: 0.1,
    FunctionalCategory.DECORATIVE: -0.1,
    FunctionalCategory.CONNECTOR: 0.0,
}

_TAG_CATEGORY = {
    VoxelTag.STRUCTURAL_MATERIAL: FunctionalCategory.STRUCTURAL,
    VoxelTag.DECORATIVE_MATERIAL: FunctionalCategory.DECORATIVE,
    VoxelTag.FUNCTIONAL_MATERIAL: FunctionalCategory.FUNCTIONAL,
    VoxelTag.CONNECTOR_MATERIAL: FunctionalCategory.CONNECTOR,
}

_RolePredicate = Callable[["StructureClassifier", str, FunctionalCategory, Neighborhood], bool]


class StructureClassifier:
    """Classifies a voxel from its own material and its six neighbours only.

    The result depends on nothing else, so classification can run on worker threads.
    """

    def __init__(
        self,
        table: MaterialTable,
        rules: tuple[tuple[StructuralRole, _RolePredicate], ...] | None = None,
    ) -> None:
        self._table = table
        self._rules = rules or DEFAULT_ROLE_RULES

    def classify(self, coordinate: Coordinate, material: str, neighborhood: Neighborhood) -> ClassifiedVoxel:
        category = self.category(material)
        role = self.role(material, category, neighborhood)
        return ClassifiedVoxel(
            coordinate=coordinate,
            material=material,
            tag=self._table.tag(material),
            category=category,
            role=role,
            resistance=self.resistance(role, category),
        )

    def classify_sampled(self, voxel: SampledVoxel) -> ClassifiedVoxel:
        return self.classify(voxel.coordinate, voxel.material, voxel.neighborhood)

    def category(self, material: str) -> FunctionalCategory:
        tag = self._table.tag(material)
        if tag in _TAG_CATEGORY:
            return _TAG_CATEGORY[tag]
        return FunctionalCategory.STRUCTURAL if self._table.is_solid(material) else FunctionalCategory.DECORATIVE

    def role(self, material: str, category: FunctionalCategory, neighborhood: Neighborhood) -> StructuralRole:
        for role, predicate in self._rules:
            if predicate(self, material, category, neighborhood):
                return role
        return StructuralRole.UNKNOWN

    @staticmethod
    def resistance(role: StructuralRole, category: FunctionalCategory) -> float:
        value = ROLE_RESISTANCE[role] + CATEGORY_MODIFIER[category]
        return max(0.0, min(1.0, value))

    # Rule predicates, evaluated in order by ``role``.

    def _empty_below(self, material: str, category: FunctionalCategory, hood: Neighborhood) -> bool:
        return self._table.is_empty(hood.below)

    def _capped(self, material: str, category: FunctionalCategory, hood: Neighborhood) -> bool:
        return self._table.is_empty(hood.above) and self._table.is_solid(hood.below)

    def _stacked(self, material: str, category: FunctionalCategory, hood: Neighborhood) -> bool:
        return hood.above == material and hood.below == material

    def _braced(self, material: str, category: FunctionalCategory, hood: Neighborhood) -> bool:
        return sum(1 for side in hood.horizontal() if self._table.is_solid(side)) >= 2

    def _ornament(self, material: str, category: FunctionalCategory, hood: Neighborhood) -> bool:
        return not self._table.is_solid(material) or category == FunctionalCategory.DECORATIVE


# First match wins. FLOOR shares ROOF's predicate, so with this order it only
# matches for callers that pass rules listing FLOOR first.
DEFAULT_ROLE_RULES: tuple[tuple[StructuralRole, _RolePredicate], ...] = (
    (StructuralRole.FOUNDATION, StructureClassifier._empty_below),
    (StructuralRole.ROOF, StructureClassifier._capped),
    (StructuralRole.PILLAR, StructureClassifier._stacked),
    (StructuralRole.WALL, StructureClassifier._braced),
    (StructuralRole.FLOOR, StructureClassifier._capped),
    (StructuralRole.DECORATION, StructureClassifier._ornament),
)
