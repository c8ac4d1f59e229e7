"""Structure detection: sampling, classification and outline validation."""

from .classifier import StructureClassifier
from .outline import Bounds, StructureOutline, ValidationThresholds
from .sampler import Neighborhood, RegionSample, RegionSampler, SampledVoxel

__all__ = [
    "Bounds",
    "Neighborhood",
    "RegionSample",
    "RegionSampler",
    "SampledVoxel",
    "StructureClassifier",
    "StructureOutline",
    "ValidationThresholds",
]
