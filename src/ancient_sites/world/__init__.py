"""Host-world boundaries and the in-memory implementation."""

from .interfaces import (
    Ambience,
    ContainerHost,
    EntityHost,
    NullAmbience,
    RegionUnavailableError,
    Teleporter,
    VoxelWorld,
)
from .memory import InMemoryWorld

__all__ = [
    "Ambience",
    "ContainerHost",
    "EntityHost",
    "InMemoryWorld",
    "NullAmbience",
    "RegionUnavailableError",
    "Teleporter",
    "VoxelWorld",
]
