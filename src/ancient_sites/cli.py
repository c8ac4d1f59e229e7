"""CLI-side handler wrappers and utility commands."""

from __future__ import annotations

import random
from dataclasses import dataclass

from ancient_sites.lifecycle.manager import AncientSiteManager
from ancient_sites.models import Coordinate, SiteSummary
from ancient_sites.navigation import compass_direction, find_safe_standing_point
from ancient_sites.world.interfaces import Teleporter, VoxelWorld


@dataclass(frozen=True, slots=True)
class SiteBearing:
    anchor: Coordinate
    distance: float
    direction: str


@dataclass(frozen=True, slots=True)
class SiteInfo:
    anchor: Coordinate
    distance: float
    within_site_area: bool


class SiteCommandHandler:
    """Simple sync-friendly facade over the site manager."""

    def __init__(
        self,
        manager: AncientSiteManager,
        world: VoxelWorld,
        teleporter: Teleporter,
        *,
        site_area_radius: float = 15.0,
    ) -> None:
        self._manager = manager
        self._world = world
        self._teleporter = teleporter
        self._site_area_radius = site_area_radius

    def list_sites(self) -> list[SiteSummary]:
        return self._manager.list_sites()

    def site_at(self, index: int) -> SiteSummary:
        """Return the site with the given 1-based position in ``list_sites``."""
        sites = self._manager.list_sites()
        if not 1 <= index <= len(sites):
            raise KeyError(f"Unknown site number: {index} (1-{len(sites)})")
        return sites[index - 1]

    def nearest(self, origin: Coordinate) -> SiteBearing | None:
        anchor = self._manager.nearest_site(origin)
        if anchor is None:
            return None
        return SiteBearing(anchor=anchor, distance=origin.distance(anchor), direction=compass_direction(origin, anchor))

    def info(self, origin: Coordinate) -> SiteInfo | None:
        anchor = self._manager.nearest_site(origin)
        if anchor is None:
            return None
        distance = origin.distance(anchor)
        return SiteInfo(anchor=anchor, distance=distance, within_site_area=distance < self._site_area_radius)

    def stats(self) -> dict[str, int]:
        return self._manager.statistics().as_dict()

    def debug(self) -> str:
        return self._manager.debug_dump()

    def clear_sites(self) -> int:
        return self._manager.clear_sites()

    def random_site(self, rng: random.Random) -> SiteSummary | None:
        sites = self._manager.list_sites()
        return rng.choice(sites) if sites else None

    def teleport(
        self,
        observer_id: str,
        origin: Coordinate,
        index: int | None = None,
        *,
        rng: random.Random | None = None,
    ) -> Coordinate | None:
        """Schedule a delayed teleport to site ``index`` or to the nearest site."""
        target = self.site_at(index).anchor if index is not None else self._manager.nearest_site(origin)
        if target is None:
            return None
        destination = find_safe_standing_point(self._world, target, rng or random.Random())
        self._manager.request_teleport(observer_id, destination, self._teleporter)
        return destination
