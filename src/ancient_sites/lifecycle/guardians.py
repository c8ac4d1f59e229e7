"""Guardian spawning for furnished sites.

Spawned guardians are recorded in a side table owned by the warden (entity id ->
site key); the host's entities carry no extra metadata beyond their kind.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from typing import Iterable

from ancient_sites.materials import MaterialTable
from ancient_sites.models import Coordinate, EntityHandle, Site
from ancient_sites.world.interfaces import Ambience, EntityHost, RegionUnavailableError, VoxelWorld

OBSERVER_KIND = "observer"
GUARDIAN_KIND = "guardian"


@dataclass(frozen=True, slots=True)
class GuardianRules:
    trigger_radius: float = 25.0
    search_radius: float = 30.0
    count_radius: float = 35.0
    spawn_attempts: int = 10
    spawn_horizontal: float = 15.0
    spawn_vertical: int = 4


class GuardianWarden:
    def __init__(
        self,
        world: VoxelWorld,
        entities: EntityHost,
        table: MaterialTable,
        ambience: Ambience,
        *,
        rules: GuardianRules | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._world = world
        self._entities = entities
        self._table = table
        self._ambience = ambience
        self._rules = rules or GuardianRules()
        self._logger = logger or logging.getLogger("ancient_sites.guardians")
        self._guardians: dict[str, tuple[str, EntityHandle]] = {}
        self._lock = threading.Lock()

    @property
    def rules(self) -> GuardianRules:
        return self._rules

    @property
    def tracked_count(self) -> int:
        with self._lock:
            return len(self._guardians)

    def check(self, site: Site, rng: random.Random) -> EntityHandle | None:
        """Spawn a guardian when an observer is close and no guardian is around."""
        observers = self.observers_near(site.anchor, self._rules.trigger_radius)
        if not observers:
            return None
        if self.guardians_near(site.anchor, self._rules.search_radius):
            return None

        spot = self.find_spawn_point(site.anchor, rng)
        if spot is None:
            self._logger.debug("guardian_spawn_point_not_found", extra={"site": site.key})
            return None

        guardian = self._entities.spawn_guardian(spot)
        if guardian is None:
            self._logger.warning("guardian_spawn_refused", extra={"site": site.key, "at": spot.format()})
            return None

        with self._lock:
            self._guardians[guardian.entity_id] = (site.key, guardian)
        observer_ids = [observer.entity_id for observer in observers]
        self._ambience.guardian_awakened(site, guardian, observer_ids)
        self._logger.info(
            "guardian_spawned",
            extra={"site": site.key, "entity_id": guardian.entity_id, "observers": observer_ids},
        )
        return guardian

    def observers_near(self, coordinate: Coordinate, radius: float) -> list[EntityHandle]:
        return [
            entity for entity in self._entities.nearby_entities(coordinate, radius) if entity.kind == OBSERVER_KIND
        ]

    def guardians_near(self, coordinate: Coordinate, radius: float) -> list[EntityHandle]:
        """Guardians within ``radius``, whether this warden spawned them or not."""
        with self._lock:
            known = set(self._guardians)
        return [
            entity
            for entity in self._entities.nearby_entities(coordinate, radius)
            if entity.kind == GUARDIAN_KIND or entity.entity_id in known
        ]

    def find_spawn_point(self, anchor: Coordinate, rng: random.Random) -> Coordinate | None:
        horizontal = self._rules.spawn_horizontal
        vertical = self._rules.spawn_vertical
        for _ in range(self._rules.spawn_attempts):
            candidate = anchor.offset(
                rng.uniform(-horizontal, horizontal),
                rng.randint(-vertical, vertical - 1),
                rng.uniform(-horizontal, horizontal),
            ).block()
            if self._suitable(candidate):
                return candidate.offset(0, 1, 0)
        return None

    def active_count(self, sites: Iterable[Site]) -> int:
        return sum(len(self.guardians_near(site.anchor, self._rules.count_radius)) for site in sites)

    def site_of(self, entity_id: str) -> str | None:
        with self._lock:
            entry = self._guardians.get(entity_id)
        return entry[0] if entry else None

    def prune(self) -> int:
        """Forget guardians the host no longer knows about."""
        with self._lock:
            entries = list(self._guardians.items())
        stale = [entity_id for entity_id, (_, handle) in entries if not self._entities.is_valid(handle)]
        with self._lock:
            for entity_id in stale:
                self._guardians.pop(entity_id, None)
        return len(stale)

    def forget_site(self, site_key: str) -> None:
        with self._lock:
            for entity_id in [eid for eid, (key, _) in self._guardians.items() if key == site_key]:
                del self._guardians[entity_id]

    def clear(self) -> None:
        with self._lock:
            self._guardians.clear()

    def _suitable(self, candidate: Coordinate) -> bool:
        try:
            ground = self._world.get_material(candidate)
            above = self._world.get_material(candidate.offset(0, 1, 0))
        except RegionUnavailableError:
            return False
        return self._table.is_solid(ground) and not self._table.is_critical(ground) and self._table.is_empty(above)
