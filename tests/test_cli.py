from __future__ import annotations

import random

import pytest

from ancient_sites.cli import SiteCommandHandler
from ancient_sites.config import Settings
from ancient_sites.lifecycle import AncientSiteManager, TickScheduler
from ancient_sites.models import Coordinate, Site
from ancient_sites.navigation import compass_direction, find_safe_standing_point
from ancient_sites.world import InMemoryWorld

WORLD = "the_end"


class CenteredRandom(random.Random):
    def random(self) -> float:
        return 0.5


def _handler(world: InMemoryWorld, *sites: Site) -> tuple[SiteCommandHandler, AncientSiteManager]:
    manager = AncientSiteManager(world, world, world, TickScheduler(workers=1), settings=Settings())
    for site in sites:
        manager.registry.register(site)
    return SiteCommandHandler(manager, world, world), manager


@pytest.mark.parametrize(
    ("dx", "dz", "expected"),
    [
        (10, 0, "East"),
        (10, 10, "Southeast"),
        (0, 10, "South"),
        (-10, 10, "Southwest"),
        (-10, 0, "West"),
        (-10, -10, "Northwest"),
        (0, -10, "North"),
        (10, -10, "Northeast"),
    ],
)
def test_compass_direction(dx: int, dz: int, expected: str) -> None:
    origin = Coordinate(WORLD, 0, 60, 0)

    assert compass_direction(origin, origin.offset(dx, 0, dz)) == expected


def test_safe_standing_point_needs_floor_and_headroom() -> None:
    world = InMemoryWorld()
    center = Coordinate(WORLD, 0, 49.5, 0)

    assert find_safe_standing_point(world, center, CenteredRandom()) == center.offset(0, 5, 0)

    world.set_material(Coordinate(WORLD, 0, 49, 0), "end_stone")
    assert find_safe_standing_point(world, center, CenteredRandom()) == center.offset(0, 1, 0)

    world.set_material(Coordinate(WORLD, 0, 51, 0), "end_stone")
    assert find_safe_standing_point(world, center, CenteredRandom()) == center.offset(0, 5, 0)


def test_handler_lists_and_indexes_sites() -> None:
    first = Site(key="the_end_2_2", anchor=Coordinate(WORLD, 120, 60, 120))
    second = Site(key="the_end_10_0", anchor=Coordinate(WORLD, 520, 60, 0))
    handler, manager = _handler(InMemoryWorld(), first, second)

    assert [site.key for site in handler.list_sites()] == ["the_end_2_2", "the_end_10_0"]
    assert handler.site_at(2).key == "the_end_10_0"
    with pytest.raises(KeyError):
        handler.site_at(0)
    with pytest.raises(KeyError):
        handler.site_at(3)
    assert handler.random_site(random.Random(4)).key in {"the_end_2_2", "the_end_10_0"}
    assert handler.stats() == {"ancient_sites": 2, "processed_cells": 0, "active_guardians": 0}
    assert "the_end_10_0" in handler.debug()
    assert handler.clear_sites() == 2
    assert handler.list_sites() == []
    manager.scheduler.shutdown()


def test_handler_nearest_and_info() -> None:
    anchor = Coordinate(WORLD, 100, 60, 100)
    handler, manager = _handler(InMemoryWorld(), Site(key="the_end_2_2", anchor=anchor))

    bearing = handler.nearest(Coordinate(WORLD, 100, 60, 50))
    assert bearing.anchor == anchor
    assert bearing.distance == pytest.approx(50)
    assert bearing.direction == "South"

    inside = handler.info(anchor.offset(3, 0, 4))
    assert inside.within_site_area
    assert inside.distance == pytest.approx(5)
    assert not handler.info(anchor.offset(30, 0, 0)).within_site_area

    assert handler.nearest(Coordinate("overworld", 0, 60, 0)) is None
    assert handler.info(Coordinate("overworld", 0, 60, 0)) is None
    manager.scheduler.shutdown()


def test_handler_teleport_is_delayed() -> None:
    world = InMemoryWorld()
    world.online.add("alex")
    anchor = Coordinate(WORLD, 100, 60, 100)
    handler, manager = _handler(world, Site(key="the_end_2_2", anchor=anchor))

    destination = handler.teleport("alex", Coordinate(WORLD, 0, 60, 0), rng=random.Random(2))
    assert destination == anchor.offset(0, 5, 0)
    assert world.teleports == []

    manager.scheduler.advance(20)
    assert world.teleports == [("alex", destination)]

    empty, other = _handler(InMemoryWorld())
    assert empty.random_site(random.Random(1)) is None
    assert empty.teleport("alex", Coordinate(WORLD, 0, 60, 0)) is None
    manager.scheduler.shutdown()
    other.scheduler.shutdown()
