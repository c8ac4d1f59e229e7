"""CLI startup entrypoint for Ancient Sites."""

from __future__ import annotations

import random

import typer
from rich import print

from ancient_sites.cli import SiteCommandHandler
from ancient_sites.config import settings
from ancient_sites.detection import RegionSampler, StructureClassifier, StructureOutline
from ancient_sites.lifecycle import OBSERVER_KIND, AncientSiteManager, TickScheduler
from ancient_sites.materials import default_material_table
from ancient_sites.models import CELL_SIZE, Coordinate, EntityHandle
from ancient_sites.telemetry import LoggingTelemetry, configure_logging
from ancient_sites.world import InMemoryWorld
from ancient_sites.world.synthetic import build_ancient_tower

app = typer.Typer(help="Ancient Sites service entrypoint")


@app.command("settings")
def show_settings() -> None:
    """Show runtime configuration."""
    print(settings.model_dump())


@app.command()
def inspect(
    world: str = typer.Option("the_end", help="World id for the synthetic tower"),
    x: int = typer.Option(0, help="Tower origin X"),
    y: int = typer.Option(50, help="Tower origin Y"),
    z: int = typer.Option(0, help="Tower origin Z"),
    radius: int = typer.Option(20, help="Sampling radius around the tower"),
) -> None:
    """Build a synthetic tower and print the outline verdict."""
    host = InMemoryWorld()
    origin = Coordinate(world, x, y, z)
    layout = build_ancient_tower(host, origin)
    table = default_material_table()

    sample = RegionSampler(host, table).sample(origin.offset(4, 8, 4), radius)
    outline = StructureOutline.from_sample(sample, StructureClassifier(table))
    print(
        {
            "layout": {"structural": layout.structural, "generic": layout.generic},
            "outline": outline.describe(),
            "structure_ratio": round(outline.structure_ratio, 3),
            "vertical_spread": outline.vertical_spread,
            "valid": outline.is_valid_structure(),
            "confidence": round(outline.confidence(), 3),
            "suitable_for_furnishing": outline.is_suitable_for_furnishing(),
        }
    )


@app.command()
def simulate(
    towers: int = typer.Option(3, help="How many synthetic towers to place"),
    ticks: int = typer.Option(1_300, help="Ticks to run after the scans finished"),
    seed: int | None = typer.Option(None, help="Random seed for a reproducible run"),
    spawn_chance: float = typer.Option(1.0, help="Override the site spawn chance"),
    scan_timeout: float = typer.Option(30.0, help="Seconds to wait for background scans"),
) -> None:
    """Run the full lifecycle against an in-memory world and print the result."""
    configure_logging(settings.log_level)
    run_settings = settings.model_copy(update={"spawn_chance": spawn_chance})
    world_id = run_settings.watched_worlds[0]

    host = InMemoryWorld()
    # A column scan covers one cell, so every tower starts on a cell boundary.
    origins = [Coordinate(world_id, CELL_SIZE * (75 + 13 * index), 50, 0) for index in range(towers)]
    for origin in origins:
        build_ancient_tower(host, origin)

    scheduler = TickScheduler(workers=run_settings.worker_count)
    manager = AncientSiteManager(
        host,
        host,
        host,
        scheduler,
        settings=run_settings,
        telemetry=LoggingTelemetry(),
        rng=random.Random(seed),
    )
    manager.start()
    try:
        for cell_x, cell_z in sorted(host.loaded_cells(world_id)):
            manager.on_region_loaded(world_id, cell_x, cell_z)
        if not scheduler.wait_for_async(timeout=scan_timeout):
            print({"error": f"Scans did not finish within {scan_timeout}s"})
            raise typer.Exit(code=1)

        scheduler.tick()
        for index, origin in enumerate(origins):
            host.add_entity(
                EntityHandle(entity_id=f"observer-{index}", coordinate=origin.offset(4, 16, 4), kind=OBSERVER_KIND)
            )
        scheduler.advance(ticks)

        handler = SiteCommandHandler(manager, host, host)
        print(
            {
                "statistics": handler.stats(),
                "sites": [f"{site.key} at {site.anchor.format()}" for site in handler.list_sites()],
            }
        )
        print(handler.debug())
    finally:
        manager.shutdown()
        scheduler.shutdown()


if __name__ == "__main__":
    app()
