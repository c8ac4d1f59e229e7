from __future__ import annotations

import asyncio

from ancient_sites.lifecycle import CooldownTable, ProcessedCellSet, SiteRegistry, TickScheduler
from ancient_sites.models import Coordinate, Site


def test_run_after_fires_once_on_its_tick() -> None:
    scheduler = TickScheduler(workers=1)
    fired: list[int] = []
    scheduler.run_after(3, lambda: fired.append(scheduler.current_tick))

    scheduler.advance(10)
    scheduler.shutdown()

    assert fired == [3]


def test_run_every_respects_initial_delay_and_cancel() -> None:
    scheduler = TickScheduler(workers=1)
    fired: list[int] = []
    task = scheduler.run_every(5, lambda: fired.append(scheduler.current_tick), initial_delay=2)

    scheduler.advance(12)
    task.cancel()
    scheduler.advance(10)
    scheduler.shutdown()

    assert fired == [2, 7, 12]
    assert task.runs == 3
    assert scheduler.task_count == 0


def test_failing_callback_does_not_stop_the_loop() -> None:
    scheduler = TickScheduler(workers=1)
    fired: list[str] = []

    def explode() -> None:
        raise RuntimeError("boom")

    scheduler.run_every(1, explode)
    scheduler.run_every(1, lambda: fired.append("ok"))
    scheduler.advance(3)
    scheduler.shutdown()

    assert fired == ["ok", "ok", "ok"]


def test_async_results_return_through_the_inbox() -> None:
    scheduler = TickScheduler(workers=2)
    delivered: list[int] = []

    def work(value: int) -> None:
        scheduler.call_soon_threadsafe(lambda: delivered.append(value * 2))

    scheduler.run_async(work, 4)
    scheduler.run_async(work, 5)
    assert scheduler.wait_for_async(timeout=2)
    assert delivered == []

    scheduler.tick()
    scheduler.shutdown()

    assert sorted(delivered) == [8, 10]


def test_async_failure_is_contained() -> None:
    scheduler = TickScheduler(workers=1)

    def broken() -> None:
        raise ValueError("bad scan")

    future = scheduler.run_async(broken)
    assert scheduler.wait_for_async(timeout=2)
    scheduler.tick()
    scheduler.shutdown()

    assert isinstance(future.exception(), ValueError)


def test_scheduler_ticks_from_event_loop() -> None:
    async def _run() -> int:
        scheduler = TickScheduler(workers=1)
        await scheduler.start(tick_seconds=0.001)
        await asyncio.sleep(0.05)
        await scheduler.stop()
        scheduler.shutdown()
        return scheduler.current_tick

    assert asyncio.run(_run()) > 0


def test_registry_registers_each_key_once() -> None:
    registry = SiteRegistry()
    anchor = Coordinate("the_end", 10, 60, 10)

    assert registry.register(Site(key="the_end_0_0", anchor=anchor))
    assert not registry.register(Site(key="the_end_0_0", anchor=anchor.offset(5, 0, 5)))
    assert len(registry) == 1
    assert registry.get("the_end_0_0").anchor == anchor
    registry.clear()
    assert "the_end_0_0" not in registry


def test_processed_cells_and_cooldowns() -> None:
    cells = ProcessedCellSet()
    assert cells.add("the_end_1_2")
    assert not cells.add("the_end_1_2")
    assert cells.discard_many(["the_end_1_2", "the_end_9_9"]) == 1

    cooldowns = CooldownTable(window_seconds=30)
    assert cooldowns.try_trigger("alex", now=0.0)
    assert not cooldowns.try_trigger("alex", now=29.9)
    assert cooldowns.on_cooldown("alex", now=10.0)
    assert cooldowns.try_trigger("alex", now=30.0)
    assert cooldowns.evict_older_than(now=100.0, age=60.0) == 1
    assert len(cooldowns) == 0
