"""Cooperative tick loop with delayed, recurring and off-thread work."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable

_sequence = count()


@dataclass(slots=True)
class ScheduledTask:
    """Handle to a callback registered on the tick loop."""

    name: str
    callback: Callable[[], Any]
    due_tick: int
    interval: int | None = None
    cancelled: bool = False
    runs: int = 0
    order: int = field(default_factory=lambda: next(_sequence))

    @property
    def is_recurring(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        self.cancelled = True


class TickScheduler:
    """Single-threaded tick loop; every world mutation happens inside ``tick``.

    Work submitted with ``run_async`` runs on a thread pool and must hand its
    results back through ``call_soon_threadsafe``. Callbacks that raise are
    logged and never stop the loop.
    """

    def __init__(
        self,
        *,
        workers: int = 2,
        logger: logging.Logger | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger("ancient_sites.scheduler")
        self._current_tick = 0
        self._tasks: list[ScheduledTask] = []
        self._tasks_lock = threading.Lock()
        self._inbox: deque[Callable[[], Any]] = deque()
        self._inbox_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ancient-sites-worker")
        self._pending: set[Future[Any]] = set()
        self._pending_lock = threading.Lock()
        self._loop_task: asyncio.Task[None] | None = None

    @property
    def current_tick(self) -> int:
        return self._current_tick

    @property
    def task_count(self) -> int:
        with self._tasks_lock:
            return sum(1 for task in self._tasks if not task.cancelled)

    def run_after(self, ticks: int, callback: Callable[[], Any], *, name: str | None = None) -> ScheduledTask:
        """Run ``callback`` once, ``ticks`` ticks from now (at least on the next tick)."""
        task = ScheduledTask(
            name=name or getattr(callback, "__name__", "task"),
            callback=callback,
            due_tick=self._current_tick + max(1, ticks),
        )
        return self._add(task)

    def run_every(
        self,
        interval: int,
        callback: Callable[[], Any],
        *,
        initial_delay: int = 0,
        name: str | None = None,
    ) -> ScheduledTask:
        if interval < 1:
            raise ValueError("interval must be at least one tick")
        task = ScheduledTask(
            name=name or getattr(callback, "__name__", "task"),
            callback=callback,
            due_tick=self._current_tick + max(1, initial_delay),
            interval=interval,
        )
        return self._add(task)

    def run_async(self, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        """Run ``fn`` on the worker pool; it must not touch the world for writing."""
        future = self._executor.submit(fn, *args)
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._async_done)
        return future

    def call_soon_threadsafe(self, callback: Callable[[], Any]) -> None:
        """Queue ``callback`` to run at the start of the next tick."""
        with self._inbox_lock:
            self._inbox.append(callback)

    def tick(self) -> None:
        """Drain the inbox, advance the clock by one tick and run every due task."""
        with self._inbox_lock:
            inbox = list(self._inbox)
            self._inbox.clear()
        for callback in inbox:
            self._invoke(getattr(callback, "__name__", "inbox"), callback)

        self._current_tick += 1
        with self._tasks_lock:
            due = sorted(
                (task for task in self._tasks if not task.cancelled and task.due_tick <= self._current_tick),
                key=lambda task: (task.due_tick, task.order),
            )

        for task in due:
            if task.cancelled:
                continue
            self._invoke(task.name, task.callback)
            task.runs += 1
            if task.interval is not None:
                task.due_tick = self._current_tick + task.interval
            else:
                task.cancelled = True

        with self._tasks_lock:
            self._tasks = [task for task in self._tasks if not task.cancelled]

    def advance(self, ticks: int) -> None:
        for _ in range(ticks):
            self.tick()

    def wait_for_async(self, timeout: float | None = None) -> bool:
        """Block until all submitted async work finished; ``False`` on timeout."""
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def cancel_all(self) -> None:
        with self._tasks_lock:
            for task in self._tasks:
                task.cancel()
            self._tasks.clear()

    async def start(self, tick_seconds: float = 0.05) -> None:
        """Drive ``tick`` from the running event loop until ``stop``."""
        if self._loop_task and not self._loop_task.done():
            return

        self._loop_task = asyncio.create_task(self._loop(tick_seconds), name="ancient-sites-ticker")
        self._logger.info("scheduler_started", extra={"tick_seconds": tick_seconds})

    async def stop(self) -> None:
        if not self._loop_task:
            return

        self._loop_task.cancel()
        try:
            await self._loop_task
        except asyncio.CancelledError:
            pass
        finally:
            self._loop_task = None

        self._logger.info("scheduler_stopped", extra={"tick": self._current_tick})

    def shutdown(self, *, wait_for_workers: bool = True) -> None:
        self.cancel_all()
        with self._inbox_lock:
            self._inbox.clear()
        self._executor.shutdown(wait=wait_for_workers, cancel_futures=True)

    async def _loop(self, tick_seconds: float) -> None:
        while True:
            self.tick()
            await asyncio.sleep(tick_seconds)

    def _add(self, task: ScheduledTask) -> ScheduledTask:
        with self._tasks_lock:
            self._tasks.append(task)
        return task

    def _invoke(self, name: str, callback: Callable[[], Any]) -> None:
        try:
            callback()
        except Exception:  # noqa: BLE001 - one failing callback must not stop the loop.
            self._logger.exception("scheduled_task_failed", extra={"task": name, "tick": self._current_tick})

    def _async_done(self, future: Future[Any]) -> None:
        with self._pending_lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.error("async_task_failed", exc_info=error)
