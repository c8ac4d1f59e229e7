"""Contract for runtime telemetry and structured logging sinks."""

from __future__ import annotations

import logging
from collections import deque
from typing import Protocol

from rich.logging import RichHandler


class Telemetry(Protocol):
    """Reports site lifecycle events to an operational sink."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


class LoggingTelemetry:
    """Telemetry sink that logs each event and keeps a bounded recent history."""

    def __init__(self, logger: logging.Logger | None = None, max_events: int = 1_000) -> None:
        self._logger = logger or logging.getLogger("ancient_sites.telemetry")
        self._events: deque[tuple[str, dict]] = deque(maxlen=max_events)

    def emit(self, event_name: str, payload: dict) -> None:
        self._events.appendleft((event_name, dict(payload)))
        self._logger.info(event_name, extra={"payload": payload})

    def recent(self, limit: int = 20) -> list[tuple[str, dict]]:
        return list(self._events)[:limit]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
