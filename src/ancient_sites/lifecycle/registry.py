"""Thread-safe bookkeeping: known sites, processed cells and entry cooldowns."""

from __future__ import annotations

import threading
from typing import Iterable

from ancient_sites.models import Site


class SiteRegistry:
    """Sites keyed by their spatial bucket; registration is insert-if-absent."""

    def __init__(self) -> None:
        self._sites: dict[str, Site] = {}
        self._lock = threading.Lock()

    def register(self, site: Site) -> bool:
        """Store ``site`` unless its key is taken; report whether it was stored."""
        with self._lock:
            if site.key in self._sites:
                return False
            self._sites[site.key] = site
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._sites

    def __len__(self) -> int:
        with self._lock:
            return len(self._sites)

    def get(self, key: str) -> Site | None:
        with self._lock:
            return self._sites.get(key)

    def list(self) -> list[Site]:
        """Snapshot in registration order."""
        with self._lock:
            return list(self._sites.values())

    def clear(self) -> None:
        with self._lock:
            self._sites.clear()


class ProcessedCellSet:
    def __init__(self) -> None:
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def add(self, key: str) -> bool:
        """Mark ``key`` processed; ``False`` if it already was."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def snapshot(self) -> list[str]:
        with self._lock:
            return sorted(self._keys)

    def discard_many(self, keys: Iterable[str]) -> int:
        with self._lock:
            before = len(self._keys)
            self._keys.difference_update(keys)
            return before - len(self._keys)

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()


class CooldownTable:
    """Last trigger time per observer, in seconds of an injected monotonic clock."""

    def __init__(self, window_seconds: float) -> None:
        self._window = window_seconds
        self._last: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def window_seconds(self) -> float:
        return self._window

    def try_trigger(self, observer_id: str, now: float) -> bool:
        """Start a cooldown for ``observer_id`` unless one is still running."""
        with self._lock:
            last = self._last.get(observer_id)
            if last is not None and now - last < self._window:
                return False
            self._last[observer_id] = now
            return True

    def on_cooldown(self, observer_id: str, now: float) -> bool:
        with self._lock:
            last = self._last.get(observer_id)
            return last is not None and now - last < self._window

    def evict_older_than(self, now: float, age: float) -> int:
        with self._lock:
            stale = [observer for observer, last in self._last.items() if now - last > age]
            for observer in stale:
                del self._last[observer]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last)

    def clear(self) -> None:
        with self._lock:
            self._last.clear()
