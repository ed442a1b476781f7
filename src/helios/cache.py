"""Time-bounded snapshot cache shared by all request handlers."""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from helios.models import CacheEntry, SystemSnapshot

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = 15  # seconds, a bit less than the page's polling interval
DISPLAY_MAX_AGE = 24 * 60 * 60  # seconds, for the landing page


class ReadWriteLock:
    """
    Many concurrent readers or one exclusive writer.

    Writers waiting for the lock block new readers so that a steady stream
    of reads cannot starve a refresh. The lock is not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


def epoch_seconds() -> int:
    return int(time.time())


class SnapshotCache:
    """
    Single-slot cache of the most recent SystemSnapshot.

    Readers share the slot under a read lock. A stale or empty slot is
    refreshed under the write lock, and freshness is checked again once the
    write lock is held, so a burst of stale callers runs the probe once and
    the rest are served the result.
    """

    def __init__(
        self,
        probe: Callable[[], SystemSnapshot],
        freshness_window: int = FRESHNESS_WINDOW,
        display_max_age: int = DISPLAY_MAX_AGE,
        clock: Callable[[], int] = epoch_seconds,
    ) -> None:
        """
        Initialize the SnapshotCache.

        Args:
            probe: Called with no arguments to scan the host.
            freshness_window: Maximum age (seconds) served by get_current().
            display_max_age: Maximum age (seconds) served by get_for_display().
            clock: Returns the current time in epoch seconds.
        """
        self._probe = probe
        self._freshness_window = freshness_window
        self._display_max_age = display_max_age
        self._clock = clock
        self._lock = ReadWriteLock()
        self._entry: CacheEntry | None = None

    @property
    def freshness_window(self) -> int:
        return self._freshness_window

    @property
    def display_max_age(self) -> int:
        return self._display_max_age

    @property
    def entry(self) -> CacheEntry | None:
        """The current cache entry, or None before the first probe."""
        with self._lock.read_locked():
            return self._entry

    @property
    def captured_at(self) -> int | None:
        entry = self.entry
        return entry.captured_at if entry is not None else None

    def get_current(self, now: int | None = None) -> SystemSnapshot:
        """Snapshot for the polling endpoint, at most freshness_window old."""
        return self._get(self._freshness_window, now)

    def get_for_display(self, now: int | None = None) -> SystemSnapshot:
        """Snapshot for the landing page, at most display_max_age old."""
        return self._get(self._display_max_age, now)

    def refresh(self, now: int | None = None) -> SystemSnapshot:
        """Probe the host unconditionally and replace the entry."""
        if now is None:
            now = self._clock()
        with self._lock.write_locked():
            return self._store(now)

    def _get(self, max_age: int, now: int | None) -> SystemSnapshot:
        if now is None:
            now = self._clock()

        with self._lock.read_locked():
            if self._is_fresh(self._entry, now, max_age):
                return self._entry.snapshot

        with self._lock.write_locked():
            # Another writer may have refreshed while we waited.
            if self._is_fresh(self._entry, now, max_age):
                return self._entry.snapshot
            return self._store(now)

    @staticmethod
    def _is_fresh(entry: CacheEntry | None, now: int, max_age: int) -> bool:
        return entry is not None and now - entry.captured_at < max_age

    def _store(self, now: int) -> SystemSnapshot:
        """Run the probe and replace the entry. Caller holds the write lock."""
        started = time.perf_counter()
        snapshot = self._probe()
        previous = self._entry
        captured_at = now if previous is None else max(now, previous.captured_at)
        self._entry = CacheEntry(snapshot=snapshot, captured_at=captured_at)
        logger.debug(
            "Refreshed snapshot at %d in %.3fs (%d lines)",
            captured_at,
            time.perf_counter() - started,
            len(snapshot.lines),
        )
        return snapshot
