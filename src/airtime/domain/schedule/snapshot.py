"""
Consistent snapshots of the entity store.

The resolver never reads the store directly. Each tick asks the
SnapshotProvider for a snapshot; the provider fetches on a worker thread with
a bounded timeout and falls back to the last good snapshot when the store is
slow or failing.

Consistency uses the store version: read the version, read everything, read
the version again, and retry if it moved.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from loguru import logger

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import PlaylistContent

from .exceptions import SnapshotFetchTimeout, StoreUnavailableError
from .models import OneTimeBroadcast, RecurringSlot
from .store import EntityStore

MAX_READ_ATTEMPTS = 3


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Everything one evaluation needs, read at a single store version."""

    version: int
    day: date
    fetched_at: datetime
    playlists: dict[str, PlaylistContent] = field(default_factory=dict)
    queue_order: tuple[str, ...] = ()  # Active playlist IDs, oldest first
    recurring_slots: tuple[RecurringSlot, ...] = ()
    broadcasts: tuple[OneTimeBroadcast, ...] = ()
    songs: dict[str, Song] = field(default_factory=dict)

    @property
    def queue_playlists(self) -> dict[str, PlaylistContent]:
        """Queue-eligible playlists in fallback order."""
        return {pid: self.playlists[pid] for pid in self.queue_order if pid in self.playlists}


def build_snapshot(store: EntityStore, today: date, fetched_at: datetime) -> ScheduleSnapshot:
    """Read a consistent snapshot from the store.

    Broadcasts are read from the day before ``today`` so one that started
    before midnight and is still playing is included.
    """
    snapshot = None
    for attempt in range(1, MAX_READ_ATTEMPTS + 1):
        before = store.version()
        snapshot = _read(store, before, today, fetched_at)
        after = store.version()
        if before == after:
            return snapshot
        logger.debug(
            f"Store changed during snapshot read (v{before} -> v{after}), attempt {attempt}"
        )

    logger.warning(
        f"Store kept changing during {MAX_READ_ATTEMPTS} snapshot reads, using the last one"
    )
    return snapshot


def _read(
    store: EntityStore, version: int, today: date, fetched_at: datetime
) -> ScheduleSnapshot:
    playlists: dict[str, PlaylistContent] = {}
    queue_order: list[str] = []

    for playlist in store.list_active_playlists():
        items = tuple(store.list_playlist_items(playlist.id))
        playlists[playlist.id] = PlaylistContent(playlist=playlist, items=items)
        queue_order.append(playlist.id)

    slots = tuple(store.list_active_recurring_slots())
    broadcasts = tuple(store.list_pending_broadcasts(today - timedelta(days=1)))

    # Slots may play playlists that are not in the queue rotation
    for slot in slots:
        if slot.playlist_id and slot.playlist_id not in playlists:
            playlist = store.get_playlist(slot.playlist_id)
            if playlist is not None:
                items = tuple(store.list_playlist_items(playlist.id))
                playlists[playlist.id] = PlaylistContent(playlist=playlist, items=items)

    song_ids: set[str] = set()
    for content in playlists.values():
        song_ids.update(item.song_id for item in content.items)
    song_ids.update(slot.song_id for slot in slots if slot.song_id)
    song_ids.update(b.song_id for b in broadcasts if b.song_id)

    songs: dict[str, Song] = {}
    for song_id in sorted(song_ids):
        song = store.get_song(song_id)
        if song is not None:
            songs[song_id] = song

    return ScheduleSnapshot(
        version=version,
        day=today,
        fetched_at=fetched_at,
        playlists=playlists,
        queue_order=tuple(queue_order),
        recurring_slots=slots,
        broadcasts=broadcasts,
        songs=songs,
    )


class SnapshotProvider:
    """Fetches snapshots with a timeout and a stale-cache fallback."""

    def __init__(self, store: EntityStore, timeout_seconds: float = 2.0) -> None:
        self._store = store
        self._timeout = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot")
        self._pending: Optional[Future] = None
        self._lock = threading.Lock()
        self._last: Optional[ScheduleSnapshot] = None
        self._force = False
        self.stale = False
        self.timeouts = 0
        self.failures = 0

    @property
    def last(self) -> Optional[ScheduleSnapshot]:
        return self._last

    @property
    def degraded(self) -> bool:
        """True while no snapshot has ever been fetched successfully."""
        return self._last is None

    def fetch(self, now: datetime) -> Optional[ScheduleSnapshot]:
        """Get a snapshot for ``now``, never blocking past the timeout.

        Returns:
            A fresh snapshot, the last good one, or None if none ever succeeded
        """
        try:
            return self._fetch(now)
        except SnapshotFetchTimeout as e:
            self.timeouts += 1
            self.stale = True
            logger.warning(f"{e}; reusing last snapshot" if self._last else f"{e}; no snapshot yet")
        except Exception as e:
            self.failures += 1
            self.stale = True
            logger.error(f"Snapshot fetch failed: {e}")
        return self._last

    def fetch_strict(self, now: datetime) -> Optional[ScheduleSnapshot]:
        """Startup fetch: store errors are fatal, a timeout only degrades.

        Raises:
            StoreUnavailableError: If the store raised an error
        """
        try:
            return self._fetch(now)
        except SnapshotFetchTimeout as e:
            self.timeouts += 1
            self.stale = True
            logger.warning(f"{e} at startup; starting degraded")
            return None
        except Exception as e:
            raise StoreUnavailableError(f"Entity store unavailable: {e}") from e

    def invalidate(self) -> None:
        """Force the next fetch to rebuild even if the version is unchanged."""
        self._force = True

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _fetch(self, now: datetime) -> ScheduleSnapshot:
        # A previous fetch that timed out may still be running; wait on it
        # rather than piling up requests behind a slow store
        with self._lock:
            if self._pending is None or self._pending.done():
                self._pending = self._executor.submit(self._load, now)
            pending = self._pending

        try:
            snapshot = pending.result(timeout=self._timeout)
        except FutureTimeoutError:
            raise SnapshotFetchTimeout(
                f"Entity store did not answer within {self._timeout}s"
            ) from None

        self._last = snapshot
        self.stale = False
        return snapshot

    def _load(self, now: datetime) -> ScheduleSnapshot:
        last = self._last
        if (
            last is not None
            and not self._force
            and last.day == now.date()
            and self._store.version() == last.version
        ):
            return last
        self._force = False
        return build_snapshot(self._store, now.date(), now)
