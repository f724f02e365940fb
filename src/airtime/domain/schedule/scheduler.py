"""
Scheduler service.

Ties the pieces together for one station: each tick fetches a snapshot,
resolves the directive for the clock's current instant, hands it to the
interruption controller and pushes changes to listeners. The playback layer
either pulls the current directive or subscribes to changes, and reports
back when a queue song finishes so the cursor can advance.
"""

import threading
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional

from loguru import logger

from airtime.core.clock import Clock, SystemClock
from airtime.core.config import Config
from airtime.domain.playlists.models import PlaylistContent

from .conflicts import ConflictReport, check_conflict
from .controller import DirectiveListener, InterruptionController
from .exceptions import DanglingReferenceError, StoreUnavailableError
from .models import (
    Idle,
    OneTimeBroadcast,
    ResumePlaylist,
    ScheduledEvent,
    SchedulingDirective,
    describe_directive,
)
from .preview import PreviewEntry, preview_day
from .resolver import QueueState, Resolution, resolve
from .snapshot import ScheduleSnapshot, SnapshotProvider
from .state import ControllerState, PlaybackState, SavedPosition, StateKind
from .store import EntityStore
from .windows import broadcast_window


@dataclass
class SchedulerStats:
    """Counters exposed for monitoring."""

    ticks: int = 0
    dangling_references: int = 0
    snapshot_timeouts: int = 0
    store_failures: int = 0
    degraded: bool = False
    last_tick_at: Optional[datetime] = None


class Scheduler:
    """Scheduling service for a single station."""

    def __init__(
        self,
        store: EntityStore,
        clock: Optional[Clock] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.config = config or Config()
        self._store = store
        self._clock = clock or SystemClock(self.config.scheduler.timezone)
        self._snapshots = SnapshotProvider(
            store, timeout_seconds=self.config.scheduler.snapshot_timeout_seconds
        )
        self._playback = PlaybackState()
        self._controller = InterruptionController(self._playback)
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._started = False
        self._reported: set[tuple[str, str, Optional[str]]] = set()
        self._consumed: set[str] = set()
        self.stats = SchedulerStats()

    @property
    def playback(self) -> PlaybackState:
        return self._playback

    @property
    def state(self) -> ControllerState:
        return self._controller.state

    # === Lifecycle ===

    def start(self) -> SchedulingDirective:
        """Restore persisted state, fetch the first snapshot and resolve.

        Raises:
            StoreUnavailableError: If the entity store cannot be read
        """
        if self.config.playback.persist_state:
            self._restore_state()

        now = self._clock.now()
        snapshot = self._snapshots.fetch_strict(now)
        if snapshot is None:
            logger.warning("Starting without a snapshot, scheduler is degraded")
        else:
            logger.info(
                f"Scheduler started: {len(snapshot.queue_order)} playlists, "
                f"{len(snapshot.recurring_slots)} slots, "
                f"{len(snapshot.broadcasts)} pending broadcasts"
            )

        self._started = True
        return self.tick()

    def run_forever(self) -> None:
        """Tick at the configured interval until stop() or Ctrl-C."""
        if not self._started:
            self.start()

        interval = self.config.scheduler.tick_interval_seconds
        self._stop_event.clear()
        logger.info(f"Scheduler loop running every {interval}s")
        try:
            while not self._stop_event.is_set():
                started = time.monotonic()
                try:
                    self.tick()
                except Exception:
                    logger.exception("Scheduler tick failed")
                elapsed = time.monotonic() - started
                self._stop_event.wait(max(0.0, interval - elapsed))
        except KeyboardInterrupt:
            logger.info("Scheduler interrupted")
        finally:
            self.shutdown()

    def stop(self) -> None:
        self._stop_event.set()

    def shutdown(self, persist: bool = True) -> None:
        """Stop the loop and persist playback state when configured.

        Args:
            persist: Set False for one-shot evaluations that should not
                overwrite the saved state
        """
        self._stop_event.set()
        if persist and self.config.playback.persist_state and self._started:
            try:
                self._store.save_playback_state(self._playback.to_dict())
            except Exception as e:
                logger.error(f"Failed to persist playback state: {e}")
        self._snapshots.close()
        self._started = False
        logger.info("Scheduler shut down")

    # === Playback surface ===

    def tick(self) -> SchedulingDirective:
        """Evaluate the schedule at the clock's current instant.

        Never raises for recoverable scheduling errors: with no usable
        snapshot the directive is a degraded Idle.

        Returns:
            The effective directive
        """
        with self._lock:
            now = self._clock.now()
            snapshot = self._snapshots.fetch(now)

            self.stats.ticks += 1
            self.stats.last_tick_at = now
            self.stats.snapshot_timeouts = self._snapshots.timeouts
            self.stats.store_failures = self._snapshots.failures

            if snapshot is None:
                self.stats.degraded = True
                return self._controller.apply(
                    Idle(reason="entity store unavailable", degraded=True), now, {}, {}
                )

            self.stats.degraded = False
            queue_playlists = self._queue_playlists(snapshot)
            resolution = resolve(
                now,
                snapshot.recurring_slots,
                snapshot.broadcasts,
                self._queue_state(queue_playlists),
                snapshot.songs,
                snapshot.playlists,
            )
            self._report(resolution)
            self._consume_finished(now, snapshot, resolution)

            directive = self._controller.apply(
                resolution.directive, now, queue_playlists, snapshot.songs
            )
            logger.debug(f"Tick {now.isoformat()}: {describe_directive(directive)}")
            return directive

    def get_current_directive(self) -> SchedulingDirective:
        """The directive currently in effect, resolving once if none yet."""
        directive = self._controller.directive
        if directive is None:
            return self.tick()
        return directive

    def on_directive_changed(self, listener: DirectiveListener) -> Callable[[], None]:
        """Subscribe to directive changes; returns an unsubscribe callable."""
        return self._controller.add_listener(listener)

    def song_finished(self) -> Optional[SchedulingDirective]:
        """Advance the queue after the playing queue song completed.

        Only advances while the queue is playing; songs finishing during an
        override leave the cursor untouched.

        Returns:
            The new effective directive, or None if nothing advanced
        """
        with self._lock:
            directive = self._controller.directive
            if self._controller.state.kind != StateKind.PLAYING_QUEUE or not isinstance(
                directive, ResumePlaylist
            ):
                logger.debug("Song finished outside the queue, cursor unchanged")
                return None

            snapshot = self._snapshots.last
            content = snapshot.playlists.get(directive.playlist.id) if snapshot else None
            if content is None:
                return None

            position = self._playback.cursor.advance(content.playlist.id, list(content.items))
            logger.info(f"Queue '{content.playlist.name}' advanced to position {position}")
            return self.tick()

    def select_playlist(self, playlist_id: str) -> bool:
        """Make a playlist the standing queue.

        While an override is playing, the selection takes effect when it
        ends.

        Returns:
            True if the playlist exists and is active
        """
        with self._lock:
            snapshot = self._snapshots.fetch(self._clock.now())
            if snapshot is None or playlist_id not in snapshot.queue_order:
                logger.warning(f"Cannot select playlist {playlist_id}: not an active playlist")
                return False

            content = snapshot.playlists[playlist_id]
            self._playback.active_playlist_id = playlist_id
            logger.info(f"Selected playlist '{content.playlist.name}'")

            if self._controller.state.kind == StateKind.INTERRUPTED:
                item = self._playback.cursor.current(playlist_id, list(content.items))
                self._controller.retarget(
                    SavedPosition(
                        playlist_id=playlist_id,
                        position=item.position if item else 0,
                        item_id=item.id if item else None,
                    )
                )
                return True

        self.tick()
        return True

    # === Admin surface ===

    def validate_event(self, candidate: ScheduledEvent) -> ConflictReport:
        """Check a new or edited event against the current schedule.

        Raises:
            StoreUnavailableError: If no snapshot can be fetched
        """
        with self._lock:
            snapshot = self._snapshots.fetch(self._clock.now())
        if snapshot is None:
            raise StoreUnavailableError("Cannot validate event: entity store unavailable")

        songs = dict(snapshot.songs)
        if isinstance(candidate, OneTimeBroadcast) and candidate.song_id not in songs:
            song = self._store.get_song(candidate.song_id) if candidate.song_id else None
            if song is not None:
                songs[song.id] = song

        existing: list[ScheduledEvent] = [*snapshot.recurring_slots, *snapshot.broadcasts]
        return check_conflict(candidate, existing, songs)

    def preview_schedule(self, day: date) -> list[PreviewEntry]:
        """What would play across ``day``, as contiguous ranges."""
        with self._lock:
            snapshot = self._snapshots.fetch(self._clock.now())
        if snapshot is None:
            return preview_day(day, [], [], {}, {})

        queue_playlists = self._queue_playlists(snapshot)
        return preview_day(
            day,
            snapshot.recurring_slots,
            snapshot.broadcasts,
            snapshot.songs,
            snapshot.playlists,
            queue=next(iter(queue_playlists.values()), None),
        )

    def get_scheduler_info(self) -> dict[str, Any]:
        """Get current scheduler state for debugging.

        Returns:
            Dict with scheduler state information
        """
        directive = self._controller.directive
        saved = self._controller.state.saved_position
        snapshot = self._snapshots.last
        return {
            "state": self._controller.state.kind.value,
            "directive": describe_directive(directive) if directive else None,
            "active_playlist_id": self._playback.active_playlist_id,
            "saved_position": (
                {"playlist_id": saved.playlist_id, "position": saved.position}
                if saved
                else None
            ),
            "snapshot_version": snapshot.version if snapshot else None,
            "snapshot_stale": self._snapshots.stale,
            "ticks": self.stats.ticks,
            "dangling_references": self.stats.dangling_references,
            "snapshot_timeouts": self.stats.snapshot_timeouts,
            "store_failures": self.stats.store_failures,
            "degraded": self.stats.degraded,
            "last_tick_at": (
                self.stats.last_tick_at.isoformat() if self.stats.last_tick_at else None
            ),
        }

    # === Internals ===

    def _restore_state(self) -> None:
        try:
            data = self._store.load_playback_state()
        except Exception as e:
            raise StoreUnavailableError(f"Entity store unavailable: {e}") from e

        if not data:
            return
        restored = PlaybackState.from_dict(data)
        # Controller holds a reference to this object, update in place
        self._playback.active_playlist_id = restored.active_playlist_id
        self._playback.cursor = restored.cursor
        self._playback.controller = restored.controller
        logger.info(
            f"Restored playback state ({restored.controller.kind.value}, "
            f"playlist={restored.active_playlist_id})"
        )

    def _queue_playlists(self, snapshot: ScheduleSnapshot) -> dict[str, PlaylistContent]:
        """Queue-eligible playlists in fallback order, the default one first."""
        ordered = snapshot.queue_playlists
        default_name = self.config.playback.default_playlist
        if default_name:
            for playlist_id, content in ordered.items():
                if content.playlist.name == default_name:
                    return {playlist_id: content, **ordered}
        return ordered

    def _queue_state(self, queue_playlists: dict[str, PlaylistContent]) -> Optional[QueueState]:
        active_id = self._playback.active_playlist_id
        content = queue_playlists.get(active_id) if active_id else None
        if content is None:
            content = next(iter(queue_playlists.values()), None)
            if content is None:
                return None
            if active_id:
                logger.info(
                    f"Playlist {active_id} no longer available, "
                    f"queue falls back to '{content.playlist.name}'"
                )
            self._playback.active_playlist_id = content.playlist.id

        item = self._playback.cursor.current(content.playlist.id, list(content.items))
        return QueueState(playlist=content.playlist, item=item)

    def _report(self, resolution: Resolution) -> None:
        """Log and count recoverable errors, once per distinct reference."""
        seen: set[tuple[str, str, Optional[str]]] = set()
        for error in resolution.errors:
            if isinstance(error, DanglingReferenceError):
                key = (error.owner_kind, error.owner_id, error.missing_id)
                seen.add(key)
                if key not in self._reported:
                    self.stats.dangling_references += 1
                    logger.warning(f"Dangling reference: {error}")
            else:
                logger.debug(f"Scheduling: {error}")
        self._reported = seen

    def _consume_finished(
        self, now: datetime, snapshot: ScheduleSnapshot, resolution: Resolution
    ) -> None:
        """Mark broadcasts whose window has passed (or cannot play) as consumed."""
        dangling = {
            error.owner_id
            for error in resolution.dangling
            if error.owner_kind == "broadcast"
        }
        # Forget broadcasts the store no longer reports as pending
        self._consumed &= {broadcast.id for broadcast in snapshot.broadcasts}
        for broadcast in snapshot.broadcasts:
            if broadcast.consumed or broadcast.id in self._consumed:
                continue

            song = snapshot.songs.get(broadcast.song_id) if broadcast.song_id else None
            if song is not None:
                finished = broadcast_window(broadcast, song)[1] <= now
            else:
                finished = broadcast.id in dangling
            if not finished:
                continue

            try:
                self._store.mark_broadcast_consumed(broadcast.id)
            except Exception as e:
                logger.error(f"Could not mark broadcast {broadcast.id} consumed: {e}")
                continue
            self._consumed.add(broadcast.id)
