"""Tests for the interruption controller."""

from datetime import date, datetime, time

import pytest

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import Playlist, PlaylistContent, PlaylistItem
from airtime.domain.schedule.controller import DirectiveChanged, InterruptionController
from airtime.domain.schedule.models import (
    Idle,
    OneTimeBroadcast,
    OverrideKind,
    PlayBroadcast,
    PlayRecurring,
    RecurringSlot,
    ResumePlaylist,
)
from airtime.domain.schedule.state import PlaybackState, SavedPosition, StateKind

NOW = datetime(2024, 1, 1, 9, 0)


def make_content(playlist_id: str, name: str, song_ids: list[str]) -> PlaylistContent:
    playlist = Playlist(id=playlist_id, name=name)
    items = tuple(
        PlaylistItem(id=f"{playlist_id}-{pos}", playlist_id=playlist_id, song_id=sid, position=pos)
        for pos, sid in enumerate(song_ids)
    )
    return PlaylistContent(playlist=playlist, items=items)


@pytest.fixture
def songs() -> dict[str, Song]:
    return {
        sid: Song(id=sid, title=sid.upper(), media_ref=f"/m/{sid}.mp3", duration=180)
        for sid in ["a", "b", "c", "d", "e", "x", "y"]
    }


@pytest.fixture
def praise() -> PlaylistContent:
    return make_content("praise", "Morning Praise", ["a", "b", "c"])


@pytest.fixture
def gospel() -> PlaylistContent:
    return make_content("gospel", "Gospel Hour", ["d", "e"])


@pytest.fixture
def playback() -> PlaybackState:
    return PlaybackState()


@pytest.fixture
def controller(playback: PlaybackState) -> InterruptionController:
    return InterruptionController(playback)


def queue_directive(content: PlaylistContent, songs: dict[str, Song], position: int) -> ResumePlaylist:
    item = content.items[position]
    return ResumePlaylist(
        playlist=content.playlist, position=item.position, item=item, song=songs[item.song_id]
    )


def slot_directive(songs: dict[str, Song]) -> PlayRecurring:
    slot = RecurringSlot(
        id="slot-1",
        title="Prayer",
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(9, 15),
        song_id="x",
    )
    return PlayRecurring(slot=slot, song=songs["x"])


def broadcast_directive(songs: dict[str, Song]) -> PlayBroadcast:
    broadcast = OneTimeBroadcast(
        id="b-1",
        title="Announcement",
        date=date(2024, 1, 1),
        start_time=time(9, 5),
        song_id="y",
    )
    return PlayBroadcast(broadcast=broadcast, song=songs["y"])


class TestTransitions:
    """State transitions on resolver output."""

    def test_idle_to_playing_queue(
        self, controller: InterruptionController, praise: PlaylistContent, songs: dict[str, Song]
    ) -> None:
        directive = queue_directive(praise, songs, 0)

        effective = controller.apply(directive, NOW, {"praise": praise}, songs)

        assert effective == directive
        assert controller.state.kind == StateKind.PLAYING_QUEUE

    def test_queue_to_interrupted_saves_position(
        self, controller: InterruptionController, praise: PlaylistContent, songs: dict[str, Song]
    ) -> None:
        controller.apply(queue_directive(praise, songs, 1), NOW, {"praise": praise}, songs)

        controller.apply(slot_directive(songs), NOW, {"praise": praise}, songs)

        assert controller.state.kind == StateKind.INTERRUPTED
        assert controller.state.override == OverrideKind.RECURRING
        assert controller.state.saved_position == SavedPosition("praise", 1, "praise-1")

    def test_idle_to_interrupted_has_no_saved_position(
        self, controller: InterruptionController, songs: dict[str, Song]
    ) -> None:
        controller.apply(Idle(), NOW, {}, songs)
        controller.apply(slot_directive(songs), NOW, {}, songs)

        assert controller.state.kind == StateKind.INTERRUPTED
        assert controller.state.saved_position is None

    def test_any_to_idle(
        self, controller: InterruptionController, praise: PlaylistContent, songs: dict[str, Song]
    ) -> None:
        controller.apply(slot_directive(songs), NOW, {"praise": praise}, songs)

        controller.apply(Idle(reason="nothing"), NOW, {}, songs)

        assert controller.state.kind == StateKind.IDLE
        assert controller.state.saved_position is None

    def test_active_playlist_tracks_queue(
        self,
        controller: InterruptionController,
        playback: PlaybackState,
        gospel: PlaylistContent,
        songs: dict[str, Song],
    ) -> None:
        controller.apply(queue_directive(gospel, songs, 0), NOW, {"gospel": gospel}, songs)

        assert playback.active_playlist_id == "gospel"


class TestRestore:
    """Leaving an override restores the saved queue position."""

    def test_restores_saved_position(
        self,
        controller: InterruptionController,
        playback: PlaybackState,
        praise: PlaylistContent,
        songs: dict[str, Song],
    ) -> None:
        playlists = {"praise": praise}
        controller.apply(queue_directive(praise, songs, 1), NOW, playlists, songs)
        controller.apply(slot_directive(songs), NOW, playlists, songs)
        # Cursor moved while interrupted; the saved position still wins
        playback.cursor.seek("praise", 2, "praise-2")

        effective = controller.apply(queue_directive(praise, songs, 2), NOW, playlists, songs)

        assert isinstance(effective, ResumePlaylist)
        assert effective.position == 1
        assert controller.state.kind == StateKind.PLAYING_QUEUE
        assert playback.cursor.position("praise") == 1

    def test_overrides_do_not_nest(
        self, controller: InterruptionController, praise: PlaylistContent, songs: dict[str, Song]
    ) -> None:
        playlists = {"praise": praise}
        controller.apply(queue_directive(praise, songs, 2), NOW, playlists, songs)
        controller.apply(slot_directive(songs), NOW, playlists, songs)
        controller.apply(broadcast_directive(songs), NOW, playlists, songs)

        assert controller.state.override == OverrideKind.BROADCAST
        assert controller.state.saved_position.position == 2

        controller.apply(slot_directive(songs), NOW, playlists, songs)
        effective = controller.apply(queue_directive(praise, songs, 0), NOW, playlists, songs)

        assert effective.position == 2

    def test_deleted_playlist_falls_back_to_first_available(
        self,
        controller: InterruptionController,
        praise: PlaylistContent,
        gospel: PlaylistContent,
        songs: dict[str, Song],
    ) -> None:
        controller.apply(queue_directive(praise, songs, 2), NOW, {"praise": praise}, songs)
        controller.apply(slot_directive(songs), NOW, {"praise": praise}, songs)

        # Morning Praise was deleted during the slot
        effective = controller.apply(
            queue_directive(gospel, songs, 1), NOW, {"gospel": gospel}, songs
        )

        assert effective.playlist.id == "gospel"
        assert effective.position == 0

    def test_restore_without_saved_position_keeps_directive(
        self, controller: InterruptionController, praise: PlaylistContent, songs: dict[str, Song]
    ) -> None:
        controller.apply(slot_directive(songs), NOW, {"praise": praise}, songs)
        directive = queue_directive(praise, songs, 1)

        assert controller.apply(directive, NOW, {"praise": praise}, songs) == directive

    def test_retarget_changes_restore_target(
        self,
        controller: InterruptionController,
        praise: PlaylistContent,
        gospel: PlaylistContent,
        songs: dict[str, Song],
    ) -> None:
        playlists = {"praise": praise, "gospel": gospel}
        controller.apply(queue_directive(praise, songs, 1), NOW, playlists, songs)
        controller.apply(slot_directive(songs), NOW, playlists, songs)

        assert controller.retarget(SavedPosition("gospel", 1, "gospel-1"))
        effective = controller.apply(queue_directive(praise, songs, 1), NOW, playlists, songs)

        assert effective.playlist.id == "gospel"
        assert effective.position == 1

    def test_retarget_ignored_when_not_interrupted(
        self, controller: InterruptionController
    ) -> None:
        assert not controller.retarget(SavedPosition("gospel", 0))


class TestListeners:
    """DirectiveChanged events."""

    def test_emits_on_each_change(
        self, controller: InterruptionController, praise: PlaylistContent, songs: dict[str, Song]
    ) -> None:
        events: list[DirectiveChanged] = []
        controller.add_listener(events.append)
        playlists = {"praise": praise}

        controller.apply(queue_directive(praise, songs, 0), NOW, playlists, songs)
        controller.apply(slot_directive(songs), NOW, playlists, songs)
        controller.apply(queue_directive(praise, songs, 0), NOW, playlists, songs)

        assert [e.state.kind for e in events] == [
            StateKind.PLAYING_QUEUE,
            StateKind.INTERRUPTED,
            StateKind.PLAYING_QUEUE,
        ]
        assert events[1].previous == events[0].directive

    def test_no_event_when_only_offset_moves(
        self, controller: InterruptionController, songs: dict[str, Song]
    ) -> None:
        events: list[DirectiveChanged] = []
        controller.add_listener(events.append)
        directive = slot_directive(songs)

        controller.apply(directive, NOW, {}, songs)
        controller.apply(
            PlayRecurring(slot=directive.slot, song=directive.song, offset_seconds=30.0),
            NOW,
            {},
            songs,
        )

        assert len(events) == 1

    def test_failing_listener_does_not_block_others(
        self, controller: InterruptionController, songs: dict[str, Song]
    ) -> None:
        received: list[DirectiveChanged] = []

        def broken(event: DirectiveChanged) -> None:
            raise RuntimeError("listener crashed")

        controller.add_listener(broken)
        controller.add_listener(received.append)

        controller.apply(Idle(), NOW, {}, songs)

        assert len(received) == 1

    def test_unsubscribe(self, controller: InterruptionController, songs: dict[str, Song]) -> None:
        received: list[DirectiveChanged] = []
        remove = controller.add_listener(received.append)
        remove()

        controller.apply(Idle(), NOW, {}, songs)

        assert received == []
