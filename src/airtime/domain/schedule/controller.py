"""
Interruption controller.

A small state machine over IDLE, PLAYING_QUEUE and INTERRUPTED that decides
what happens to the standing queue when an override (broadcast or recurring
slot) starts and ends:

- entering an override from the queue saves the queue position
- overrides do not nest: a broadcast during a slot keeps the position saved
  when the slot began
- leaving the override restores the saved position, or the first available
  playlist when the saved one was deleted

Every transition, and every change of what is playing, is pushed to the
registered listeners as a DirectiveChanged event.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping, Optional

from loguru import logger

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import PlaylistContent

from .models import (
    ResumePlaylist,
    SchedulingDirective,
    directive_key,
    is_override,
    override_kind,
)
from .state import ControllerState, PlaybackState, SavedPosition, StateKind


@dataclass(frozen=True)
class DirectiveChanged:
    """Pushed to the playback layer whenever the effective directive changes."""

    previous: Optional[SchedulingDirective]
    directive: SchedulingDirective
    state: ControllerState
    at: datetime


DirectiveListener = Callable[[DirectiveChanged], None]


class InterruptionController:
    """Applies resolver output to the owned playback state."""

    def __init__(self, playback: PlaybackState) -> None:
        self._playback = playback
        self._directive: Optional[SchedulingDirective] = None
        self._listeners: list[DirectiveListener] = []

    @property
    def state(self) -> ControllerState:
        return self._playback.controller

    @property
    def directive(self) -> Optional[SchedulingDirective]:
        return self._directive

    def add_listener(self, listener: DirectiveListener) -> Callable[[], None]:
        """Register a DirectiveChanged listener.

        Returns:
            A callable that unregisters the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def apply(
        self,
        directive: SchedulingDirective,
        now: datetime,
        playlists: Mapping[str, PlaylistContent],
        songs: Mapping[str, Song],
    ) -> SchedulingDirective:
        """Transition on a freshly resolved directive.

        Args:
            directive: Resolver output for ``now``
            now: The instant being evaluated
            playlists: Queue-eligible playlists, in fallback order
            songs: Songs by ID

        Returns:
            The effective directive, which differs from ``directive`` when
            leaving an override restores a different queue position
        """
        previous_state = self._playback.controller
        previous_directive = self._directive

        if is_override(directive):
            new_state = self._enter_override(previous_state, directive)
            effective = directive
        elif isinstance(directive, ResumePlaylist):
            if previous_state.kind == StateKind.INTERRUPTED:
                effective = self._restore(previous_state, directive, playlists, songs)
            else:
                effective = directive
            new_state = ControllerState(kind=StateKind.PLAYING_QUEUE)
        else:
            new_state = ControllerState(kind=StateKind.IDLE)
            effective = directive

        self._playback.controller = new_state
        self._directive = effective
        if isinstance(effective, ResumePlaylist):
            self._playback.active_playlist_id = effective.playlist.id

        if new_state.kind != previous_state.kind:
            logger.info(
                f"Controller {previous_state.kind.value} -> {new_state.kind.value}"
            )

        if (
            previous_directive is None
            or new_state.kind != previous_state.kind
            or directive_key(effective) != directive_key(previous_directive)
        ):
            self._emit(DirectiveChanged(previous_directive, effective, new_state, now))

        return effective

    def retarget(self, saved: SavedPosition) -> bool:
        """Change where the queue resumes once the current override ends.

        Returns:
            True if the controller is interrupted and the target changed
        """
        current = self._playback.controller
        if current.kind != StateKind.INTERRUPTED:
            return False
        self._playback.controller = ControllerState(
            kind=StateKind.INTERRUPTED, saved_position=saved, override=current.override
        )
        logger.info(f"Queue will resume in playlist {saved.playlist_id} after the override")
        return True

    def _enter_override(
        self, previous: ControllerState, directive: SchedulingDirective
    ) -> ControllerState:
        kind = override_kind(directive)

        if previous.kind == StateKind.INTERRUPTED:
            # No nesting: keep the position captured at first entry
            return ControllerState(
                kind=StateKind.INTERRUPTED,
                saved_position=previous.saved_position,
                override=kind,
            )

        saved: Optional[SavedPosition] = None
        if previous.kind == StateKind.PLAYING_QUEUE and isinstance(
            self._directive, ResumePlaylist
        ):
            current = self._directive
            saved = SavedPosition(
                playlist_id=current.playlist.id,
                position=current.position,
                item_id=current.item.id,
            )
            logger.info(
                f"Interrupting queue '{current.playlist.name}' at position {current.position}"
            )
        elif previous.kind == StateKind.PLAYING_QUEUE and self._playback.active_playlist_id:
            # Restored from a persisted state: no directive yet, use the cursor
            playlist_id = self._playback.active_playlist_id
            mark = self._playback.cursor.mark(playlist_id)
            if mark is not None:
                saved = SavedPosition(playlist_id, mark.position, mark.item_id)

        return ControllerState(
            kind=StateKind.INTERRUPTED, saved_position=saved, override=kind
        )

    def _restore(
        self,
        previous: ControllerState,
        directive: ResumePlaylist,
        playlists: Mapping[str, PlaylistContent],
        songs: Mapping[str, Song],
    ) -> SchedulingDirective:
        cursor = self._playback.cursor
        saved = previous.saved_position
        if saved is None:
            # Override began from Idle; the queue starts wherever its cursor is
            return directive

        if saved.playlist_id in playlists:
            target = playlists[saved.playlist_id]
            cursor.seek(saved.playlist_id, saved.position, saved.item_id)
            logger.info(
                f"Restoring queue '{target.playlist.name}' at position {saved.position}"
            )
        else:
            target = next(iter(playlists.values()), None)
            if target is None:
                return directive
            first = min((item.position for item in target.items), default=0)
            cursor.seek(target.playlist.id, first)
            logger.warning(
                f"Saved playlist {saved.playlist_id} is gone, "
                f"falling back to '{target.playlist.name}'"
            )

        item = cursor.current(target.playlist.id, list(target.items))
        song = songs.get(item.song_id) if item else None
        if item is None or song is None:
            return directive

        return ResumePlaylist(
            playlist=target.playlist, position=item.position, item=item, song=song
        )

    def _emit(self, event: DirectiveChanged) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("DirectiveChanged listener failed")
