"""
Playback state owned by the scheduler.

One PlaybackState exists per station. It is created at startup (restored from
the store when persisted) and saved again on shutdown.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .cursor import PlaylistCursor
from .models import OverrideKind


class StateKind(str, Enum):
    """Interruption controller states."""

    IDLE = "idle"
    PLAYING_QUEUE = "playing_queue"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class SavedPosition:
    """Queue position captured when an override first interrupted it."""

    playlist_id: str
    position: int
    item_id: Optional[str] = None


@dataclass(frozen=True)
class ControllerState:
    """Current controller state.

    ``saved_position`` and ``override`` are only meaningful while
    INTERRUPTED; ``saved_position`` is None when the override began from
    IDLE.
    """

    kind: StateKind = StateKind.IDLE
    saved_position: Optional[SavedPosition] = None
    override: Optional[OverrideKind] = None

    def to_dict(self) -> dict[str, Any]:
        saved = self.saved_position
        return {
            "kind": self.kind.value,
            "saved_position": (
                {
                    "playlist_id": saved.playlist_id,
                    "position": saved.position,
                    "item_id": saved.item_id,
                }
                if saved
                else None
            ),
            "override": self.override.value if self.override else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "ControllerState":
        if not data:
            return cls()
        saved = data.get("saved_position")
        return cls(
            kind=StateKind(data.get("kind", StateKind.IDLE.value)),
            saved_position=(
                SavedPosition(
                    playlist_id=saved["playlist_id"],
                    position=int(saved["position"]),
                    item_id=saved.get("item_id"),
                )
                if saved
                else None
            ),
            override=OverrideKind(data["override"]) if data.get("override") else None,
        )


@dataclass
class PlaybackState:
    """Everything that describes "what is playing now" between ticks."""

    active_playlist_id: Optional[str] = None
    cursor: PlaylistCursor = field(default_factory=PlaylistCursor)
    controller: ControllerState = field(default_factory=ControllerState)

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_playlist_id": self.active_playlist_id,
            "cursor": self.cursor.to_dict(),
            "controller": self.controller.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "PlaybackState":
        if not data:
            return cls()
        return cls(
            active_playlist_id=data.get("active_playlist_id"),
            cursor=PlaylistCursor.from_dict(data.get("cursor") or {}),
            controller=ControllerState.from_dict(data.get("controller")),
        )
