"""Scheduling exceptions.

Everything except InvalidTimeWindow and StoreUnavailableError is recoverable:
the scheduler logs it and still produces a directive.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling operations."""

    pass


class DanglingReferenceError(SchedulingError):
    """Raised when an event or queue points at a song or playlist that no longer exists."""

    def __init__(
        self,
        owner_kind: str,
        owner_id: str,
        missing_kind: str,
        missing_id: Optional[str],
    ):
        self.owner_kind = owner_kind
        self.owner_id = owner_id
        self.missing_kind = missing_kind
        self.missing_id = missing_id
        target = missing_id if missing_id is not None else "<removed>"
        super().__init__(
            f"{owner_kind} {owner_id} references missing {missing_kind} {target}"
        )


class EmptyPlaylistError(SchedulingError):
    """Raised when a playlist has no playable items."""

    def __init__(self, playlist_id: str, message: Optional[str] = None):
        self.playlist_id = playlist_id
        super().__init__(message or f"Playlist {playlist_id} has no items")


class SnapshotFetchTimeout(SchedulingError):
    """Raised when the entity store does not answer within the snapshot timeout."""

    pass


class StoreUnavailableError(SchedulingError):
    """Raised when the entity store cannot be reached at startup."""

    pass


class InvalidTimeWindow(SchedulingError, ValueError):
    """Raised when an event's time window is malformed (e.g. start >= end)."""

    pass
