"""
Song library domain models.

Contains data structures for representing songs.
"""

from typing import NamedTuple, Optional


class Song(NamedTuple):
    """Represents an uploaded song with its metadata.

    Songs are immutable once created. The media_ref is an opaque handle the
    playback layer knows how to open (usually a file path).
    """

    id: str
    title: str
    media_ref: str
    duration: int = 0  # in seconds
    artist: Optional[str] = None
    album: Optional[str] = None

    @property
    def display_name(self) -> str:
        """'Artist - Title', or just the title when the artist is unknown."""
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title
