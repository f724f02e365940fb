"""Library domain - songs available for scheduling."""

from .models import Song
from .songs import create_song, delete_song, get_all_songs, get_song

__all__ = [
    "Song",
    "create_song",
    "get_song",
    "get_all_songs",
    "delete_song",
]
