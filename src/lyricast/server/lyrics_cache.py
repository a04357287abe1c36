"""Shared lyrics cache and per-user sync offsets."""

import json
import logging

from lyricast.server.candidates import normalize
from lyricast.server.store import KeyValueStore

logger = logging.getLogger(__name__)


class LyricsCache:
    """Lyrics stored once per track; timing offsets stored per user."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def lyrics_key(artist: str, track: str) -> str:
        return f"lyrics:{normalize(artist)}:{normalize(track)}"

    @staticmethod
    def offset_key(username: str, artist: str, track: str) -> str:
        return f"offset:{normalize(username)}:{normalize(artist)}:{normalize(track)}"

    def get(self, artist: str, track: str, username: str | None = None) -> dict:
        """Return {"lyrics": ..., "offset": float} for a track."""
        raw = self.store.get_string(self.lyrics_key(artist, track))
        lyrics = None
        if raw:
            try:
                lyrics = json.loads(raw)
            except ValueError as e:
                logger.warning("Unreadable lyrics cache for %s / %s: %s", artist, track, e)

        offset = 0.0
        if normalize(username):
            raw_offset = self.store.get_string(self.offset_key(username, artist, track))
            if raw_offset is not None:
                try:
                    offset = float(raw_offset)
                except ValueError:
                    logger.warning("Bad offset value %r for %s", raw_offset, username)

        return {"lyrics": lyrics, "offset": offset}

    def save(self, artist: str, track: str, lyrics=None, offset: float | None = None,
             username: str | None = None):
        """Store lyrics globally and/or an offset for one user."""
        if lyrics:
            self.store.set_string(self.lyrics_key(artist, track), json.dumps(lyrics))
        if offset is not None and normalize(username):
            self.store.set_string(self.offset_key(username, artist, track), str(offset))
