"""Per-track candidate state kept in the key-value store.

Key layout (artist/track/user normalized to lowercase, trimmed):

    video:search:{artist}:{track}         JSON id list, or "not_found"
    video:verified:{artist}:{track}       set of ids that played
    video:failed:{artist}:{track}         set of ids that would not play
    video:pref:{user}:{artist}:{track}    the user's chosen id
"""

import json
import logging
from dataclasses import dataclass, field

from lyricast.config import NOT_FOUND_TTL_SECONDS, SEARCH_TTL_SECONDS
from lyricast.server.store import KeyValueStore

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"


def normalize(value: str | None) -> str:
    """Lowercase and trim a key component."""
    return (value or "").lower().strip()


@dataclass
class CachedSearch:
    """What the shared search cache holds for a track."""

    state: str  # "missing", "not_found", "hit"
    video_ids: list[str] = field(default_factory=list)

    @property
    def needs_search(self) -> bool:
        return self.state == "missing" or (self.state == "hit" and not self.video_ids)


class CandidateStore:
    """Search cache, verified/failed sets, and user preferences per track."""

    def __init__(
        self,
        store: KeyValueStore,
        search_ttl: int = SEARCH_TTL_SECONDS,
        not_found_ttl: int = NOT_FOUND_TTL_SECONDS,
    ):
        self.store = store
        self.search_ttl = search_ttl
        self.not_found_ttl = not_found_ttl

    # --- Keys ---

    @staticmethod
    def search_key(artist: str, track: str) -> str:
        return f"video:search:{normalize(artist)}:{normalize(track)}"

    @staticmethod
    def verified_key(artist: str, track: str) -> str:
        return f"video:verified:{normalize(artist)}:{normalize(track)}"

    @staticmethod
    def failed_key(artist: str, track: str) -> str:
        return f"video:failed:{normalize(artist)}:{normalize(track)}"

    @staticmethod
    def pref_key(user_id: str, artist: str, track: str) -> str:
        return f"video:pref:{normalize(user_id)}:{normalize(artist)}:{normalize(track)}"

    # --- Reads ---

    def cached_search(self, artist: str, track: str) -> CachedSearch:
        raw = self.store.get_string(self.search_key(artist, track))
        if not raw:
            return CachedSearch("missing")
        if raw == NOT_FOUND:
            return CachedSearch("not_found")
        if not raw.startswith("["):
            # Older entries held a single bare id
            return CachedSearch("hit", [raw])
        try:
            ids = json.loads(raw)
        except ValueError as e:
            logger.warning("Unreadable search cache for %s / %s: %s", artist, track, e)
            return CachedSearch("missing")
        return CachedSearch("hit", [str(i) for i in ids if i])

    def verified(self, artist: str, track: str) -> list[str]:
        return self.store.set_members(self.verified_key(artist, track))

    def failed(self, artist: str, track: str) -> list[str]:
        return self.store.set_members(self.failed_key(artist, track))

    def preferred(self, user_id: str | None, artist: str, track: str) -> str | None:
        if not normalize(user_id):
            return None
        return self.store.get_string(self.pref_key(user_id, artist, track))

    # --- Writes ---

    def cache_search(self, artist: str, track: str, video_ids: list[str]):
        """Cache provider ids, or the not-found marker for an empty list."""
        key = self.search_key(artist, track)
        if video_ids:
            self.store.set_string(key, json.dumps(video_ids), self.search_ttl)
        else:
            self.store.set_string(key, NOT_FOUND, self.not_found_ttl)

    def record_success(self, user_id: str, artist: str, track: str, video_id: str):
        """Save the user's preference, verify the id, and forgive past failures."""
        with self.store.atomic():
            self.store.set_string(self.pref_key(user_id, artist, track), video_id)
            self.store.set_add(self.verified_key(artist, track), video_id)
            self.store.set_remove(self.failed_key(artist, track), video_id)
        logger.info("Verified %s for %s / %s (user %s)", video_id, artist, track, normalize(user_id))

    def record_failure(self, artist: str, track: str, video_id: str):
        self.store.set_add(self.failed_key(artist, track), video_id)
        logger.info("Marked %s failed for %s / %s", video_id, artist, track)
