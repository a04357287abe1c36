"""Candidate resolver: builds the video queue for a track.

Merges three sources into one ordered, duplicate-free queue:

1. Verified ids (played before, for anyone)
2. Search results, in provider order
3. The user's preferred id

Any id in the failed set is dropped, whichever source it came from.
"""

import logging

from lyricast.errors import ProviderTransportError
from lyricast.models import OutcomeReport, QueueResponse
from lyricast.server.candidates import CandidateStore, normalize
from lyricast.server.titles import clean_track_title
from lyricast.server.youtube_search import Found, SearchProvider, TransportError

logger = logging.getLogger(__name__)


def merge_candidates(
    verified: list[str],
    search_ids: list[str],
    preferred: str | None,
    failed: set[str],
) -> list[str]:
    """Verified first, then search order, then preferred; skip failed and repeats."""
    queue: list[str] = []
    seen: set[str] = set()
    sources = [*verified, *search_ids]
    if preferred:
        sources.append(preferred)
    for video_id in sources:
        if video_id in failed or video_id in seen:
            continue
        seen.add(video_id)
        queue.append(video_id)
    return queue


def discovery_complete(search_ids: list[str], verified: list[str], failed: set[str]) -> bool:
    """True when every searched id has been classified as verified or failed."""
    if not search_ids:
        return False
    known = set(verified) | failed
    return all(video_id in known for video_id in search_ids)


class CandidateResolver:
    """Resolves candidate queues and applies outcome reports."""

    def __init__(self, candidates: CandidateStore, provider: SearchProvider):
        self.candidates = candidates
        self.provider = provider

    def resolve(self, artist: str, track: str, user_id: str | None = None) -> QueueResponse:
        """Build the candidate queue for a track.

        Raises ProviderTransportError if a search was needed and the
        provider could not answer; StoreTransportError propagates as is.
        """
        user_id = normalize(user_id) or None
        logger.info(
            "Resolving queue: artist=%s track=%s user=%s",
            normalize(artist), normalize(track), user_id,
        )

        preferred = self.candidates.preferred(user_id, artist, track)
        verified = self.candidates.verified(artist, track)
        failed = set(self.candidates.failed(artist, track))
        logger.debug("Verified: %d, failed: %d, preferred: %s", len(verified), len(failed), preferred)

        cached = self.candidates.cached_search(artist, track)
        if cached.state == "not_found":
            logger.info("Search cache says not found for %s / %s", artist, track)
            return QueueResponse([], preferred_video_id=preferred, is_discovery_complete=False)

        search_ids = cached.video_ids
        if cached.needs_search:
            search_ids = self._search(artist, track)
            self.candidates.cache_search(artist, track, search_ids)

        return QueueResponse(
            video_ids=merge_candidates(verified, search_ids, preferred, failed),
            preferred_video_id=preferred,
            is_discovery_complete=discovery_complete(search_ids, verified, failed),
        )

    def _search(self, artist: str, track: str) -> list[str]:
        """Search with the cleaned title, falling back to the original once.

        The first result stands unless the fallback actually finds ids.
        """
        cleaned = clean_track_title(track)
        result = self.provider.search(f"{artist} {cleaned}")

        if cleaned != track and not isinstance(result, Found):
            logger.info("Clean title search found nothing, retrying with original: %s", track)
            retry = self.provider.search(f"{artist} {track}")
            if isinstance(retry, Found):
                result = retry

        if isinstance(result, TransportError):
            raise ProviderTransportError(result.reason or "search provider error")
        if isinstance(result, Found):
            return list(result.video_ids)
        return []

    def report(self, report: OutcomeReport):
        """Apply a playback outcome to the shared sets and user preference."""
        if report.failed:
            self.candidates.record_failure(report.artist, report.track, report.video_id)
        else:
            self.candidates.record_success(
                report.user_id, report.artist, report.track, report.video_id,
            )
