"""YouTube search providers for candidate discovery.

Two providers return the same tagged result type:

- YouTubeAPISearch: YouTube Data API v3 search endpoint (needs an API key)
- YtDlpSearch: yt-dlp flat-playlist search (no key, slower)

A provider never raises for "no results"; transport or auth failures come
back as TransportError so the resolver can avoid caching them.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field

import httpx

from lyricast.errors import ProviderConfigError

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"


@dataclass(frozen=True)
class Found:
    """Provider returned at least one video id, in provider order."""

    video_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Empty:
    """Provider answered but had no candidates."""


@dataclass(frozen=True)
class TransportError:
    """Provider unreachable, rejected the request, or answered garbage."""

    reason: str = ""


SearchResult = Found | Empty | TransportError


class SearchProvider:
    """Base class for search providers."""

    name: str = ""

    def search(self, query: str) -> SearchResult:
        raise NotImplementedError

    def close(self):
        pass


class YouTubeAPISearch(SearchProvider):
    """Search via the YouTube Data API v3."""

    name = "youtube_api"

    def __init__(
        self,
        api_key: str,
        max_results: int = 25,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.max_results = max_results
        self._client = client or httpx.Client(timeout=timeout)

    def search(self, query: str) -> SearchResult:
        if not self.api_key:
            raise ProviderConfigError("YouTube API key missing")

        params = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": self.max_results,
            "key": self.api_key,
        }
        try:
            resp = self._client.get(YOUTUBE_SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            logger.warning("YouTube search request failed for '%s': %s", query, e)
            return TransportError(str(e))

        if resp.status_code != 200:
            logger.warning("YouTube search for '%s' returned HTTP %d", query, resp.status_code)
            return TransportError(f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            logger.warning("YouTube search returned invalid JSON for '%s': %s", query, e)
            return TransportError("invalid JSON")

        video_ids = []
        for item in data.get("items") or []:
            video_id = (item.get("id") or {}).get("videoId")
            if video_id:
                video_ids.append(video_id)

        logger.info("YouTube search '%s': %d results", query, len(video_ids))
        return Found(video_ids) if video_ids else Empty()

    def close(self):
        self._client.close()


class YtDlpSearch(SearchProvider):
    """Search via yt-dlp's ytsearch extractor."""

    name = "ytdlp"

    def __init__(self, max_results: int = 25, timeout: float = 60.0):
        self.max_results = max_results
        self.timeout = timeout

    def search(self, query: str) -> SearchResult:
        if not shutil.which("yt-dlp"):
            logger.error("yt-dlp not found in PATH")
            return TransportError("yt-dlp not installed")

        cmd = [
            "yt-dlp", f"ytsearch{self.max_results}:{query}",
            "--flat-playlist",
            "--print", "%(id)s",
            "--no-warnings",
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.warning("yt-dlp search timed out for query: %s", query)
            return TransportError("timeout")
        except (FileNotFoundError, OSError) as e:
            logger.error("yt-dlp search could not run: %s", e)
            return TransportError(str(e))

        if result.returncode != 0:
            logger.warning("yt-dlp search failed for '%s': %s", query, result.stderr.strip())
            return TransportError(result.stderr.strip())

        video_ids = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        logger.info("yt-dlp search '%s': %d results", query, len(video_ids))
        return Found(video_ids) if video_ids else Empty()


def create_search_provider(config) -> SearchProvider:
    """Build the search provider named in the server config."""
    if config.search_provider == "ytdlp":
        return YtDlpSearch(max_results=config.search_max_results)
    return YouTubeAPISearch(
        config.youtube_api_key,
        max_results=config.search_max_results,
        timeout=config.search_timeout,
    )
