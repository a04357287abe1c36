"""HTTP client for the Lyricast resolver server.

Used by the playback controller to fetch candidate queues and report
playback outcomes, and by the ``lyricast`` CLI.
"""

import logging
import time
from typing import Any

import httpx

from lyricast.models import OutcomeReport, QueueResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class LyricastAPIError(Exception):
    """Error communicating with the Lyricast server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LyricastClient:
    """HTTP client for the Lyricast REST API.

    Usage:
        client = LyricastClient("http://localhost:5060")
        queue = client.get_queue("Queen", "Bohemian Rhapsody", user_id="fred")
        client.report_outcome(OutcomeReport("Queen", "Bohemian Rhapsody", queue.video_ids[0], "fred"))
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5060",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.ConnectError:
            raise LyricastAPIError(f"Cannot connect to {self.base_url}")
        except httpx.TimeoutException:
            raise LyricastAPIError("Request timed out")
        except httpx.HTTPStatusError as e:
            message = str(e)
            try:
                message = e.response.json().get("error", message)
            except ValueError:
                pass
            raise LyricastAPIError(message, e.response.status_code)
        except httpx.HTTPError as e:
            raise LyricastAPIError(f"Request failed: {e}")
        except ValueError:
            raise LyricastAPIError("Invalid JSON from server")

    def get_health(self) -> dict:
        return self._request("GET", "/api/health")

    # --- Video queue ---

    def get_queue(self, artist: str, track: str, user_id: str | None = None) -> QueueResponse:
        params = {"artist": artist, "track": track, "userId": user_id or ""}
        # Cache-buster so intermediaries never replay an old queue
        params["_t"] = str(int(time.time() * 1000))
        data = self._request("GET", "/api/video", params=params)
        if not isinstance(data, dict):
            raise LyricastAPIError("Invalid queue response from server")
        return QueueResponse.from_dict(data)

    def report_outcome(self, report: OutcomeReport) -> dict:
        return self._request("POST", "/api/video", json=report.to_dict())

    # --- Lyrics cache ---

    def get_lyrics(self, artist: str, track: str, username: str | None = None) -> dict:
        params = {"artist": artist, "track": track}
        if username:
            params["username"] = username
        return self._request("GET", "/api/kv", params=params)

    def save_lyrics(self, artist: str, track: str, lyrics=None,
                    offset: float | None = None, username: str | None = None) -> dict:
        payload: dict[str, Any] = {"artist": artist, "track": track}
        if lyrics is not None:
            payload["lyrics"] = lyrics
        if offset is not None:
            payload["offset"] = offset
        if username:
            payload["username"] = username
        return self._request("POST", "/api/kv", json=payload)
