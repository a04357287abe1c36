"""Tests for YouTube search providers."""

import subprocess
from unittest.mock import MagicMock, patch

import httpx
import pytest

from lyricast.config import ServerConfig
from lyricast.errors import ProviderConfigError
from lyricast.server.youtube_search import (
    YOUTUBE_SEARCH_URL,
    Empty,
    Found,
    TransportError,
    YouTubeAPISearch,
    YtDlpSearch,
    create_search_provider,
)


def _mock_response(status_code=200, json_data=None, json_error=None):
    resp = MagicMock()
    resp.status_code = status_code
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_data
    return resp


def _mock_run_ok(stdout="", returncode=0, stderr=""):
    result = MagicMock()
    result.stdout = stdout
    result.stderr = stderr
    result.returncode = returncode
    return result


@pytest.fixture
def http():
    return MagicMock()


class TestYouTubeAPISearch:
    def test_found(self, http):
        http.get.return_value = _mock_response(json_data={"items": [
            {"id": {"kind": "youtube#video", "videoId": "aaa"}},
            {"id": {"kind": "youtube#video", "videoId": "bbb"}},
        ]})
        result = YouTubeAPISearch("KEY", client=http).search("Queen Bohemian Rhapsody")
        assert result == Found(["aaa", "bbb"])

    def test_request_params(self, http):
        http.get.return_value = _mock_response(json_data={"items": []})
        YouTubeAPISearch("KEY", max_results=25, client=http).search("Queen Song")
        url = http.get.call_args.args[0]
        params = http.get.call_args.kwargs["params"]
        assert url == YOUTUBE_SEARCH_URL
        assert params == {
            "part": "snippet",
            "q": "Queen Song",
            "type": "video",
            "maxResults": 25,
            "key": "KEY",
        }

    def test_no_items_is_empty(self, http):
        http.get.return_value = _mock_response(json_data={"items": []})
        assert YouTubeAPISearch("KEY", client=http).search("x") == Empty()

    def test_missing_items_key_is_empty(self, http):
        http.get.return_value = _mock_response(json_data={})
        assert YouTubeAPISearch("KEY", client=http).search("x") == Empty()

    def test_items_without_video_id_skipped(self, http):
        http.get.return_value = _mock_response(json_data={"items": [
            {"id": {"kind": "youtube#channel", "channelId": "c1"}},
            {"id": {"videoId": "v1"}},
        ]})
        assert YouTubeAPISearch("KEY", client=http).search("x") == Found(["v1"])

    def test_http_error_status(self, http):
        http.get.return_value = _mock_response(status_code=403, json_data={})
        result = YouTubeAPISearch("KEY", client=http).search("x")
        assert isinstance(result, TransportError)
        assert "403" in result.reason

    def test_network_error(self, http):
        http.get.side_effect = httpx.ConnectError("unreachable")
        assert isinstance(YouTubeAPISearch("KEY", client=http).search("x"), TransportError)

    def test_invalid_json(self, http):
        http.get.return_value = _mock_response(json_error=ValueError("bad"))
        result = YouTubeAPISearch("KEY", client=http).search("x")
        assert result == TransportError("invalid JSON")

    def test_missing_key_raises(self, http):
        with pytest.raises(ProviderConfigError):
            YouTubeAPISearch("", client=http).search("x")
        http.get.assert_not_called()

    def test_close(self, http):
        YouTubeAPISearch("KEY", client=http).close()
        http.close.assert_called_once()


class TestYtDlpSearch:
    @patch("shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("subprocess.run")
    def test_found(self, mock_run, mock_which):
        mock_run.return_value = _mock_run_ok("abc123def45\nxyz789ghi01\n")
        result = YtDlpSearch(max_results=5).search("Queen Song")
        assert result == Found(["abc123def45", "xyz789ghi01"])
        cmd = mock_run.call_args.args[0]
        assert cmd[0] == "yt-dlp"
        assert cmd[1] == "ytsearch5:Queen Song"
        assert "--flat-playlist" in cmd

    @patch("shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("subprocess.run")
    def test_no_output_is_empty(self, mock_run, mock_which):
        mock_run.return_value = _mock_run_ok("\n")
        assert YtDlpSearch().search("x") == Empty()

    @patch("shutil.which", return_value=None)
    def test_not_installed(self, mock_which):
        assert isinstance(YtDlpSearch().search("x"), TransportError)

    @patch("shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("subprocess.run")
    def test_nonzero_exit(self, mock_run, mock_which):
        mock_run.return_value = _mock_run_ok(returncode=1, stderr="ERROR: blocked")
        assert YtDlpSearch().search("x") == TransportError("ERROR: blocked")

    @patch("shutil.which", return_value="/usr/bin/yt-dlp")
    @patch("subprocess.run", side_effect=subprocess.TimeoutExpired("yt-dlp", 60))
    def test_timeout(self, mock_run, mock_which):
        assert YtDlpSearch().search("x") == TransportError("timeout")


class TestCreateSearchProvider:
    def test_default_is_api(self):
        provider = create_search_provider(ServerConfig(youtube_api_key="KEY", search_max_results=10))
        assert isinstance(provider, YouTubeAPISearch)
        assert provider.max_results == 10
        provider.close()

    def test_ytdlp(self):
        provider = create_search_provider(ServerConfig(search_provider="ytdlp"))
        assert isinstance(provider, YtDlpSearch)
