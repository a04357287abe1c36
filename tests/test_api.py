"""Tests for the REST API."""

from unittest.mock import MagicMock

import pytest

from lyricast.config import ServerConfig
from lyricast.errors import StoreTransportError
from lyricast.server.app import create_app
from lyricast.server.youtube_search import Found, TransportError


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert data["store"] == "sqlite"
        assert "version" in data

    def test_cors_header(self, client):
        resp = client.get("/api/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


class TestVideoQueue:
    def test_missing_params(self, client):
        resp = client.get("/api/video?artist=Queen")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Missing artist or track"

    def test_missing_artist(self, client):
        assert client.get("/api/video?track=Song").status_code == 400

    def test_queue(self, client, provider):
        provider.results["Queen Bohemian Rhapsody"] = Found(["v1", "v2"])
        resp = client.get("/api/video", query_string={
            "artist": "Queen", "track": "Bohemian Rhapsody", "userId": "fred",
        })
        assert resp.status_code == 200
        assert resp.get_json() == {
            "videoIds": ["v1", "v2"],
            "preferredVideoId": None,
            "isDiscoveryComplete": False,
        }

    def test_nothing_found(self, client):
        resp = client.get("/api/video?artist=Nobody&track=Nothing")
        assert resp.status_code == 200
        assert resp.get_json()["videoIds"] == []

    def test_provider_error_is_502(self, client, provider):
        provider.default = TransportError("HTTP 403")
        resp = client.get("/api/video?artist=a&track=t")
        assert resp.status_code == 502
        assert resp.get_json() == {"error": "YouTube API Error"}

    def test_store_error_is_500(self, tmp_path, provider):
        store = MagicMock()
        store.backend = "redis"
        store.set_members.side_effect = StoreTransportError("connection refused")
        store.get_string.side_effect = StoreTransportError("connection refused")
        app = create_app(ServerConfig(data_dir=str(tmp_path)), store=store, provider=provider)
        resp = app.test_client().get("/api/video?artist=a&track=t")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal Server Error"}

    def test_missing_api_key_is_500(self, tmp_path, store, monkeypatch):
        monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)
        app = create_app(ServerConfig(data_dir=str(tmp_path)), store=store)
        resp = app.test_client().get("/api/video?artist=a&track=t")
        assert resp.status_code == 500
        assert "API key" in resp.get_json()["error"]

    def test_empty_user_id_ignored(self, client, provider, candidates):
        provider.results["a t"] = Found(["v1"])
        candidates.record_success("fred", "a", "t", "v1")
        data = client.get("/api/video?artist=a&track=t&userId=").get_json()
        assert data["preferredVideoId"] is None


class TestVideoReport:
    def _post(self, client, **overrides):
        body = {"artist": "Queen", "track": "Song", "videoId": "v1", "userId": "fred"}
        body.update(overrides)
        return client.post("/api/video", json=body)

    def test_success(self, client, candidates):
        resp = self._post(client)
        assert resp.status_code == 200
        assert resp.get_json() == {"success": True}
        assert candidates.verified("queen", "song") == ["v1"]
        assert candidates.preferred("fred", "Queen", "Song") == "v1"

    def test_failed(self, client, candidates):
        resp = self._post(client, status="failed")
        assert resp.status_code == 200
        assert candidates.failed("queen", "song") == ["v1"]
        assert candidates.verified("queen", "song") == []

    @pytest.mark.parametrize("field", ["artist", "track", "videoId", "userId"])
    def test_missing_field(self, client, field):
        resp = self._post(client, **{field: ""})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Missing required fields"

    def test_non_string_field(self, client):
        assert self._post(client, videoId=123).status_code == 400

    def test_no_body(self, client):
        assert client.post("/api/video").status_code == 400

    def test_report_then_queue(self, client, provider):
        provider.results["Queen Song"] = Found(["s1", "s2"])
        self._post(client, videoId="s2")
        data = client.get("/api/video?artist=Queen&track=Song&userId=fred").get_json()
        assert data["videoIds"] == ["s2", "s1"]
        assert data["preferredVideoId"] == "s2"


class TestLyricsKV:
    def test_get_missing_params(self, client):
        assert client.get("/api/kv?artist=a").status_code == 400

    def test_get_empty(self, client):
        resp = client.get("/api/kv?artist=a&track=t")
        assert resp.get_json() == {"lyrics": None, "offset": 0.0}

    def test_save_and_get(self, client):
        lyrics = [{"time": 0.0, "text": "hello"}]
        resp = client.post("/api/kv", json={
            "artist": "A", "track": "T", "lyrics": lyrics, "offset": 1.5, "username": "fred",
        })
        assert resp.get_json() == {"success": True}
        data = client.get("/api/kv?artist=a&track=t&username=fred").get_json()
        assert data == {"lyrics": lyrics, "offset": 1.5}

    def test_bool_offset_ignored(self, client):
        client.post("/api/kv", json={"artist": "a", "track": "t", "offset": True, "username": "fred"})
        assert client.get("/api/kv?artist=a&track=t&username=fred").get_json()["offset"] == 0.0

    def test_save_missing_params(self, client):
        assert client.post("/api/kv", json={"artist": "a"}).status_code == 400
