"""Flask REST API for Lyricast.

Serves candidate video queues to players and records playback outcomes.
"""

import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from lyricast.__about__ import __version__
from lyricast.config import ServerConfig
from lyricast.errors import ProviderConfigError, ProviderTransportError, StoreTransportError
from lyricast.models import OutcomeReport
from lyricast.server.candidates import CandidateStore
from lyricast.server.lyrics_cache import LyricsCache
from lyricast.server.resolver import CandidateResolver
from lyricast.server.store import KeyValueStore, create_store
from lyricast.server.youtube_search import SearchProvider, create_search_provider

logger = logging.getLogger(__name__)


def create_app(
    config: ServerConfig | None = None,
    store: KeyValueStore | None = None,
    provider: SearchProvider | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Server configuration. Uses defaults if None.
        store: Store backend. Built from config if None.
        provider: Search provider. Built from config if None.
    """
    if config is None:
        config = ServerConfig()

    app = Flask(__name__)
    app.config["LYRICAST"] = config

    if store is None:
        store = create_store(config)
    if provider is None:
        provider = create_search_provider(config)

    candidates = CandidateStore(
        store,
        search_ttl=config.search_ttl_seconds,
        not_found_ttl=config.not_found_ttl_seconds,
    )
    resolver = CandidateResolver(candidates, provider)
    lyrics = LyricsCache(store)

    # Release the per-thread store connection after each request
    @app.teardown_appcontext
    def release_store(exc):
        store.release()

    @app.errorhandler(ProviderTransportError)
    def handle_provider_error(e):
        logger.error("Search provider error: %s", e)
        return jsonify({"error": "YouTube API Error"}), 502

    @app.errorhandler(ProviderConfigError)
    def handle_provider_config(e):
        logger.error("Search provider misconfigured: %s", e)
        return jsonify({"error": str(e)}), 500

    @app.errorhandler(StoreTransportError)
    def handle_store_error(e):
        logger.error("Store error: %s", e)
        return jsonify({"error": "Internal Server Error"}), 500

    # Global JSON error handler, prevents bare HTML 500s
    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error: %s", e)
        return jsonify({"error": str(e)}), 500

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    app.store = store
    app.provider = provider
    app.candidates = candidates
    app.resolver = resolver
    app.lyrics = lyrics

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok", "version": __version__, "store": store.backend})

    # --- Video queue ---

    @app.route("/api/video")
    def video_queue():
        """Resolve the candidate queue for artist/track (and optional user)."""
        artist = request.args.get("artist", "")
        track = request.args.get("track", "")
        user_id = request.args.get("userId") or None
        if not artist or not track:
            return jsonify({"error": "Missing artist or track"}), 400

        result = resolver.resolve(artist, track, user_id)
        return jsonify(result.to_dict())

    @app.route("/api/video", methods=["POST"])
    def video_report():
        """Record a playback outcome. No status means it played."""
        data = request.get_json(silent=True) or {}
        fields = {k: data.get(k) for k in ("artist", "track", "videoId", "userId")}
        if not all(isinstance(v, str) and v.strip() for v in fields.values()):
            return jsonify({"error": "Missing required fields"}), 400

        report = OutcomeReport(
            artist=fields["artist"],
            track=fields["track"],
            video_id=fields["videoId"],
            user_id=fields["userId"],
            status=data.get("status"),
        )
        resolver.report(report)
        return jsonify({"success": True})

    # --- Lyrics cache ---

    @app.route("/api/kv")
    def kv_get():
        artist = request.args.get("artist", "").strip()
        track = request.args.get("track", "").strip()
        if not artist or not track:
            return jsonify({"error": "Missing artist or track"}), 400
        return jsonify(lyrics.get(artist, track, request.args.get("username")))

    @app.route("/api/kv", methods=["POST"])
    def kv_save():
        data = request.get_json(silent=True) or {}
        artist = (data.get("artist") or "").strip()
        track = (data.get("track") or "").strip()
        if not artist or not track:
            return jsonify({"error": "Missing artist or track"}), 400

        offset = data.get("offset")
        if isinstance(offset, bool) or not isinstance(offset, (int, float)):
            offset = None
        lyrics.save(
            artist, track,
            lyrics=data.get("lyrics"),
            offset=offset,
            username=data.get("username"),
        )
        return jsonify({"success": True})

    return app
