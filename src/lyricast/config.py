"""Configuration loader for Lyricast."""

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python 3.10 fallback

SEARCH_TTL_SECONDS = 60 * 60 * 24 * 30   # 30 days
NOT_FOUND_TTL_SECONDS = 60 * 60 * 24     # 24 hours


@dataclass
class ServerConfig:
    """Configuration for the resolver server."""

    host: str = "0.0.0.0"
    port: int = 5060
    data_dir: str = ""
    db_file: str = ""
    store_backend: str = "sqlite"        # "sqlite" or "redis"
    redis_url: str = ""
    search_provider: str = "youtube_api"  # "youtube_api" or "ytdlp"
    youtube_api_key: str = ""
    search_max_results: int = 25
    search_timeout: float = 10.0
    search_ttl_seconds: int = SEARCH_TTL_SECONDS
    not_found_ttl_seconds: int = NOT_FOUND_TTL_SECONDS

    def __post_init__(self):
        if not self.data_dir:
            self.data_dir = os.path.expanduser("~/.lyricast")
        if not self.db_file:
            self.db_file = os.path.join(self.data_dir, "lyricast.db")
        if not self.youtube_api_key:
            self.youtube_api_key = os.environ.get("YOUTUBE_API_KEY", "")
        if not self.redis_url:
            self.redis_url = os.environ.get("REDIS_URL", "")


@dataclass
class PlayerConfig:
    """Configuration for the playback controller side."""

    server_url: str = "http://localhost:5060"
    fetch_debounce: float = 1.0  # seconds
    request_timeout: float = 10.0


@dataclass
class Config:
    """Top-level Lyricast configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)


def load_config(path: str | None = None) -> Config:
    """Load configuration from lyricast.toml.

    Search order:
    1. Explicit path argument
    2. ./lyricast.toml
    3. ~/.config/lyricast/lyricast.toml
    4. Defaults
    """
    search_paths = []
    if path:
        search_paths.append(Path(path))
    search_paths.extend([
        Path("lyricast.toml"),
        Path.home() / ".config" / "lyricast" / "lyricast.toml",
    ])

    for p in search_paths:
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            return _parse_config(data)

    return Config()


def _parse_config(data: dict) -> Config:
    """Parse a TOML dict into Config."""
    config = Config()

    if "server" in data:
        s = data["server"]
        config.server = ServerConfig(
            host=s.get("host", config.server.host),
            port=s.get("port", config.server.port),
            data_dir=s.get("data_dir", config.server.data_dir),
            db_file=s.get("db_file", ""),
            store_backend=s.get("store_backend", config.server.store_backend),
            redis_url=s.get("redis_url", ""),
            search_provider=s.get("search_provider", config.server.search_provider),
            youtube_api_key=s.get("youtube_api_key", ""),
            search_max_results=s.get("search_max_results", config.server.search_max_results),
            search_timeout=s.get("search_timeout", config.server.search_timeout),
            search_ttl_seconds=s.get("search_ttl_seconds", config.server.search_ttl_seconds),
            not_found_ttl_seconds=s.get("not_found_ttl_seconds", config.server.not_found_ttl_seconds),
        )

    if "player" in data:
        p = data["player"]
        config.player = PlayerConfig(
            server_url=p.get("server_url", config.player.server_url),
            fetch_debounce=p.get("fetch_debounce", config.player.fetch_debounce),
            request_timeout=p.get("request_timeout", config.player.request_timeout),
        )

    return config
