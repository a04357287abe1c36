"""Request/response types shared by the resolver server and players."""

from dataclasses import dataclass


@dataclass
class QueueResponse:
    """Ordered candidate queue for one track."""

    video_ids: list[str]
    preferred_video_id: str | None = None
    is_discovery_complete: bool = False

    def to_dict(self) -> dict:
        return {
            "videoIds": list(self.video_ids),
            "preferredVideoId": self.preferred_video_id,
            "isDiscoveryComplete": self.is_discovery_complete,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QueueResponse":
        return cls(
            video_ids=[str(v) for v in data.get("videoIds") or []],
            preferred_video_id=data.get("preferredVideoId"),
            is_discovery_complete=bool(data.get("isDiscoveryComplete")),
        )


@dataclass
class OutcomeReport:
    """A playback outcome reported by a player. No status means success."""

    artist: str
    track: str
    video_id: str
    user_id: str
    status: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> dict:
        data = {
            "artist": self.artist,
            "track": self.track,
            "videoId": self.video_id,
            "userId": self.user_id,
        }
        if self.status:
            data["status"] = self.status
        return data
