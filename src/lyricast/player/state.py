"""Playback state machine for a track's video queue.

``transition(state, event)`` is pure: it returns the next state and a list
of effects for the owning controller to carry out (status/progress updates,
fetch scheduling, outcome reports, player commands). Nothing here touches
the network, timers, or the player.

Status flow::

    idle -> searching -> playing -> (searching | error) -> ...

``error`` with an empty queue is the exhausted state: only a track change
or an explicit refetch gets out of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from lyricast.models import OutcomeReport, QueueResponse

logger = logging.getLogger(__name__)

IDLE = "idle"
SEARCHING = "searching"
PLAYING = "playing"
ERROR = "error"


@dataclass(frozen=True)
class PlaybackState:
    artist: str = ""
    track: str = ""
    user_id: str | None = None
    token: int = 0
    status: str = IDLE
    video_ids: tuple[str, ...] = ()
    current_index: int = 0
    attempted_ids: frozenset[str] = frozenset()
    manually_skipped: bool = False
    remote_discovery_complete: bool = False
    last_skip_trigger: int = 0
    last_saved_id: str | None = None

    @property
    def current_video_id(self) -> str | None:
        if 0 <= self.current_index < len(self.video_ids):
            return self.video_ids[self.current_index]
        return None

    @property
    def is_exhausted(self) -> bool:
        return self.status == ERROR and not self.video_ids

    @property
    def is_discovery_complete(self) -> bool:
        """Server verdict, or every queued id tried at least once.

        The local fallback is a UI hint only; the server flag wins.
        """
        if self.remote_discovery_complete:
            return True
        return bool(self.video_ids) and all(v in self.attempted_ids for v in self.video_ids)

    def progress(self) -> "EmitProgress":
        if not self.video_ids:
            return EmitProgress(0, 0, False)
        return EmitProgress(self.current_index + 1, len(self.video_ids), self.is_discovery_complete)


# --- Events ---

@dataclass(frozen=True)
class TrackChanged:
    artist: str
    track: str
    user_id: str | None = None


@dataclass(frozen=True)
class Refetch:
    """Manual retry for the current track."""


@dataclass(frozen=True)
class QueueLoaded:
    token: int
    response: QueueResponse


@dataclass(frozen=True)
class QueueFailed:
    token: int
    reason: str = ""


@dataclass(frozen=True)
class SkipRequested:
    trigger: int


@dataclass(frozen=True)
class PlaybackStarted:
    video_id: str


@dataclass(frozen=True)
class PlaybackFailed:
    video_id: str


@dataclass(frozen=True)
class PlaybackEnded:
    video_id: str


# --- Effects ---

@dataclass(frozen=True)
class SetStatus:
    status: str


@dataclass(frozen=True)
class EmitProgress:
    current: int
    total: int
    is_discovery_complete: bool

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "total": self.total,
            "isDiscoveryComplete": self.is_discovery_complete,
        }


@dataclass(frozen=True)
class ScheduleFetch:
    token: int
    artist: str
    track: str
    user_id: str | None = None


@dataclass(frozen=True)
class NotifyError:
    reason: str = ""


@dataclass(frozen=True)
class LoadVideo:
    video_id: str


@dataclass(frozen=True)
class ReplayVideo:
    video_id: str


@dataclass(frozen=True)
class ReportOutcome:
    report: OutcomeReport


def _start_fetch(state: PlaybackState, artist: str, track: str, user_id: str | None):
    token = state.token + 1
    new = replace(
        state,
        artist=artist,
        track=track,
        user_id=user_id,
        token=token,
        status=SEARCHING,
        video_ids=(),
        current_index=0,
        attempted_ids=frozenset(),
        manually_skipped=False,
        remote_discovery_complete=False,
        last_saved_id=None,
    )
    return new, [
        SetStatus(SEARCHING),
        EmitProgress(0, 0, False),
        ScheduleFetch(token, artist, track, user_id),
    ]


def _on_queue_loaded(state: PlaybackState, event: QueueLoaded):
    if event.token != state.token:
        logger.debug("Dropping stale queue (token %d, current %d)", event.token, state.token)
        return state, []

    video_ids = tuple(event.response.video_ids)
    if not video_ids:
        new = replace(state, status=ERROR, video_ids=(), current_index=0,
                      attempted_ids=frozenset(),
                      remote_discovery_complete=event.response.is_discovery_complete)
        return new, [NotifyError("no candidates"), SetStatus(ERROR)]

    start = 0
    preferred = event.response.preferred_video_id
    if preferred and preferred in video_ids:
        start = video_ids.index(preferred)

    new = replace(
        state,
        status=SEARCHING,
        video_ids=video_ids,
        current_index=start,
        attempted_ids=frozenset({video_ids[start]}),
        remote_discovery_complete=event.response.is_discovery_complete,
    )
    # Server verdict only on load
    progress = EmitProgress(start + 1, len(video_ids), event.response.is_discovery_complete)
    return new, [LoadVideo(video_ids[start]), SetStatus(SEARCHING), progress]


def _on_queue_failed(state: PlaybackState, event: QueueFailed):
    if event.token != state.token:
        return state, []
    return replace(state, status=ERROR), [NotifyError(event.reason), SetStatus(ERROR)]


def _on_skip(state: PlaybackState, event: SkipRequested):
    if event.trigger <= state.last_skip_trigger or not state.video_ids:
        return state, []

    next_index = (state.current_index + 1) % len(state.video_ids)
    next_id = state.video_ids[next_index]
    new = replace(
        state,
        last_skip_trigger=event.trigger,
        manually_skipped=True,
        current_index=next_index,
        attempted_ids=state.attempted_ids | {next_id},
        status=SEARCHING,
    )
    return new, [LoadVideo(next_id), SetStatus(SEARCHING), new.progress()]


def _on_started(state: PlaybackState, event: PlaybackStarted):
    if event.video_id != state.current_video_id:
        return state, []

    effects: list = [SetStatus(PLAYING)]
    new = replace(state, status=PLAYING)

    # An auto-played first candidate is not a user choice
    is_new = event.video_id != state.last_saved_id
    if is_new and (state.current_index != 0 or state.manually_skipped):
        new = replace(new, last_saved_id=event.video_id)
        if state.user_id:
            effects.append(ReportOutcome(OutcomeReport(
                artist=state.artist,
                track=state.track,
                video_id=event.video_id,
                user_id=state.user_id,
            )))
    return new, effects


def _on_failed(state: PlaybackState, event: PlaybackFailed):
    if event.video_id != state.current_video_id:
        return state, []

    effects: list = []
    if state.user_id:
        effects.append(ReportOutcome(OutcomeReport(
            artist=state.artist,
            track=state.track,
            video_id=event.video_id,
            user_id=state.user_id,
            status="failed",
        )))

    remaining = tuple(v for v in state.video_ids if v != event.video_id)
    if not remaining:
        new = replace(state, video_ids=(), current_index=0, status=ERROR)
        effects.extend([NotifyError("all candidates failed"), SetStatus(ERROR), new.progress()])
        return new, effects

    next_index = state.current_index if state.current_index < len(remaining) else 0
    next_id = remaining[next_index]
    new = replace(
        state,
        video_ids=remaining,
        current_index=next_index,
        attempted_ids=state.attempted_ids | {next_id},
        status=SEARCHING,
    )
    effects.extend([LoadVideo(next_id), SetStatus(SEARCHING), new.progress()])
    return new, effects


def _on_ended(state: PlaybackState, event: PlaybackEnded):
    # Loop the same video; the queue only moves on skip or error
    if event.video_id != state.current_video_id:
        return state, []
    return state, [ReplayVideo(event.video_id)]


def transition(state: PlaybackState, event) -> tuple[PlaybackState, list]:
    """Apply one event. Returns (new_state, effects)."""
    if isinstance(event, TrackChanged):
        return _start_fetch(state, event.artist, event.track, event.user_id)
    if isinstance(event, Refetch):
        if not state.artist or not state.track:
            return state, []
        return _start_fetch(state, state.artist, state.track, state.user_id)
    if isinstance(event, QueueLoaded):
        return _on_queue_loaded(state, event)
    if isinstance(event, QueueFailed):
        return _on_queue_failed(state, event)
    if isinstance(event, SkipRequested):
        return _on_skip(state, event)
    if isinstance(event, PlaybackStarted):
        return _on_started(state, event)
    if isinstance(event, PlaybackFailed):
        return _on_failed(state, event)
    if isinstance(event, PlaybackEnded):
        return _on_ended(state, event)
    raise TypeError(f"Unknown playback event: {event!r}")
